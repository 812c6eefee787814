# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Media Sweep CLI: sweep, stats, list, csv, merge commands.

Usage:
    python -m mediasweep.cli sweep --url URL [-o out.json] [--max-passes N] [--headed]
    python -m mediasweep.cli stats FILE
    python -m mediasweep.cli list FILE [--kind videos|images] [--query Q] [--sort ORDER]
    python -m mediasweep.cli csv FILE [-o out.csv]
    python -m mediasweep.cli merge FILE [FILE ...] -o out.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable
from pathlib import Path

from . import MediaKind
from .cache import MediaCache
from .codec import ImportMode, dumps, export_all, import_all, loads, to_csv
from .config import SweepConfig
from .controller import SessionState
from .errors import MediaSweepError
from .logging_config import configure
from .views import SortOrder, collect_urls, list_images, list_videos, summarize


def _validate_output_path(path_str: str | None) -> Path | None:
    """Return the output path, creating its parent directory if needed."""
    if not path_str:
        return None
    p = Path(path_str)
    if not p.parent.exists():
        p.parent.mkdir(parents=True, exist_ok=True)
    return p


def _load_export(
    path: Path,
    images: MediaCache,
    videos: MediaCache,
    session: SessionState,
    mode: ImportMode = ImportMode.MERGE,
) -> None:
    text = path.read_text(encoding="utf-8")
    result = import_all(loads(text), mode, images, videos, session)
    print(
        f"{path}: added {result.added['videos']} videos, {result.added['images']} images "
        f"(skipped {result.total_skipped})",
        file=sys.stderr,
    )


def _load_single(path_str: str) -> tuple[MediaCache, MediaCache, SessionState]:
    images = MediaCache(MediaKind.IMAGE)
    videos = MediaCache(MediaKind.VIDEO)
    session = SessionState()
    _load_export(Path(path_str), images, videos, session, ImportMode.REPLACE)
    return images, videos, session


def _write_or_print(text: str, output: Path | None, label: str) -> None:
    if output:
        output.write_text(text, encoding="utf-8")
        print(f"{label} saved to {output}", file=sys.stderr)
    else:
        print(text)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _sweep_live(
    url: str,
    config: SweepConfig,
    headed: bool,
    sink: Callable[[dict], None],
) -> None:
    from playwright.async_api import async_playwright

    from .controller import ScrollController
    from .discovery import DiscoveryDriver
    from .playwright_feed import PlaywrightFeed

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=not headed)
        try:
            page = await browser.new_page()
            await page.goto(url, wait_until="domcontentloaded")
            driver = DiscoveryDriver(PlaywrightFeed(page, config), config)
            controller = ScrollController(driver, config)
            controller.emitter.subscribe(lambda event: print(f"[{event.level}] {event.message}", file=sys.stderr))
            try:
                await controller.start()
            finally:
                # An interrupted sweep still hands over what it collected
                controller.stop()
                sink(export_all(controller.images, controller.videos, controller.session))
        finally:
            await browser.close()


def cmd_sweep(args: argparse.Namespace) -> None:
    """Sweep a live feed and export everything found."""
    overrides: dict[str, object] = {}
    if args.max_passes is not None:
        overrides["max_passes"] = args.max_passes
    if args.stability is not None:
        overrides["stability_threshold"] = args.stability
    if args.no_replies:
        overrides["include_replies"] = False
    if args.no_reposts:
        overrides["include_reposts"] = False
    config = SweepConfig.from_env(**overrides)

    output = _validate_output_path(args.output)

    def _emit(snapshot: dict) -> None:
        _write_or_print(dumps(snapshot), output, "Export")
        stats = snapshot["stats"]
        print(
            f"\nVideos: {stats['totalVideos']}  Images: {stats['totalImages']}  Passes: {stats['passIndex']}",
            file=sys.stderr,
        )

    asyncio.run(_sweep_live(args.url, config, args.headed, _emit))


def cmd_stats(args: argparse.Namespace) -> None:
    """Summarize an export file."""
    images, videos, session = _load_single(args.file)
    summary = summarize(images, videos)
    summary["passIndex"] = session.pass_index
    summary["lastDiscoveryPass"] = session.last_discovery_pass
    print(json.dumps(summary, ensure_ascii=False, indent=2))


def cmd_list(args: argparse.Namespace) -> None:
    """List records (or just their links) from an export file."""
    images, videos, _ = _load_single(args.file)
    if args.kind == "videos":
        records = list_videos(videos, args.query, args.sort, args.min_duration)
    else:
        records = list_images(images, args.query, args.sort)

    if args.urls:
        for url in collect_urls(records):
            print(url)
        return
    for r in records:
        print(json.dumps(r.to_dict(), ensure_ascii=False))


def cmd_csv(args: argparse.Namespace) -> None:
    """Convert an export file to CSV."""
    images, videos, _ = _load_single(args.file)
    output = _validate_output_path(args.output)
    _write_or_print(to_csv(images, videos), output, "CSV")


def cmd_merge(args: argparse.Namespace) -> None:
    """Merge several export files into one."""
    images = MediaCache(MediaKind.IMAGE)
    videos = MediaCache(MediaKind.VIDEO)
    session = SessionState()
    for path_str in args.files:
        _load_export(Path(path_str), images, videos, session)
    output = _validate_output_path(args.output)
    _write_or_print(dumps(export_all(images, videos, session)), output, "Merged export")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Media Sweep CLI",
        prog="python -m mediasweep.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _sweep_epilog = """\
examples:
  %(prog)s --url https://x.com/someone/media              Sweep and print JSON
  %(prog)s --url https://x.com/someone/media -o out.json  Save to file
  %(prog)s --url https://x.com/someone/media --headed     Watch the browser
"""
    p_sweep = subparsers.add_parser(
        "sweep",
        help="Sweep a live feed with a browser",
        epilog=_sweep_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_sweep.add_argument("--url", type=str, metavar="URL", required=True, help="Feed URL to sweep")
    p_sweep.add_argument("-o", "--output", type=str, metavar="PATH", help="Export file (default: stdout)")
    p_sweep.add_argument("--max-passes", type=int, metavar="N", help="Pass ceiling (default: 300)")
    p_sweep.add_argument("--stability", type=int, metavar="N", help="Empty passes before stopping (default: 8)")
    p_sweep.add_argument("--no-replies", action="store_true", help="Skip reply posts")
    p_sweep.add_argument("--no-reposts", action="store_true", help="Skip reposts")
    p_sweep.add_argument("--headed", action="store_true", help="Show the browser window")

    p_stats = subparsers.add_parser("stats", help="Summarize an export file")
    p_stats.add_argument("file", type=str)

    p_list = subparsers.add_parser("list", help="List records from an export file")
    p_list.add_argument("file", type=str)
    p_list.add_argument("--kind", choices=["videos", "images"], default="videos")
    p_list.add_argument("--query", type=str, default="", help="Match caption, handle or display name")
    p_list.add_argument("--sort", choices=[o.value for o in SortOrder], default=SortOrder.NEWEST.value)
    p_list.add_argument("--min-duration", type=float, default=0, help="Hide videos shorter than this (seconds)")
    p_list.add_argument("--urls", action="store_true", help="Print one link per record")

    p_csv = subparsers.add_parser("csv", help="Convert an export file to CSV")
    p_csv.add_argument("file", type=str)
    p_csv.add_argument("-o", "--output", type=str, metavar="PATH")

    p_merge = subparsers.add_parser("merge", help="Merge export files")
    p_merge.add_argument("files", nargs="+", type=str)
    p_merge.add_argument("-o", "--output", type=str, metavar="PATH")

    commands = {
        "sweep": cmd_sweep,
        "stats": cmd_stats,
        "list": cmd_list,
        "csv": cmd_csv,
        "merge": cmd_merge,
    }

    args = parser.parse_args(argv)
    configure(json_output=args.json_logs, level="DEBUG" if args.verbose else "WARNING")

    try:
        commands[args.command](args)
    except (KeyboardInterrupt, asyncio.CancelledError):
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except (MediaSweepError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
