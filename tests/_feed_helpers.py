# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared helper utilities for sweep test files.

Underscore prefix prevents pytest collection.
These are plain utility functions (not fixtures; conftest.py is reserved
for fixtures).
"""

from __future__ import annotations

from collections.abc import Sequence

from mediasweep import CandidateSurface, ImageRef, MediaKind, MediaRecord, default_engagement

MEDIA_CDN = "https://pbs.twimg.com/media/"


def make_record(
    record_id: str,
    kind: MediaKind = MediaKind.VIDEO,
    *,
    primary_url: str | None = None,
    duration: float = 0,
    discovered_at_pass: int = 0,
    timestamp: float = 0.0,
    author: str = "",
    caption: str = "",
    engagement: dict[str, int] | None = None,
) -> MediaRecord:
    """Build a MediaRecord for testing. Primary URL defaults to one derived from the id."""
    counts = default_engagement()
    counts.update(engagement or {})
    return MediaRecord(
        id=record_id,
        kind=kind,
        primary_url=f"https://video.example/{record_id}.mp4" if primary_url is None else primary_url,
        source_url=f"https://twitter.com/u/status/{record_id}",
        author_handle=author,
        caption_text=caption,
        engagement=counts,
        duration_seconds=duration,
        discovered_at_pass=discovered_at_pass,
        discovered_at_timestamp=timestamp,
    )


def video_surface(n: int, *, duration: float | None = 30.0, **kwargs) -> CandidateSurface:
    """A mounted video container with its own asset URL."""
    defaults = dict(
        locator=f"c{n}:video",
        source_ref=f"/user{n}/status/{1000 + n}",
        kind_hint=MediaKind.VIDEO,
        video_src=f"https://video.twimg.com/ext_tw_video/{n}/vid.mp4",
        element_duration=duration,
        author_handle=f"@user{n}",
    )
    defaults.update(kwargs)
    return CandidateSurface(**defaults)


def image_surface(n: int, **kwargs) -> CandidateSurface:
    """A mounted photo container served from the media CDN."""
    src = f"{MEDIA_CDN}IMG{n}?format=jpg&name=small"
    defaults = dict(
        locator=f"c{n}:photo:0",
        source_ref=f"/user{n}/status/{2000 + n}",
        kind_hint=MediaKind.IMAGE,
        image_src=src,
        images=[ImageRef(src=src, width=680, height=383)],
        author_handle=f"user{n}",
    )
    defaults.update(kwargs)
    return CandidateSurface(**defaults)


class ScriptedFeed:
    """FeedSource double driven by a script.

    ``batches[i]`` is what the i-th enumerate_candidates() call returns (the
    last batch repeats once the script runs out). ``advance_errors`` holds the
    1-based advance_viewport() call numbers that raise.
    """

    def __init__(
        self,
        batches: Sequence[Sequence[CandidateSurface]] = ((),),
        *,
        advance_errors: Sequence[int] = (),
        advance_always_fails: bool = False,
    ) -> None:
        self.batches = [list(b) for b in batches] or [[]]
        self.advance_errors = set(advance_errors)
        self.advance_always_fails = advance_always_fails
        self.advance_calls = 0
        self.enumerate_calls = 0
        self.on_enumerate = None  # optional hook(call_number)

    async def advance_viewport(self) -> None:
        self.advance_calls += 1
        if self.advance_always_fails or self.advance_calls in self.advance_errors:
            raise RuntimeError(f"scroll blocked (call {self.advance_calls})")

    async def enumerate_candidates(self) -> list[CandidateSurface]:
        self.enumerate_calls += 1
        if self.on_enumerate is not None:
            self.on_enumerate(self.enumerate_calls)
        index = min(self.enumerate_calls - 1, len(self.batches) - 1)
        return list(self.batches[index])


class VirtualSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def elapsed(self) -> float:
        return sum(self.delays)
