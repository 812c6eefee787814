# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Export/import of both caches as a portable record set.

Formats:
- export_all(): structural snapshot {images, videos, meta, stats}
- dumps()/loads(): JSON text of that snapshot
- to_csv(): flat table, one row per record

import_all() validates the whole payload first; a malformed payload raises
ImportPayloadError before any cache or counter is touched.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from . import MediaKind, MediaRecord
from .cache import MediaCache
from .controller import SessionState
from .errors import ImportPayloadError
from .identity import SaltSource, fingerprint
from .schemas import ExportPayload, RecordPayload

logger = logging.getLogger("mediasweep.codec")

CSV_HEADER = (
    "Type",
    "ID",
    "Username",
    "DisplayName",
    "Caption",
    "URL",
    "PreviewURL",
    "SourceURL",
    "PublishedAt",
    "Likes",
    "Shares",
    "Replies",
    "Views",
    "DurationSeconds",
)


class ImportMode(StrEnum):
    MERGE = "merge"
    REPLACE = "replace"


def _by_kind() -> dict[str, int]:
    return {"images": 0, "videos": 0}


@dataclass
class ImportResult:
    added: dict[str, int] = field(default_factory=_by_kind)
    skipped: dict[str, int] = field(default_factory=_by_kind)

    @property
    def total_added(self) -> int:
        return self.added["images"] + self.added["videos"]

    @property
    def total_skipped(self) -> int:
        return self.skipped["images"] + self.skipped["videos"]

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"added": dict(self.added), "skipped": dict(self.skipped)}


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_all(
    images: MediaCache,
    videos: MediaCache,
    session: SessionState | None = None,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Snapshot both caches. Pure read."""
    exported_at = (now or datetime.now(UTC)).isoformat()
    image_dicts = [r.to_dict() for r in images.values()]
    video_dicts = [r.to_dict() for r in videos.values()]
    pass_index = session.pass_index if session else 0
    return {
        "images": image_dicts,
        "videos": video_dicts,
        "meta": {
            "passIndex": pass_index,
            "lastDiscoveryPass": session.last_discovery_pass if session else 0,
            "exportedAt": exported_at,
        },
        "stats": {
            "totalImages": len(image_dicts),
            "totalVideos": len(video_dicts),
            "totalMedia": len(image_dicts) + len(video_dicts),
            "passIndex": pass_index,
            "newImages": session.new_images_total if session else 0,
            "newVideos": session.new_videos_total if session else 0,
            "exportDate": exported_at,
        },
    }


def dumps(snapshot: Mapping[str, Any], indent: int = 2) -> str:
    return json.dumps(snapshot, ensure_ascii=False, indent=indent)


def loads(text: str) -> dict[str, Any]:
    """Parse export JSON text. Raises ImportPayloadError on bad JSON."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportPayloadError(f"Invalid JSON: {e}", reason="invalid_json") from e
    if not isinstance(data, dict):
        raise ImportPayloadError("Invalid JSON format. Expected an object.", reason="not_an_object")
    return data


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def _validate(payload: object) -> ExportPayload:
    if not isinstance(payload, Mapping):
        raise ImportPayloadError("Invalid import payload. Expected an object.", reason="not_an_object")
    missing = [key for key in ("images", "videos") if key not in payload]
    if missing:
        raise ImportPayloadError(
            f"Invalid import payload. Missing {' and '.join(missing)} data.",
            reason="missing_" + "_".join(missing),
        )
    try:
        return ExportPayload.model_validate(dict(payload))
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first["loc"])
        raise ImportPayloadError(
            f"Invalid import payload at {where}: {first['msg']}",
            reason="invalid_record",
        ) from e


def _materialize(
    entries: Iterable[RecordPayload],
    kind: MediaKind,
    salt: Callable[[], int],
) -> list[MediaRecord]:
    records: list[MediaRecord] = []
    for entry in entries:
        record = entry.to_record(kind)
        if not record.id:
            record = record.with_id(fingerprint(record.primary_url, record.source_url, salt()))
        records.append(record)
    return records


def import_all(
    payload: Mapping[str, Any],
    mode: ImportMode | str,
    images: MediaCache,
    videos: MediaCache,
    session: SessionState | None = None,
    *,
    salt: Callable[[], int] | None = None,
) -> ImportResult:
    """Merge or replace cache contents from an exported payload.

    REPLACE clears both caches and overwrites the session counters.
    MERGE keeps existing records; incoming duplicates count as skipped and
    counters are added (last discovery pass takes the max).
    """
    mode = ImportMode(mode)
    validated = _validate(payload)
    salt = salt or SaltSource()
    incoming = {
        "images": (images, _materialize(validated.images, MediaKind.IMAGE, salt)),
        "videos": (videos, _materialize(validated.videos, MediaKind.VIDEO, salt)),
    }

    # Everything below is infallible
    result = ImportResult()
    if mode == ImportMode.REPLACE:
        images.clear()
        videos.clear()
        logger.info("Cleared existing caches for replacement")

    for key, (cache, records) in incoming.items():
        for record in records:
            if cache.insert(record):
                result.added[key] += 1
            else:
                result.skipped[key] += 1

    if session is not None:
        meta = validated.session_meta
        if mode == ImportMode.REPLACE:
            session.pass_index = meta.pass_index
            session.last_discovery_pass = meta.last_discovery_pass
            session.new_images_total = meta.new_images
            session.new_videos_total = meta.new_videos
        else:
            session.pass_index += meta.pass_index
            session.last_discovery_pass = max(session.last_discovery_pass, meta.last_discovery_pass)
            session.new_images_total += meta.new_images
            session.new_videos_total += meta.new_videos

    logger.info(
        "Import (%s): added %d media items (%d videos, %d images), skipped %d",
        mode.value,
        result.total_added,
        result.added["videos"],
        result.added["images"],
        result.total_skipped,
    )
    return result


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def _csv_row(record: MediaRecord) -> list[object]:
    e = record.engagement
    return [
        record.kind.value.capitalize(),
        record.id,
        record.author_handle,
        record.author_display_name,
        record.caption_text,
        record.primary_url,
        record.secondary_url,
        record.source_url,
        record.published_at,
        e.get("likes", 0),
        e.get("shares", 0),
        e.get("replies", 0),
        e.get("views", 0),
        record.duration_seconds,
    ]


def to_csv(images: Iterable[MediaRecord], videos: Iterable[MediaRecord]) -> str:
    """Videos first, then images, matching the listing order of the UI."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for record in videos:
        writer.writerow(_csv_row(record))
    for record in images:
        writer.writerow(_csv_row(record))
    return buf.getvalue()
