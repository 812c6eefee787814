# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Read-only listing views over cached records for the host UI."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from . import MediaRecord
from .parsers import format_duration


class SortOrder(StrEnum):
    NEWEST = "newest"
    OLDEST = "oldest"
    LIKES = "likes"
    SHARES = "shares"
    VIEWS = "views"
    DURATION = "duration"


def valid_videos(videos: Iterable[MediaRecord], min_duration: float = 0) -> list[MediaRecord]:
    """Videos worth listing. Zero-duration videos stay cached but are hidden here."""
    return [v for v in videos if v.duration_seconds > 0 and v.duration_seconds >= min_duration]


def search(records: Iterable[MediaRecord], query: str) -> list[MediaRecord]:
    """Case-insensitive match on caption, handle or display name."""
    q = query.strip().lower()
    if not q:
        return list(records)
    return [
        r
        for r in records
        if q in r.caption_text.lower() or q in r.author_handle.lower() or q in r.author_display_name.lower()
    ]


def sort_records(records: Iterable[MediaRecord], order: SortOrder | str = SortOrder.NEWEST) -> list[MediaRecord]:
    order = SortOrder(order)
    items = list(records)
    if order == SortOrder.NEWEST:
        items.sort(key=lambda r: r.discovered_at_timestamp, reverse=True)
    elif order == SortOrder.OLDEST:
        items.sort(key=lambda r: r.discovered_at_timestamp)
    elif order == SortOrder.DURATION:
        items.sort(key=lambda r: r.duration_seconds, reverse=True)
    else:
        items.sort(key=lambda r: r.engagement.get(order.value, 0), reverse=True)
    return items


def list_videos(
    videos: Iterable[MediaRecord],
    query: str = "",
    order: SortOrder | str = SortOrder.NEWEST,
    min_duration: float = 0,
) -> list[MediaRecord]:
    return sort_records(search(valid_videos(videos, min_duration), query), order)


def list_images(
    images: Iterable[MediaRecord],
    query: str = "",
    order: SortOrder | str = SortOrder.NEWEST,
) -> list[MediaRecord]:
    return sort_records(search(images, query), order)


def collect_urls(*groups: Iterable[MediaRecord]) -> list[str]:
    """One link per record (permalink preferred), for copy-to-clipboard."""
    urls: list[str] = []
    for records in groups:
        urls.extend(url for r in records if (url := r.source_url or r.primary_url))
    return urls


def summarize(images: Iterable[MediaRecord], videos: Iterable[MediaRecord]) -> dict[str, Any]:
    image_list = list(images)
    video_list = list(videos)
    listed = valid_videos(video_list)
    total_duration = sum(v.duration_seconds for v in listed)
    return {
        "totalImages": len(image_list),
        "totalVideos": len(video_list),
        "listedVideos": len(listed),
        "zeroDurationVideos": len(video_list) - len(listed),
        "totalMedia": len(image_list) + len(video_list),
        "totalDuration": format_duration(total_duration),
        "authors": len({r.author_handle for r in (*image_list, *video_list) if r.author_handle}),
    }
