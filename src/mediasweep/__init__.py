# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Media Sweep: incremental media discovery over infinitely scrolling feeds.

Extracts one structured record per image/video found in a virtualized feed,
keeps them in two deduplicated, size-bounded caches, and drives the feed with
a stability-terminated scroll loop:
- MediaRecord: the unit of extraction (image or video)
- CandidateSurface: pre-resolved view of one media-bearing container
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

ENGAGEMENT_KEYS: tuple[str, ...] = ("likes", "shares", "replies", "views")


def default_engagement() -> dict[str, int]:
    return dict.fromkeys(ENGAGEMENT_KEYS, 0)


class MediaKind(StrEnum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class MediaRecord:
    """A single extracted media item. Immutable once built."""

    id: str
    kind: MediaKind
    primary_url: str  # direct asset reference; may be the source url as a last resort
    secondary_url: str = ""  # poster (video) or downscaled preview (image)
    source_url: str = ""  # permalink of the post carrying the media
    author_handle: str = ""
    author_display_name: str = ""
    caption_text: str = ""
    published_at: str = ""  # ISO-8601
    engagement: dict[str, int] = field(default_factory=default_engagement)
    duration_seconds: float = 0
    width: int = 0
    height: int = 0
    discovered_at_pass: int = 0
    discovered_at_timestamp: float = 0.0

    def with_id(self, record_id: str) -> MediaRecord:
        return dataclasses.replace(self, id=record_id)

    def to_dict(self) -> dict[str, Any]:
        """Export-file shape: camelCase keys, primitive JSON types only."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "primaryUrl": self.primary_url,
            "secondaryUrl": self.secondary_url,
            "sourceUrl": self.source_url,
            "authorHandle": self.author_handle,
            "authorDisplayName": self.author_display_name,
            "captionText": self.caption_text,
            "publishedAt": self.published_at,
            "engagement": {k: int(v) for k, v in self.engagement.items()},
            "durationSeconds": self.duration_seconds,
            "width": self.width,
            "height": self.height,
            "discoveredAtPass": self.discovered_at_pass,
            "discoveredAtTimestamp": self.discovered_at_timestamp,
        }


@dataclass(frozen=True)
class ImageRef:
    """One descendant <img> of a candidate container."""

    src: str
    width: int = 0
    height: int = 0
    is_avatar: bool = False
    is_emoji: bool = False

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass
class CandidateSurface:
    """Resolved attributes of one potential media-bearing container.

    Produced by the feed layer; no markup is parsed past this point.
    """

    locator: str  # opaque container key, stable while the node is mounted
    source_ref: str = ""  # permalink href, absolute or site-relative
    kind_hint: MediaKind | None = None  # None: may carry both images and a video
    video_src: str = ""
    source_srcs: list[str] = field(default_factory=list)  # <source> children
    data_srcs: list[str] = field(default_factory=list)  # data-video-url, data-url, data-src
    background_image: str = ""  # raw CSS value, e.g. url("...")
    poster: str = ""
    element_duration: float | None = None
    time_label: str = ""
    image_src: str = ""
    images: list[ImageRef] = field(default_factory=list)
    author_handle: str = ""
    author_display_name: str = ""
    caption_text: str = ""
    published_at: str = ""
    engagement_text: dict[str, str] = field(default_factory=dict)
    is_reply: bool = False
    is_repost: bool = False

    def may_carry(self, kind: MediaKind) -> bool:
        return self.kind_hint is None or self.kind_hint == kind
