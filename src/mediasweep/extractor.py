# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Candidate surface -> MediaRecord extraction.

Pure computation over already-resolved attributes: no markup parsing and no
cache access. Each extraction step short-circuits on its first hit:

1. primary URL   (element src -> <source> -> data-* -> background transform -> permalink)
2. duration      (element duration -> time label -> 0), videos only
3. poster        (explicit poster -> largest non-icon descendant image)
4. CDN upgrade   (max-quality variant + small preview)
5. rejection     (nothing resolved, or a non-content URL)
6. fingerprint
"""

from __future__ import annotations

import logging
import math
import re
import time
from collections.abc import Callable, Iterable
from urllib.parse import urljoin

from . import CandidateSurface, ImageRef, MediaKind, MediaRecord, default_engagement
from .config import SweepConfig
from .identity import SaltSource, fingerprint
from .parsers import parse_count, parse_duration

logger = logging.getLogger("mediasweep.extractor")

ICON_MAX_SIDE = 20  # any side below this is an icon

_CSS_URL_RE = re.compile(r"url\(['\"]?(.*?)['\"]?\)")
_FORMAT_QUERY_RE = re.compile(r"\?format=jpg.*$")

_ORIGINAL_QUALITY = "4096x4096"
_PREVIEW_QUALITY = "360x360"

# Avatars, emoji, and site chrome; never content for either kind
_NON_CONTENT_MARKERS: tuple[str, ...] = (
    "profile_images",
    "emoji",
    "_normal.",
    "_bigger.",
    "semantic_core_img",
    "community_banner_img",
)
# Video stills masquerading as photos
_IMAGE_ONLY_MARKERS: tuple[str, ...] = (
    "video",
    "video_thumb",
    "amplify_video_thumb",
)

# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def unwrap_css_url(value: str | None) -> str:
    """``url("https://x/y.jpg")`` -> ``https://x/y.jpg``. ``none`` -> ""."""
    if not value or value.strip() == "none":
        return ""
    m = _CSS_URL_RE.search(value)
    return m.group(1) if m else value.strip()


def video_url_from_thumbnail(url: str) -> str:
    """Rewrite a video-thumbnail path into the matching video-asset path."""
    return _FORMAT_QUERY_RE.sub("?tag=1", url.replace("/img/", "/vid/", 1))


def absolute_url(ref: str | None, origin: str) -> str:
    """Resolve a permalink reference against the site origin."""
    if not ref:
        return ""
    return urljoin(origin.rstrip("/") + "/", ref)


def upgrade_cdn_image(url: str, cdn_marker: str) -> str:
    """Request the largest variant for images served from the media CDN."""
    if not url or cdn_marker not in url:
        return url
    return url.split("?", 1)[0] + f"?format=jpg&name={_ORIGINAL_QUALITY}"


def preview_variant(url: str) -> str:
    """Inverse of upgrade_cdn_image, for thumbnails in listings."""
    return url.replace(_ORIGINAL_QUALITY, _PREVIEW_QUALITY)


def upgrade_cdn_poster(url: str, cdn_marker: str) -> str:
    if not url or cdn_marker not in url:
        return url
    base = url.split("?", 1)[0]
    if base.endswith((".jpg", ".png")):
        return base
    return base + "?format=jpg&name=large"


def is_non_content_url(url: str, kind: MediaKind) -> bool:
    if any(marker in url for marker in _NON_CONTENT_MARKERS):
        return True
    return kind == MediaKind.IMAGE and any(marker in url for marker in _IMAGE_ONLY_MARKERS)


def is_icon(image: ImageRef) -> bool:
    return image.width < ICON_MAX_SIDE or image.height < ICON_MAX_SIDE


def best_image(images: Iterable[ImageRef]) -> ImageRef | None:
    """Largest descendant image after dropping avatars, emoji and icons.

    Ties keep document order.
    """
    best: ImageRef | None = None
    for image in images:
        if not image.src or image.is_avatar or image.is_emoji or "emoji" in image.src or is_icon(image):
            continue
        if best is None or image.area > best.area:
            best = image
    return best


def _first_non_empty(values: Iterable[str]) -> str:
    for value in values:
        if value:
            return value
    return ""


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class RecordExtractor:
    """Turns candidate surfaces into MediaRecords. Never touches a cache."""

    def __init__(
        self,
        config: SweepConfig | None = None,
        *,
        salt: Callable[[], int] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or SweepConfig()
        self._salt = salt or SaltSource()
        self._clock = clock

    def extract(
        self,
        surface: CandidateSurface,
        kind: MediaKind,
        pass_index: int,
        now: float | None = None,
    ) -> MediaRecord | None:
        """Build a record of ``kind`` from ``surface``, or None when rejected."""
        if kind == MediaKind.VIDEO:
            return self._extract_video(surface, pass_index, now)
        if kind == MediaKind.IMAGE:
            return self._extract_image(surface, pass_index, now)
        raise ValueError(f"unsupported media kind: {kind!r}")

    # -- Video --

    def _resolve_video_source(self, surface: CandidateSurface) -> tuple[str, str]:
        """Returns (primary_url, poster derived on the way)."""
        primary = surface.video_src or _first_non_empty(surface.source_srcs) or _first_non_empty(surface.data_srcs)
        if primary:
            return primary, ""
        thumb = unwrap_css_url(surface.background_image)
        if thumb:
            return video_url_from_thumbnail(thumb), thumb
        return "", ""

    @staticmethod
    def _resolve_duration(surface: CandidateSurface) -> float:
        reported = surface.element_duration
        if reported is not None and math.isfinite(reported) and reported > 0:
            return reported
        return parse_duration(surface.time_label)

    def _extract_video(self, surface: CandidateSurface, pass_index: int, now: float | None) -> MediaRecord | None:
        cdn = self._config.media_cdn_marker
        source_url = absolute_url(surface.source_ref, self._config.site_origin)

        primary, poster = self._resolve_video_source(surface)
        if not primary:
            primary = source_url

        duration = self._resolve_duration(surface)

        width = height = 0
        poster = surface.poster or poster
        if not poster:
            thumb = best_image(surface.images)
            if thumb is not None:
                poster = upgrade_cdn_poster(thumb.src, cdn)
                width, height = thumb.width, thumb.height

        if not primary and not poster:
            logger.debug("Video rejected, nothing resolved: %s", surface.locator)
            return None
        if primary and is_non_content_url(primary, MediaKind.VIDEO):
            logger.debug("Video rejected, non-content url: %s", primary)
            return None

        return self._build(
            surface,
            MediaKind.VIDEO,
            primary_url=primary,
            secondary_url=poster,
            source_url=source_url,
            duration_seconds=duration,
            width=width,
            height=height,
            pass_index=pass_index,
            now=now,
        )

    # -- Image --

    def _extract_image(self, surface: CandidateSurface, pass_index: int, now: float | None) -> MediaRecord | None:
        raw = surface.image_src or unwrap_css_url(surface.background_image)
        if not raw:
            return None
        if is_non_content_url(raw, MediaKind.IMAGE):
            logger.debug("Image rejected, non-content url: %s", raw)
            return None

        width = height = 0
        for image in surface.images:
            if image.src == raw:
                width, height = image.width, image.height
                break

        primary = upgrade_cdn_image(raw, self._config.media_cdn_marker)
        return self._build(
            surface,
            MediaKind.IMAGE,
            primary_url=primary,
            secondary_url=preview_variant(primary),
            source_url=absolute_url(surface.source_ref, self._config.site_origin),
            duration_seconds=0,
            width=width,
            height=height,
            pass_index=pass_index,
            now=now,
        )

    # -- Assembly --

    def _build(
        self,
        surface: CandidateSurface,
        kind: MediaKind,
        *,
        primary_url: str,
        secondary_url: str,
        source_url: str,
        duration_seconds: float,
        width: int,
        height: int,
        pass_index: int,
        now: float | None,
    ) -> MediaRecord:
        engagement = default_engagement()
        for name, text in surface.engagement_text.items():
            engagement[name] = parse_count(text)

        record_id = fingerprint(source_url or surface.locator, primary_url or secondary_url, self._salt())
        return MediaRecord(
            id=record_id,
            kind=kind,
            primary_url=primary_url,
            secondary_url=secondary_url,
            source_url=source_url,
            author_handle=surface.author_handle.strip().lstrip("@"),
            author_display_name=surface.author_display_name.strip(),
            caption_text=surface.caption_text.strip(),
            published_at=surface.published_at,
            engagement=engagement,
            duration_seconds=duration_seconds,
            width=width,
            height=height,
            discovered_at_pass=pass_index,
            discovered_at_timestamp=self._clock() if now is None else now,
        )
