# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Discovery pass: enumerate candidates, extract, insert, count.

run_pass() never raises. A candidate whose extraction blows up is counted
as a detection failure and the pass moves on to the next candidate.
Rendering is the host's job; nothing here calls back into the UI.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from . import CandidateSurface, MediaKind
from .cache import MediaCache
from .config import SweepConfig
from .errors import ExtractionError
from .extractor import RecordExtractor

logger = logging.getLogger("mediasweep.discovery")


class FeedSource(Protocol):
    """Viewport + candidate lookup supplied by the host (browser, fixture, ...)."""

    async def advance_viewport(self) -> None:
        """Scroll the feed forward. Raises on failure."""
        ...

    async def enumerate_candidates(self) -> Sequence[CandidateSurface]:
        """Currently mounted candidate containers."""
        ...


@dataclass
class PassResult:
    """Outcome of one discovery pass."""

    new_images: int = 0
    new_videos: int = 0
    candidates: int = 0
    filtered: int = 0  # excluded by reply/repost settings
    failures: int = 0  # detection errors isolated during the pass

    @property
    def total_new(self) -> int:
        return self.new_images + self.new_videos


class DiscoveryDriver:
    """Owns the image and video caches; the only writer during a sweep."""

    def __init__(
        self,
        feed: FeedSource,
        config: SweepConfig | None = None,
        *,
        extractor: RecordExtractor | None = None,
        images: MediaCache | None = None,
        videos: MediaCache | None = None,
    ) -> None:
        self._feed = feed
        self._config = config or SweepConfig()
        self._extractor = extractor or RecordExtractor(self._config)
        self._images = images if images is not None else MediaCache(MediaKind.IMAGE)
        self._videos = videos if videos is not None else MediaCache(MediaKind.VIDEO)

    @property
    def feed(self) -> FeedSource:
        return self._feed

    @property
    def images(self) -> MediaCache:
        return self._images

    @property
    def videos(self) -> MediaCache:
        return self._videos

    def cache_for(self, kind: MediaKind) -> MediaCache:
        return self._videos if kind == MediaKind.VIDEO else self._images

    def _enabled_kinds(self) -> tuple[MediaKind, ...]:
        kinds: list[MediaKind] = []
        if self._config.detect_images:
            kinds.append(MediaKind.IMAGE)
        if self._config.detect_videos:
            kinds.append(MediaKind.VIDEO)
        return tuple(kinds)

    def _excluded(self, surface: CandidateSurface) -> bool:
        if not self._config.include_replies and surface.is_reply:
            return True
        return not self._config.include_reposts and surface.is_repost

    def ingest(self, surface: CandidateSurface, pass_index: int) -> tuple[int, int]:
        """Extract and insert every kind ``surface`` may carry.

        Returns (new_images, new_videos). Raises on malformed candidates.
        """
        new = {MediaKind.IMAGE: 0, MediaKind.VIDEO: 0}
        for kind in self._enabled_kinds():
            if not surface.may_carry(kind):
                continue
            record = self._extractor.extract(surface, kind, pass_index)
            if record is None:
                continue
            if not record.id:
                raise ExtractionError(f"record without id from {surface.locator!r}")
            if self.cache_for(kind).insert(record):
                new[kind] += 1
                logger.debug("New %s %s from %s", kind.value, record.id, surface.locator)
        return new[MediaKind.IMAGE], new[MediaKind.VIDEO]

    async def run_pass(self, pass_index: int) -> PassResult:
        """One enumeration-and-extraction cycle over the mounted candidates."""
        result = PassResult()
        try:
            candidates = list(await self._feed.enumerate_candidates())
        except Exception as e:
            logger.warning("Candidate enumeration failed: %s", e)
            result.failures += 1
            return result

        result.candidates = len(candidates)
        if not candidates:
            logger.info("No candidate containers found")
            return result

        for surface in candidates:
            if self._excluded(surface):
                result.filtered += 1
                continue
            try:
                new_images, new_videos = self.ingest(surface, pass_index)
            except Exception as e:
                result.failures += 1
                logger.warning("Error processing candidate %r: %s", getattr(surface, "locator", "?"), e)
                continue
            result.new_images += new_images
            result.new_videos += new_videos

        if result.total_new:
            logger.info(
                "Pass %d: %d new videos, %d new images from %d candidates",
                pass_index,
                result.new_videos,
                result.new_images,
                result.candidates,
            )
        return result
