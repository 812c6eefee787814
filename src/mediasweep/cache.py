# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Deduplicated record store with explicit, rank-based eviction.

Pure Python module, no browser dependencies.

One instance per media kind. A record is accepted at most once: a second
record with the same id OR the same primary URL is rejected without touching
the stored one. Eviction never happens on insert; the controller calls
evict_if_over_capacity() after each pass.

NOTE: A single event loop drives every writer.  This class is NOT thread-safe.
Callers that extract in parallel must funnel inserts through one task.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from . import MediaKind, MediaRecord

logger = logging.getLogger("mediasweep.cache")

RankFn = Callable[[MediaRecord], float]


def rank_by_duration(record: MediaRecord) -> float:
    """Video retention: keep the longest."""
    return record.duration_seconds


def rank_by_discovery_pass(record: MediaRecord) -> float:
    """Image retention: keep the newest."""
    return record.discovered_at_pass


DEFAULT_RANKS: dict[MediaKind, RankFn] = {
    MediaKind.VIDEO: rank_by_duration,
    MediaKind.IMAGE: rank_by_discovery_pass,
}


# ---------------------------------------------------------------------------
# Cache stats (observability)
# ---------------------------------------------------------------------------


@dataclass
class CacheStats:
    """Counters for cache behaviour, used for logging and export stats."""

    inserted: int = 0
    duplicate_ids: int = 0
    duplicate_urls: int = 0
    rejected: int = 0  # records without an id
    evictions: int = 0

    @property
    def duplicates(self) -> int:
        return self.duplicate_ids + self.duplicate_urls


# ---------------------------------------------------------------------------
# MediaCache
# ---------------------------------------------------------------------------


class MediaCache:
    """Insertion-ordered records keyed by id, with a primary-URL index."""

    def __init__(self, kind: MediaKind) -> None:
        self.kind = kind
        self._records: dict[str, MediaRecord] = {}
        self._by_url: dict[str, str] = {}  # primary_url -> id
        self._stats = CacheStats()

    # -- Store --

    def insert(self, record: MediaRecord) -> bool:
        """Insert unless the id or primary URL is already present. Never raises."""
        if not record.id:
            self._stats.rejected += 1
            return False
        if record.id in self._records:
            self._stats.duplicate_ids += 1
            return False
        url = record.primary_url
        if url in self._by_url:
            self._stats.duplicate_urls += 1
            return False

        self._records[record.id] = record
        self._by_url[url] = record.id
        self._stats.inserted += 1
        return True

    def clear(self) -> None:
        self._records.clear()
        self._by_url.clear()
        logger.debug("Cache cleared: kind=%s", self.kind.value)

    # -- Eviction --

    def evict_if_over_capacity(self, max_size: int, rank_fn: RankFn | None = None) -> int:
        """Keep the top ``max_size`` records by ``rank_fn`` (descending).

        Full rebuild; ties keep insertion order. Returns the number evicted.
        """
        size = len(self._records)
        if size <= max_size:
            return 0
        rank = rank_fn or DEFAULT_RANKS[self.kind]
        kept = sorted(self._records.values(), key=rank, reverse=True)[:max_size]
        kept_ids = {r.id for r in kept}
        # Rebuild in original insertion order so default listing stays stable
        self._records = {rid: r for rid, r in self._records.items() if rid in kept_ids}
        self._by_url = {r.primary_url: rid for rid, r in self._records.items()}

        evicted = size - len(self._records)
        self._stats.evictions += evicted
        logger.warning(
            "%s cache exceeded limit (%d). Trimmed to %d items.",
            self.kind.value.capitalize(),
            size,
            max_size,
        )
        return evicted

    # -- Lookup --

    def get(self, record_id: str) -> MediaRecord | None:
        return self._records.get(record_id)

    def contains_url(self, url: str) -> bool:
        return url in self._by_url

    def values(self) -> list[MediaRecord]:
        """Records in insertion order (a copy; safe to iterate while inserting)."""
        return list(self._records.values())

    def size(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[MediaRecord]:
        return iter(self.values())

    # -- Stats --

    @property
    def stats(self) -> CacheStats:
        return self._stats
