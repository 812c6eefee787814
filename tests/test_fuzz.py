# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Property-based fuzz tests using Hypothesis.

Verifies invariants hold for arbitrary inputs across the parsers,
fingerprinting, the dedup cache and merge import.
"""

from __future__ import annotations

try:
    from hypothesis import HealthCheck, example, given, settings
    from hypothesis import strategies as st
except ImportError:
    import pytest

    pytest.skip("hypothesis not installed", allow_module_level=True)

import re

import pytest

from mediasweep import MediaKind, MediaRecord
from mediasweep.cache import MediaCache
from mediasweep.codec import ImportMode, export_all, import_all
from mediasweep.identity import fingerprint
from mediasweep.parsers import format_duration, parse_count, parse_duration

# ---------------------------------------------------------------------------
# Module-level strategies
# ---------------------------------------------------------------------------

GENERAL_TEXT = st.text(min_size=0, max_size=500)

COUNT_LIKE = st.text(alphabet="0123456789.,KkMmBb :abc", min_size=0, max_size=40)

DURATION_LIKE = st.text(alphabet="0123456789:. Durationlive", min_size=0, max_size=40)

SMALL_ID = st.sampled_from(["", "a", "b", "c", "d", "e", "f"])
SMALL_URL = st.sampled_from(["", "https://v/1", "https://v/2", "https://v/3", "https://v/4"])


@st.composite
def records(draw, kind: MediaKind = MediaKind.VIDEO) -> MediaRecord:
    return MediaRecord(
        id=draw(SMALL_ID),
        kind=kind,
        primary_url=draw(SMALL_URL),
        duration_seconds=draw(st.integers(0, 600)),
        discovered_at_pass=draw(st.integers(0, 300)),
    )


# ---------------------------------------------------------------------------
# Shared settings
# ---------------------------------------------------------------------------

_fuzz_settings = settings(
    max_examples=200,
    suppress_health_check=[HealthCheck.too_slow],
)


# ---------------------------------------------------------------------------
# TestFuzzParsers
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzParsers:
    """Unparseable input yields 0; nothing ever raises."""

    @_fuzz_settings
    @given(text=st.one_of(GENERAL_TEXT, COUNT_LIKE, st.none()))
    @example("9" * 400)
    @example("1e5K")
    def test_parse_count_non_negative_int(self, text: str | None) -> None:
        result = parse_count(text)
        assert isinstance(result, int)
        assert result >= 0

    @_fuzz_settings
    @given(text=st.one_of(GENERAL_TEXT, DURATION_LIKE, st.none()))
    @example("9" * 400 + ":00")
    def test_parse_duration_non_negative_int(self, text: str | None) -> None:
        result = parse_duration(text)
        assert isinstance(result, int)
        assert result >= 0

    @_fuzz_settings
    @given(seconds=st.one_of(st.floats(allow_nan=True, allow_infinity=True), st.none()))
    def test_format_duration_shape(self, seconds: float | None) -> None:
        assert re.fullmatch(r"(\d+h )?(\d+m )?\d+s", format_duration(seconds))

    @_fuzz_settings
    @given(h=st.integers(0, 99), m=st.integers(0, 59), s=st.integers(0, 59))
    def test_clock_format_parses_exactly(self, h: int, m: int, s: int) -> None:
        assert parse_duration(f"{h}:{m:02d}:{s:02d}") == h * 3600 + m * 60 + s


# ---------------------------------------------------------------------------
# TestFuzzFingerprint
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzFingerprint:
    @_fuzz_settings
    @given(locator=GENERAL_TEXT, payload=GENERAL_TEXT, salt=st.integers(0, 2**64))
    def test_never_raises_and_is_stable(self, locator: str, payload: str, salt: int) -> None:
        token = fingerprint(locator, payload, salt)
        assert re.fullmatch(r"ms_[0-9a-f]{16}", token)
        assert token == fingerprint(locator, payload, salt)


# ---------------------------------------------------------------------------
# TestFuzzCache
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzCache:
    """Uniqueness and capacity invariants under arbitrary insert/evict sequences."""

    @_fuzz_settings
    @given(batch=st.lists(records(), max_size=40), limit=st.integers(1, 6))
    def test_invariants(self, batch: list[MediaRecord], limit: int) -> None:
        cache = MediaCache(MediaKind.VIDEO)
        for record in batch:
            cache.insert(record)
            cache.evict_if_over_capacity(limit)

            stored = cache.values()
            assert len(stored) <= limit
            ids = [r.id for r in stored]
            assert "" not in ids
            assert len(ids) == len(set(ids))
            urls = [r.primary_url for r in stored]
            assert len(urls) == len(set(urls))

    @_fuzz_settings
    @given(existing=st.lists(records(), max_size=15), incoming=st.lists(records(), max_size=15))
    def test_merge_never_shrinks(self, existing: list[MediaRecord], incoming: list[MediaRecord]) -> None:
        videos = MediaCache(MediaKind.VIDEO)
        for record in existing:
            videos.insert(record)
        source = MediaCache(MediaKind.VIDEO)
        for record in incoming:
            source.insert(record)
        payload = export_all(MediaCache(MediaKind.IMAGE), source)

        before = {r.id for r in videos.values()}
        import_all(payload, ImportMode.MERGE, MediaCache(MediaKind.IMAGE), videos)
        after = {r.id for r in videos.values()}
        assert before <= after
