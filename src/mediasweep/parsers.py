# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Text-to-number normalizers for engagement counters and durations.

Pure functions, no mediasweep imports. Unparseable input always yields 0.
"""

from __future__ import annotations

import math
import re

_COUNT_STRIP_RE = re.compile(r"[^0-9KkMmBb.]")
_DURATION_STRIP_RE = re.compile(r"[^0-9:.]")
# Leading numeric prefix, same acceptance as a browser's parseFloat
_NUMBER_PREFIX_RE = re.compile(r"[0-9]+(?:\.[0-9]*)?|\.[0-9]+")

_SUFFIX_MULTIPLIERS: tuple[tuple[str, int], ...] = (
    ("K", 1_000),
    ("M", 1_000_000),
    ("B", 1_000_000_000),
)

_DURATION_WEIGHTS: dict[int, tuple[int, ...]] = {
    1: (1,),
    2: (60, 1),
    3: (3600, 60, 1),
}


def _round_half_up(value: float) -> int:
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def _leading_float(text: str) -> float | None:
    m = _NUMBER_PREFIX_RE.match(text)
    if m is None:
        return None
    return float(m.group())


def parse_count(text: str | None) -> int:
    """Parse an abbreviated counter: "1.5K" -> 1500, "2M" -> 2000000, "42" -> 42."""
    if not text:
        return 0
    clean = _COUNT_STRIP_RE.sub("", text).upper()
    if not clean:
        return 0
    number = _leading_float(re.sub(r"[KMB]", "", clean))
    if number is None:
        return 0
    for suffix, multiplier in _SUFFIX_MULTIPLIERS:
        if suffix in clean:
            return _round_half_up(number * multiplier)
    return _round_half_up(number)


def parse_duration(text: str | None) -> int:
    """Parse "H:MM:SS", "MM:SS" or bare seconds into whole seconds.

    Surrounding words are dropped first, so accessible labels such as
    "Duration 1:30" parse too.
    """
    if not text:
        return 0
    parts = _DURATION_STRIP_RE.sub("", text).split(":")
    weights = _DURATION_WEIGHTS.get(len(parts))
    if weights is None:
        return 0
    total = 0.0
    for part, weight in zip(parts, weights, strict=True):
        value = _leading_float(part)
        if value is None:
            return 0
        total += value * weight
    return _round_half_up(total)


def format_duration(seconds: float | None) -> str:
    """Human format: 3661 -> "1h 1m 1s", 90 -> "1m 30s", 0 -> "0s"."""
    if not seconds or not math.isfinite(seconds) or seconds < 0:
        return "0s"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    segments: list[str] = []
    if hours > 0:
        segments.append(f"{hours}h")
    if minutes > 0 or hours > 0:
        segments.append(f"{minutes}m")
    segments.append(f"{secs}s")
    return " ".join(segments)
