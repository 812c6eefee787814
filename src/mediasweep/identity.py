# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Record fingerprints.

The salt makes the same locator+payload pair produce a fresh id after
eviction. Re-detection of live content within a run is caught by the
cache's URL check, not here.
"""

from __future__ import annotations

import hashlib
import time

_PREFIX = "ms_"
_DIGEST_BYTES = 8


def fingerprint(locator: str, payload_ref: str, salt: float | int = 0) -> str:
    """Deterministic token for (locator, payload_ref, salt). Never raises."""
    combined = f"{locator or ''}::{payload_ref or ''}::{salt}"
    digest = hashlib.blake2b(combined.encode("utf-8", "surrogatepass"), digest_size=_DIGEST_BYTES)
    return _PREFIX + digest.hexdigest()


class SaltSource:
    """Strictly increasing salt derived from the wall clock (ns)."""

    __slots__ = ("_last",)

    def __init__(self) -> None:
        self._last = 0

    def __call__(self) -> int:
        now = time.time_ns()
        if now <= self._last:
            now = self._last + 1
        self._last = now
        return now
