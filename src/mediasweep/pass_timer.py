# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Wall-clock breakdown of one controller iteration.

An iteration moves through advance, settle, discovery and eviction. The
settle stage is the scroll delay, so on a real page it dominates; a pass
whose slowest stage is discovery or advance points at a struggling page.
Uses the monotonic clock, so it measures real elapsed time even when the
controller's sleep is virtual.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

ADVANCE = "advance"
SETTLE = "settle"
DISCOVERY = "discovery"
EVICTION = "eviction"


@dataclass(frozen=True, slots=True)
class PassTiming:
    """Milliseconds spent per stage in one iteration."""

    pass_index: int
    stages: dict[str, float] = field(default_factory=dict)
    total_ms: float = 0.0

    @property
    def slowest_stage(self) -> str | None:
        if not self.stages:
            return None
        return max(self.stages, key=self.stages.__getitem__)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass": self.pass_index,
            "stagesMs": dict(self.stages),
            "totalMs": self.total_ms,
            "slowestStage": self.slowest_stage,
        }


class PassTimer:
    """Split one iteration into named stages; ``finish()`` yields a PassTiming.

    Re-entering a stage name adds to its previous time.
    """

    __slots__ = ("_pass_index", "_clock", "_elapsed_ns", "_current", "_current_start", "_start")

    def __init__(self, pass_index: int, clock: Callable[[], int] = time.monotonic_ns) -> None:
        self._pass_index = pass_index
        self._clock = clock
        self._elapsed_ns: dict[str, int] = {}
        self._current: str | None = None
        self._current_start = 0
        self._start = clock()

    def stage(self, name: str) -> None:
        now = self._clock()
        self._close(now)
        self._current = name
        self._current_start = now

    def _close(self, now: int) -> None:
        if self._current is not None:
            spent = now - self._current_start
            self._elapsed_ns[self._current] = self._elapsed_ns.get(self._current, 0) + spent
            self._current = None

    def finish(self) -> PassTiming:
        """Close the open stage. Safe to call on an early exit."""
        now = self._clock()
        self._close(now)
        return PassTiming(
            pass_index=self._pass_index,
            stages={name: round(ns / 1e6, 1) for name, ns in self._elapsed_ns.items()},
            total_ms=round((now - self._start) / 1e6, 1),
        )
