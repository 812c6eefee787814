# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Scroll/stability state machine driving repeated discovery passes.

    IDLE --start--> RUNNING --stop--> PAUSED --start--> RUNNING (counters kept)
                       |--stable / ceiling--> EXHAUSTED --start--> RUNNING (fresh run)
                       |--5 viewport errors--> FAILED ----start--> RUNNING (fresh run)

One iteration: advance viewport -> wait the cadence delay -> run_pass ->
stability update -> eviction -> termination checks. The wait is the only
suspension point; ``sleep`` is injectable so tests can run on a virtual clock.
stop() is cooperative and observed at the top of the next iteration.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .cache import MediaCache, rank_by_discovery_pass, rank_by_duration
from .config import SweepConfig
from .discovery import DiscoveryDriver, PassResult
from .errors import ControllerStateError
from .logging_config import bind_session, clear_session
from .pass_timer import ADVANCE, DISCOVERY, EVICTION, SETTLE, PassTimer, PassTiming
from .status import StatusEmitter, StatusLevel

logger = logging.getLogger("mediasweep.controller")

Sleep = Callable[[float], Awaitable[Any]]

# Error counter names
TRANSIENT_SCROLL = "transient_scroll"
DETECTION = "detection"
NETWORK_MOCK = "network_mock"


def _new_error_counters() -> dict[str, int]:
    return {TRANSIENT_SCROLL: 0, DETECTION: 0, NETWORK_MOCK: 0}


class ControllerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


_RESTARTABLE = frozenset({ControllerState.IDLE, ControllerState.EXHAUSTED, ControllerState.FAILED})


@dataclass
class SessionState:
    """Per-run counters. Owned by the controller; reset on a fresh run only."""

    pass_index: int = 0
    stability_counter: int = 0
    last_discovery_pass: int = 0
    running: bool = False
    error_counters: dict[str, int] = field(default_factory=_new_error_counters)
    new_images_total: int = 0
    new_videos_total: int = 0
    started_at: float | None = None
    finished_at: float | None = None

    def reset(self) -> None:
        self.pass_index = 0
        self.stability_counter = 0
        self.last_discovery_pass = 0
        self.error_counters = _new_error_counters()
        self.new_images_total = 0
        self.new_videos_total = 0
        self.started_at = None
        self.finished_at = None

    def record_pass(self, pass_index: int, result: PassResult) -> None:
        """Apply one completed pass to the counters."""
        self.pass_index = pass_index
        self.error_counters[DETECTION] += result.failures
        self.new_images_total += result.new_images
        self.new_videos_total += result.new_videos
        if result.total_new > 0:
            self.last_discovery_pass = pass_index
            self.stability_counter = 0
        else:
            self.stability_counter += 1


class ScrollController:
    """Drives a DiscoveryDriver until the feed stops yielding new media."""

    def __init__(
        self,
        driver: DiscoveryDriver,
        config: SweepConfig | None = None,
        *,
        emitter: StatusEmitter | None = None,
        sleep: Sleep = asyncio.sleep,
        session: SessionState | None = None,
    ) -> None:
        self._driver = driver
        self._config = config or SweepConfig()
        self._emitter = emitter or StatusEmitter()
        self._sleep = sleep
        self._session = session or SessionState()
        self._state = ControllerState.IDLE
        self._delay = self._config.scroll_delay
        self._consecutive_failures = 0
        self._last_result: PassResult | None = None
        self._last_timing: PassTiming | None = None
        self._session_id = ""

    # -- Introspection --

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def emitter(self) -> StatusEmitter:
        return self._emitter

    @property
    def images(self) -> MediaCache:
        return self._driver.images

    @property
    def videos(self) -> MediaCache:
        return self._driver.videos

    @property
    def current_delay(self) -> float:
        return self._delay

    @property
    def last_result(self) -> PassResult | None:
        return self._last_result

    @property
    def last_timing(self) -> PassTiming | None:
        return self._last_timing

    def snapshot(self) -> dict[str, Any]:
        """Read-only view for the host UI."""
        s = self._session
        return {
            "state": self._state.value,
            "running": s.running,
            "passIndex": s.pass_index,
            "stabilityCounter": s.stability_counter,
            "lastDiscoveryPass": s.last_discovery_pass,
            "errorCounters": dict(s.error_counters),
            "newImages": s.new_images_total,
            "newVideos": s.new_videos_total,
            "totalImages": self.images.size(),
            "totalVideos": self.videos.size(),
            "currentDelay": self._delay,
            "lastPassTiming": self._last_timing.to_dict() if self._last_timing else None,
        }

    # -- Commands --

    def stop(self) -> None:
        """Request a pause. Observed at the top of the next iteration."""
        if self._session.running:
            self._session.running = False
            logger.info("Stop requested")

    async def start(self) -> ControllerState:
        """Run until paused, exhausted or failed; returns the final state.

        From PAUSED the run resumes with its counters intact. From any other
        state a fresh run starts over the same caches.
        """
        if self._state == ControllerState.RUNNING:
            raise ControllerStateError("sweep already running", state=self._state.value)

        if self._state in _RESTARTABLE:
            self._session.reset()
            self._session_id = uuid.uuid4().hex[:8]
            self._session.started_at = time.time()
            self._emitter.emit(
                f"Starting sweep. {self.videos.size()} videos and {self.images.size()} images already cached."
            )
        else:
            self._emitter.emit(f"Resuming sweep at pass {self._session.pass_index}.")

        self._delay = self._config.scroll_delay
        self._consecutive_failures = 0
        self._session.running = True
        self._state = ControllerState.RUNNING
        bind_session(self._session_id)
        try:
            while self._state == ControllerState.RUNNING:
                await self._iteration()
        finally:
            if self._state == ControllerState.RUNNING:
                # Cancelled mid-iteration: treat like a stop
                self._state = ControllerState.PAUSED
            self._session.running = False
            self._session.finished_at = time.time()
            clear_session()
        return self._state

    # -- Loop --

    async def _advance(self) -> bool:
        """Advance the viewport, updating backoff. False on failure."""
        try:
            await self._driver.feed.advance_viewport()
        except Exception as e:
            self._consecutive_failures += 1
            self._session.error_counters[TRANSIENT_SCROLL] += 1
            self._delay = min(self._delay * self._config.backoff_factor, self._config.max_backoff_delay)
            self._emitter.emit(f"Scroll error (attempt {self._consecutive_failures}): {e}", StatusLevel.ERROR)
            if self._consecutive_failures >= self._config.max_consecutive_failures:
                self._finish(ControllerState.FAILED, f"Multiple scroll errors: {e}", StatusLevel.ERROR)
            return False
        self._consecutive_failures = 0
        self._delay = self._config.scroll_delay
        return True

    def _evict(self) -> None:
        limit = self._config.max_cache_size
        for cache, rank in ((self.videos, rank_by_duration), (self.images, rank_by_discovery_pass)):
            size = cache.size()
            if cache.evict_if_over_capacity(limit, rank):
                self._emitter.emit(
                    f"{cache.kind.value.capitalize()} cache exceeded limit ({size}). Trimming to {limit} items.",
                    StatusLevel.WARNING,
                )

    def _finish(self, state: ControllerState, message: str, level: StatusLevel) -> None:
        self._state = state
        self._session.running = False
        self._emitter.emit(message, level)

    async def _iteration(self) -> None:
        session = self._session
        if not session.running:
            self._finish(ControllerState.PAUSED, "Sweep paused. Start again to resume.", StatusLevel.WARNING)
            return
        if session.pass_index >= self._config.max_passes:
            self._finish(
                ControllerState.EXHAUSTED,
                f"Reached maximum pass count ({self._config.max_passes})",
                StatusLevel.WARNING,
            )
            return

        current = session.pass_index + 1
        timer = PassTimer(current)
        timer.stage(ADVANCE)
        await self._advance()
        if self._state != ControllerState.RUNNING:
            self._last_timing = timer.finish()
            return

        self._emitter.emit(
            f"Scrolling: pass {current} - {self.videos.size()} videos, {self.images.size()} images so far"
        )
        timer.stage(SETTLE)
        await self._sleep(self._delay)

        timer.stage(DISCOVERY)
        result = await self._driver.run_pass(current)
        session.record_pass(current, result)
        self._last_result = result

        timer.stage(EVICTION)
        self._evict()
        timing = self._last_timing = timer.finish()

        threshold = self._config.stability_threshold
        if result.total_new > 0:
            self._emitter.emit(
                f"Pass {current}: found {result.total_new} new media items "
                f"({result.new_videos} videos, {result.new_images} images) "
                f"(total: {self.videos.size() + self.images.size()})",
                StatusLevel.SUCCESS,
            )
        else:
            self._emitter.emit(f"Pass {current}: no new media (stability: {session.stability_counter}/{threshold})")
        logger.debug(
            "Pass %d took %.1fms (slowest: %s) %s", current, timing.total_ms, timing.slowest_stage, timing.stages
        )

        if session.pass_index >= self._config.max_passes:
            self._finish(
                ControllerState.EXHAUSTED,
                f"Reached maximum pass count ({self._config.max_passes})",
                StatusLevel.WARNING,
            )
        elif session.stability_counter >= threshold:
            self._finish(
                ControllerState.EXHAUSTED,
                f"Content stabilized after {current} passes. No new media found in the last {threshold} passes.",
                StatusLevel.SUCCESS,
            )
