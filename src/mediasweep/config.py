# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Sweep configuration: immutable defaults with MEDIASWEEP_* environment overrides."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass

_ENV_PREFIX = "MEDIASWEEP_"
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass(frozen=True)
class SweepConfig:
    """Immutable sweep configuration. Times are in seconds."""

    # Scrolling
    scroll_distance: int = 1500
    scroll_delay: float = 5.5
    backoff_factor: float = 1.5
    max_backoff_delay: float = 10.0
    max_consecutive_failures: int = 5
    max_passes: int = 300
    stability_threshold: int = 8

    # Detection
    detect_videos: bool = True
    detect_images: bool = True
    include_replies: bool = True
    include_reposts: bool = True
    min_video_duration: float = 0.0

    # Caches
    max_cache_size: int = 10_000

    # Site
    site_origin: str = "https://twitter.com"
    media_cdn_marker: str = "pbs.twimg.com/media/"

    def __post_init__(self) -> None:
        if self.scroll_delay < 0 or self.max_backoff_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.max_backoff_delay < self.scroll_delay:
            raise ValueError("max_backoff_delay must be >= scroll_delay")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")
        for name in ("max_consecutive_failures", "max_passes", "stability_threshold", "max_cache_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.min_video_duration < 0:
            raise ValueError("min_video_duration must be non-negative")

    def replace(self, **changes: object) -> SweepConfig:
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> SweepConfig:
        """Build a config from defaults, MEDIASWEEP_* variables, then explicit overrides.

        Unparseable values are ignored and the default is kept.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for f in dataclasses.fields(cls):
            raw = env.get(_ENV_PREFIX + f.name.upper(), "").strip()
            if not raw:
                continue
            default = f.default
            if isinstance(default, bool):
                lowered = raw.lower()
                if lowered in _TRUE:
                    values[f.name] = True
                elif lowered in _FALSE:
                    values[f.name] = False
            elif isinstance(default, int):
                with suppress(ValueError):
                    values[f.name] = int(raw)
            elif isinstance(default, float):
                with suppress(ValueError):
                    values[f.name] = float(raw)
            else:
                values[f.name] = raw
        values.update(overrides)
        return cls(**values)
