# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import mediasweep  # noqa: F401
except ImportError:
    raise ImportError("mediasweep is not installed. Run: pip install -e '.[dev]'") from None

import logging

import pytest
import structlog

from mediasweep import MediaKind
from mediasweep.cache import MediaCache
from mediasweep.config import SweepConfig


@pytest.fixture(autouse=True)
def _reset_logging():
    """Keep root handlers and structlog context from leaking between tests."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def config() -> SweepConfig:
    """Production defaults with a short cadence, so virtual sleeps stay readable."""
    return SweepConfig(scroll_delay=1.0, max_backoff_delay=10.0)


@pytest.fixture
def images() -> MediaCache:
    return MediaCache(MediaKind.IMAGE)


@pytest.fixture
def videos() -> MediaCache:
    return MediaCache(MediaKind.VIDEO)
