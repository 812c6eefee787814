# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Media Sweep exception hierarchy.

All Media Sweep errors inherit from MediaSweepError, allowing callers
to catch the base class for any failure or specific subclasses
for targeted handling.
"""

from __future__ import annotations


class MediaSweepError(Exception):
    """Base exception for all Media Sweep errors."""


class ViewportError(MediaSweepError):
    """Feed viewport could not be advanced (transient, retried with backoff)."""


class ExtractionError(MediaSweepError):
    """A single candidate could not be turned into a record."""


class ImportPayloadError(MediaSweepError):
    """Import payload rejected as a whole; no cache was modified."""

    def __init__(self, message: str, *, reason: str = "") -> None:
        super().__init__(message)
        self.reason = reason or message


class ControllerStateError(MediaSweepError):
    """Command not valid in the controller's current state."""

    def __init__(self, message: str, *, state: str = "") -> None:
        super().__init__(message)
        self.state = state
