# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Pydantic schemas for the export file format.

Validation only: import_all() validates the whole payload before touching
any cache. Field aliases also accept files written by the earlier
bookmarklet exporter (url/thumbnailUrl/fullUrl/username/..., ms timestamps).
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, NonNegativeInt, model_validator

from . import MediaKind, MediaRecord, default_engagement

_LEGACY_ENGAGEMENT = {"retweets": "shares"}


class RecordPayload(BaseModel):
    """One exported media record."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    primary_url: str = Field("", validation_alias=AliasChoices("primaryUrl", "primary_url", "url"))
    secondary_url: str = Field(
        "", validation_alias=AliasChoices("secondaryUrl", "secondary_url", "thumbnailUrl", "previewUrl")
    )
    source_url: str = Field("", validation_alias=AliasChoices("sourceUrl", "source_url", "fullUrl"))
    author_handle: str = Field("", validation_alias=AliasChoices("authorHandle", "author_handle", "username"))
    author_display_name: str = Field(
        "", validation_alias=AliasChoices("authorDisplayName", "author_display_name", "displayName")
    )
    caption_text: str = Field("", validation_alias=AliasChoices("captionText", "caption_text", "tweetText"))
    published_at: str = Field("", validation_alias=AliasChoices("publishedAt", "published_at", "dateTime"))
    engagement: dict[str, NonNegativeInt] = Field(default_factory=dict)
    duration_seconds: float = Field(0, ge=0, validation_alias=AliasChoices("durationSeconds", "duration_seconds"))
    width: NonNegativeInt = 0
    height: NonNegativeInt = 0
    discovered_at_pass: NonNegativeInt = Field(
        0, validation_alias=AliasChoices("discoveredAtPass", "discovered_at_pass", "discoveredAtScroll")
    )
    discovered_at_timestamp: float = Field(
        0.0, ge=0, validation_alias=AliasChoices("discoveredAtTimestamp", "discovered_at_timestamp")
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        # Legacy exports carry a millisecond epoch under "timestamp"
        if "discoveredAtTimestamp" not in data and isinstance(data.get("timestamp"), int | float):
            data["discoveredAtTimestamp"] = data["timestamp"] / 1000
        engagement = data.get("engagement")
        if isinstance(engagement, dict):
            data["engagement"] = {_LEGACY_ENGAGEMENT.get(k, k): v for k, v in engagement.items()}
        return data

    def to_record(self, kind: MediaKind) -> MediaRecord:
        engagement = default_engagement()
        engagement.update(self.engagement)
        return MediaRecord(
            id=self.id,
            kind=kind,
            primary_url=self.primary_url,
            secondary_url=self.secondary_url,
            source_url=self.source_url,
            author_handle=self.author_handle,
            author_display_name=self.author_display_name,
            caption_text=self.caption_text,
            published_at=self.published_at,
            engagement=engagement,
            duration_seconds=self.duration_seconds if kind == MediaKind.VIDEO else 0,
            width=self.width,
            height=self.height,
            discovered_at_pass=self.discovered_at_pass,
            discovered_at_timestamp=self.discovered_at_timestamp,
        )


class SessionMeta(BaseModel):
    """Session counters carried by an export (``meta`` or legacy ``stats``)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    pass_index: NonNegativeInt = Field(0, validation_alias=AliasChoices("passIndex", "pass_index", "scrollCount"))
    last_discovery_pass: NonNegativeInt = Field(
        0, validation_alias=AliasChoices("lastDiscoveryPass", "last_discovery_pass", "lastMediaDiscoveryScroll")
    )
    exported_at: str = Field("", validation_alias=AliasChoices("exportedAt", "exported_at", "exportDate"))
    new_images: NonNegativeInt = Field(
        0, validation_alias=AliasChoices("newImages", "new_images", "newlyDiscoveredImages")
    )
    new_videos: NonNegativeInt = Field(
        0, validation_alias=AliasChoices("newVideos", "new_videos", "newlyDiscoveredVideos")
    )


class ExportPayload(BaseModel):
    """Top-level export file. ``images`` and ``videos`` are mandatory."""

    model_config = ConfigDict(extra="ignore")

    images: list[RecordPayload]
    videos: list[RecordPayload]
    meta: SessionMeta | None = None
    stats: SessionMeta | None = None

    @property
    def session_meta(self) -> SessionMeta:
        return self.meta or self.stats or SessionMeta()
