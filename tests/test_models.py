# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the core data types and export schemas."""

from __future__ import annotations

import dataclasses

import pytest
from pydantic import ValidationError

from mediasweep import CandidateSurface, ImageRef, MediaKind, MediaRecord, default_engagement
from mediasweep.schemas import ExportPayload, RecordPayload, SessionMeta


class TestMediaRecord:
    def test_frozen(self):
        record = MediaRecord(id="a", kind=MediaKind.IMAGE, primary_url="u")
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.id = "b"

    def test_with_id(self):
        record = MediaRecord(id="", kind=MediaKind.VIDEO, primary_url="u", duration_seconds=5)
        renamed = record.with_id("x")
        assert renamed.id == "x"
        assert renamed.duration_seconds == 5
        assert record.id == ""

    def test_default_engagement_not_shared(self):
        a = MediaRecord(id="a", kind=MediaKind.IMAGE, primary_url="u")
        b = MediaRecord(id="b", kind=MediaKind.IMAGE, primary_url="v")
        a.engagement["likes"] = 3
        assert b.engagement == default_engagement()

    def test_to_dict_keys(self):
        d = MediaRecord(id="a", kind=MediaKind.VIDEO, primary_url="u").to_dict()
        assert set(d) == {
            "id",
            "kind",
            "primaryUrl",
            "secondaryUrl",
            "sourceUrl",
            "authorHandle",
            "authorDisplayName",
            "captionText",
            "publishedAt",
            "engagement",
            "durationSeconds",
            "width",
            "height",
            "discoveredAtPass",
            "discoveredAtTimestamp",
        }
        assert d["kind"] == "video"


class TestCandidateSurface:
    def test_may_carry(self):
        assert CandidateSurface(locator="x").may_carry(MediaKind.IMAGE)
        assert CandidateSurface(locator="x").may_carry(MediaKind.VIDEO)
        hinted = CandidateSurface(locator="x", kind_hint=MediaKind.VIDEO)
        assert hinted.may_carry(MediaKind.VIDEO)
        assert not hinted.may_carry(MediaKind.IMAGE)

    def test_image_area(self):
        assert ImageRef(src="s", width=10, height=20).area == 200


class TestSchemas:
    def test_snake_case_accepted(self):
        p = RecordPayload.model_validate({"id": "a", "primary_url": "u", "duration_seconds": 3})
        assert p.primary_url == "u"
        assert p.duration_seconds == 3

    def test_nulls_fall_back_to_defaults(self):
        p = RecordPayload.model_validate({"id": "a", "captionText": None, "engagement": None})
        assert p.caption_text == ""
        assert p.engagement == {}

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            RecordPayload.model_validate({"durationSeconds": -1})

    def test_explicit_timestamp_beats_legacy(self):
        p = RecordPayload.model_validate({"discoveredAtTimestamp": 10, "timestamp": 99000})
        assert p.discovered_at_timestamp == 10

    def test_session_meta_prefers_meta(self):
        payload = ExportPayload.model_validate(
            {"images": [], "videos": [], "meta": {"passIndex": 2}, "stats": {"scrollCount": 9}}
        )
        assert payload.session_meta.pass_index == 2

    def test_session_meta_default(self):
        payload = ExportPayload.model_validate({"images": [], "videos": []})
        assert payload.session_meta == SessionMeta()

    def test_to_record_fills_engagement(self):
        record = RecordPayload.model_validate({"id": "a", "engagement": {"likes": 4}}).to_record(MediaKind.VIDEO)
        assert record.engagement == {"likes": 4, "shares": 0, "replies": 0, "views": 0}
