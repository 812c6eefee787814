# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for mediasweep.views: listing, search, sort, summary."""

from __future__ import annotations

import pytest

from mediasweep import MediaKind
from mediasweep.views import (
    SortOrder,
    collect_urls,
    list_images,
    list_videos,
    search,
    sort_records,
    summarize,
    valid_videos,
)
from tests._feed_helpers import make_record


@pytest.fixture
def clips():
    return [
        make_record("a", duration=30, timestamp=3, author="alice", caption="Cat video", engagement={"likes": 5}),
        make_record("b", duration=0, timestamp=1, author="bob", caption="broken"),
        make_record("c", duration=300, timestamp=2, author="carol", caption="Long talk", engagement={"likes": 50}),
    ]


class TestValidVideos:
    def test_zero_duration_hidden(self, clips):
        assert [v.id for v in valid_videos(clips)] == ["a", "c"]

    def test_min_duration(self, clips):
        assert [v.id for v in valid_videos(clips, min_duration=60)] == ["c"]


class TestSearch:
    def test_matches_caption_case_insensitive(self, clips):
        assert [r.id for r in search(clips, "cat")] == ["a"]

    def test_matches_handle(self, clips):
        assert [r.id for r in search(clips, "CAROL")] == ["c"]

    def test_blank_query_returns_all(self, clips):
        assert len(search(clips, "  ")) == 3


class TestSort:
    @pytest.mark.parametrize(
        ("order", "expected"),
        [
            (SortOrder.NEWEST, ["a", "c", "b"]),
            (SortOrder.OLDEST, ["b", "c", "a"]),
            (SortOrder.LIKES, ["c", "a", "b"]),
            (SortOrder.DURATION, ["c", "a", "b"]),
            ("newest", ["a", "c", "b"]),
        ],
    )
    def test_orders(self, clips, order, expected):
        assert [r.id for r in sort_records(clips, order)] == expected

    def test_unknown_order_raises(self, clips):
        with pytest.raises(ValueError):
            sort_records(clips, "random")


class TestListing:
    def test_list_videos_combines_filters(self, clips):
        assert [r.id for r in list_videos(clips, query="", order=SortOrder.OLDEST)] == ["c", "a"]

    def test_list_images_keeps_all(self):
        pics = [make_record(f"p{i}", MediaKind.IMAGE, timestamp=i) for i in range(3)]
        assert [r.id for r in list_images(pics)] == ["p2", "p1", "p0"]

    def test_collect_urls_prefers_permalink(self, clips):
        pics = [make_record("p", MediaKind.IMAGE)]
        urls = collect_urls(clips[:1], pics)
        assert urls == ["https://twitter.com/u/status/a", "https://twitter.com/u/status/p"]


class TestSummarize:
    def test_summary(self, clips):
        pics = [make_record("p", MediaKind.IMAGE, author="alice")]
        summary = summarize(pics, clips)
        assert summary["totalImages"] == 1
        assert summary["totalVideos"] == 3
        assert summary["listedVideos"] == 2
        assert summary["zeroDurationVideos"] == 1
        assert summary["totalMedia"] == 4
        assert summary["totalDuration"] == "5m 30s"
        assert summary["authors"] == 3
