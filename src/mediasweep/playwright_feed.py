# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright-backed feed: scrolls the page and resolves candidate surfaces.

All DOM work happens in one page.evaluate() round trip per pass; the
extractor only ever sees the plain dicts it returns. Selector defaults
target the X/Twitter timeline markup and are replaceable per site.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from . import CandidateSurface, ImageRef, MediaKind
from .config import SweepConfig
from .errors import ViewportError

logger = logging.getLogger("mediasweep.playwright_feed")


def _default_engagement_selectors() -> dict[str, str]:
    return {
        "likes": 'div[data-testid="like"] span[data-testid="app-text-transition-container"]',
        "shares": 'div[data-testid="retweet"] span[data-testid="app-text-transition-container"]',
        "replies": 'div[data-testid="reply"] span[data-testid="app-text-transition-container"]',
        "views": 'a[href*="/analytics"] span, span[data-testid="analytics"] span',
    }


@dataclass(frozen=True)
class FeedSelectors:
    """CSS lookups for one site's markup."""

    container: str = 'article[data-testid="tweet"], div[data-testid="tweet"], article[role="article"]'
    permalink: str = 'a[href*="/status/"]'
    user: str = 'div[data-testid="User-Name"]'
    handle: str = 'a[role="link"] span'
    display_name: str = "span span"
    caption: str = 'div[data-testid="tweetText"]'
    avatar: str = '[data-testid="User-Avatar"]'
    reply: str = 'div[data-testid="reply-context"], [data-testid="Tweet-User-Avatar:Reply"]'
    repost: str = '[data-testid="socialContext"]'
    video: str = (
        'div[data-testid="videoPlayer"], div[data-testid="videoComponent"], div[data-testid="media-video-player"]'
    )
    video_background: str = 'div[class*="r-1niwhzg"][class*="r-vvn4in"]'
    time_label: str = 'time[aria-label*="Duration"], span[data-testid="videoTimeLabel"]'
    photo: str = 'div[data-testid="tweetPhoto"]:not([data-testid*="video"]), div[data-testid="media-image"]'
    photo_background: str = 'div[class*="r-1niwhzg"]'
    engagement: dict[str, str] = field(default_factory=_default_engagement_selectors)

    def to_js(self) -> dict[str, Any]:
        d = asdict(self)
        return {
            "container": d["container"],
            "permalink": d["permalink"],
            "user": d["user"],
            "handle": d["handle"],
            "displayName": d["display_name"],
            "caption": d["caption"],
            "avatar": d["avatar"],
            "reply": d["reply"],
            "repost": d["repost"],
            "video": d["video"],
            "videoBackground": d["video_background"],
            "timeLabel": d["time_label"],
            "photo": d["photo"],
            "photoBackground": d["photo_background"],
            "engagement": d["engagement"],
        }


# ---------------------------------------------------------------------------
# JS candidate resolver: one querySelectorAll per container kind
# ---------------------------------------------------------------------------

_SCROLL_JS = "(distance) => { window.scrollBy(0, distance); return window.scrollY; }"

_CANDIDATES_JS = """(sel) => {
  const out = [];
  const text = (root, q) => {
    const el = q ? root.querySelector(q) : null;
    return el ? (el.textContent || '').trim() : '';
  };
  const attr = (el, name) => (el && el.getAttribute(name)) || '';
  const imageRef = (img) => ({
    src: img.currentSrc || img.src || '',
    width: img.naturalWidth || img.width || 0,
    height: img.naturalHeight || img.height || 0,
    isAvatar: !!img.closest(sel.avatar),
    isEmoji: img.classList.contains('emoji'),
  });
  let seq = Number(document.documentElement.dataset.msSeq || 0);
  for (const post of document.querySelectorAll(sel.container)) {
    if (!post.dataset.msKey) { seq += 1; post.dataset.msKey = 'c' + seq; }
    const key = post.dataset.msKey;
    let sourceRef = '';
    for (const a of post.querySelectorAll(sel.permalink)) {
      const href = a.getAttribute('href');
      if (href && href.includes('/status/')) { sourceRef = href; break; }
    }
    const engagementText = {};
    for (const [name, q] of Object.entries(sel.engagement)) {
      const t = text(post, q);
      if (t) engagementText[name] = t;
    }
    const user = post.querySelector(sel.user);
    const time = post.querySelector('time[datetime]');
    const common = {
      sourceRef,
      authorHandle: user ? text(user, sel.handle) : '',
      authorDisplayName: user ? text(user, sel.displayName) : '',
      captionText: text(post, sel.caption),
      publishedAt: time ? attr(time, 'datetime') : '',
      engagementText,
      isReply: !!post.querySelector(sel.reply),
      isRepost: !!post.querySelector(sel.repost),
    };
    const player = post.querySelector(sel.video);
    if (player) {
      const v = player.querySelector('video') || post.querySelector('video');
      const dataSrcs = [];
      if (v) {
        for (const n of ['data-url', 'data-video-url', 'data-src']) {
          const x = v.getAttribute(n);
          if (x) dataSrcs.push(x);
        }
      }
      for (const el of post.querySelectorAll('[data-video-url], [data-url], [data-src]')) {
        const x = attr(el, 'data-video-url') || attr(el, 'data-url') || attr(el, 'data-src');
        if (x) dataSrcs.push(x);
      }
      const bgEl = post.querySelector(sel.videoBackground);
      const label = post.querySelector(sel.timeLabel);
      out.push({
        ...common,
        locator: key + ':video',
        kindHint: 'video',
        videoSrc: v ? (v.currentSrc || v.src || '') : '',
        sourceSrcs: v ? Array.from(v.querySelectorAll('source')).map((s) => s.src).filter(Boolean) : [],
        dataSrcs,
        backgroundImage: bgEl ? (bgEl.style.backgroundImage || '') : '',
        poster: v ? (v.poster || '') : '',
        elementDuration: v && isFinite(v.duration) ? v.duration : null,
        timeLabel: label ? (label.textContent || attr(label, 'datetime')) : '',
        images: Array.from(post.querySelectorAll('img')).map(imageRef),
      });
    }
    post.querySelectorAll(sel.photo).forEach((photo, i) => {
      const img = photo.tagName === 'IMG' ? photo : photo.querySelector('img');
      let backgroundImage = '';
      if (!img) {
        const bgEl = photo.querySelector(sel.photoBackground) || photo;
        const bg = getComputedStyle(bgEl).backgroundImage;
        if (bg && bg !== 'none') backgroundImage = bg;
      }
      out.push({
        ...common,
        locator: key + ':photo:' + i,
        kindHint: 'image',
        imageSrc: img ? (img.currentSrc || img.src || '') : '',
        backgroundImage,
        images: img ? [imageRef(img)] : [],
      });
    });
  }
  document.documentElement.dataset.msSeq = String(seq);
  return out;
}"""


# ---------------------------------------------------------------------------
# Raw dict -> CandidateSurface
# ---------------------------------------------------------------------------


def _str(raw: dict, key: str) -> str:
    value = raw.get(key)
    return value if isinstance(value, str) else ""


def _str_list(raw: dict, key: str) -> list[str]:
    value = raw.get(key)
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]


def surface_from_dict(raw: dict[str, Any]) -> CandidateSurface:
    """Convert one resolver entry. Raises ValueError when the entry is unusable."""
    locator = _str(raw, "locator")
    if not locator:
        raise ValueError("candidate without locator")

    kind_hint = raw.get("kindHint")
    images = [
        ImageRef(
            src=_str(img, "src"),
            width=int(img.get("width") or 0),
            height=int(img.get("height") or 0),
            is_avatar=bool(img.get("isAvatar")),
            is_emoji=bool(img.get("isEmoji")),
        )
        for img in raw.get("images") or []
        if isinstance(img, dict)
    ]
    duration = raw.get("elementDuration")
    engagement = raw.get("engagementText") or {}

    return CandidateSurface(
        locator=locator,
        source_ref=_str(raw, "sourceRef"),
        kind_hint=MediaKind(kind_hint) if kind_hint else None,
        video_src=_str(raw, "videoSrc"),
        source_srcs=_str_list(raw, "sourceSrcs"),
        data_srcs=_str_list(raw, "dataSrcs"),
        background_image=_str(raw, "backgroundImage"),
        poster=_str(raw, "poster"),
        element_duration=float(duration) if isinstance(duration, int | float) else None,
        time_label=_str(raw, "timeLabel"),
        image_src=_str(raw, "imageSrc"),
        images=images,
        author_handle=_str(raw, "authorHandle"),
        author_display_name=_str(raw, "authorDisplayName"),
        caption_text=_str(raw, "captionText"),
        published_at=_str(raw, "publishedAt"),
        engagement_text={k: v for k, v in engagement.items() if isinstance(v, str)},
        is_reply=bool(raw.get("isReply")),
        is_repost=bool(raw.get("isRepost")),
    )


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------


class PlaywrightFeed:
    """FeedSource over a live Playwright page."""

    def __init__(
        self,
        page: Page,
        config: SweepConfig | None = None,
        selectors: FeedSelectors | None = None,
    ) -> None:
        self._page = page
        self._config = config or SweepConfig()
        self._selectors = selectors or FeedSelectors()

    async def advance_viewport(self) -> None:
        if self._page.is_closed():
            raise ViewportError("page is closed")
        try:
            await self._page.evaluate(_SCROLL_JS, self._config.scroll_distance)
        except PlaywrightError as e:
            raise ViewportError(f"scroll failed: {e}") from e

    async def enumerate_candidates(self) -> list[CandidateSurface]:
        raw = await self._page.evaluate(_CANDIDATES_JS, self._selectors.to_js())
        if not isinstance(raw, list):
            logger.debug("Candidate resolver returned %s", type(raw).__name__)
            return []
        surfaces: list[CandidateSurface] = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            try:
                surfaces.append(surface_from_dict(entry))
            except ValueError as e:
                logger.debug("Skipping candidate: %s", e)
        return surfaces
