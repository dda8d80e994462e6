from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx
from scrapling import Fetcher

from adapters.base import BaseAdapter
from core.errors import ProviderError
from core.models import Author, Platform, VideoMetadata
from core.normalize import (
    clean_title,
    first_present,
    parse_iso8601_duration,
    parse_timestamp,
    to_int,
)

log = logging.getLogger(__name__)

# Meta tags worth reading, keyed by the name we store them under.
META_SELECTORS: dict[str, tuple[str, ...]] = {
    "title": ('meta[property="og:title"]', 'meta[name="twitter:title"]', 'meta[itemprop="name"]'),
    "description": (
        'meta[property="og:description"]',
        'meta[name="description"]',
        'meta[itemprop="description"]',
    ),
    "image": ('meta[property="og:image"]', 'meta[name="twitter:image"]', 'meta[itemprop="thumbnailUrl"]'),
    "views": ('meta[itemprop="interactionCount"]', 'meta[itemprop="userInteractionCount"]'),
    "duration": ('meta[itemprop="duration"]',),
    "published": ('meta[itemprop="datePublished"]', 'meta[itemprop="uploadDate"]'),
    "author": ('link[itemprop="name"]', 'meta[name="author"]'),
}

_VIDEO_TYPES = {"VideoObject", "SocialMediaPosting", "DiscussionForumPosting"}


class PageScrapingAdapter(BaseAdapter):
    """Last-resort HTML scrape of the video page itself.

    Structured data (JSON-LD ``VideoObject``) is preferred when the page has
    it; otherwise we fall back to Open Graph and ``itemprop`` meta tags.
    """

    data_source = "Web Scraping"
    extraction_method = "HTML Parsing"
    authentic = False
    last_resort = True

    def __init__(self, platform: Platform) -> None:
        self.platform = platform
        self.name = f"{platform.value} Web Scraping"

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        api_key: str | None,
    ) -> VideoMetadata:
        try:
            page = await asyncio.to_thread(self._fetch_page, url)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"page fetch failed: {e}", retriable=True) from e
        meta = collect_meta(page)
        ld_blocks = [el.text for el in page.css('script[type="application/ld+json"]') if el.text]
        return self.parse(url, meta, ld_blocks)

    def _fetch_page(self, url: str) -> Any:
        fetcher = Fetcher()
        page = fetcher.get(url, stealthy_headers=True, follow_redirects=True)
        if page.status != 200:
            raise ProviderError(
                f"HTTP {page.status} from page",
                retriable=page.status == 429 or page.status >= 500,
            )
        return page

    def parse(self, url: str, meta: dict[str, str], ld_blocks: list[str]) -> VideoMetadata:
        video = find_video_object(ld_blocks)
        if video:
            log.debug("Using JSON-LD %s for %s", video.get("@type"), url)
            return self._from_json_ld(url, video, meta)

        title = clean_title(meta.get("title"))
        if not title:
            raise ProviderError("no title found in page metadata")
        author = meta.get("author") or "Unknown"
        return self.build(
            url,
            title=title,
            description=meta.get("description", ""),
            views=to_int(meta.get("views")),
            author=Author(username=author, display_name=author),
            published_at=parse_timestamp(meta.get("published")),
            duration_seconds=parse_iso8601_duration(meta.get("duration")),
            thumbnail_url=meta.get("image", ""),
        )

    def _from_json_ld(self, url: str, video: dict, meta: dict[str, str]) -> VideoMetadata:
        counts = interaction_counts(video.get("interactionStatistic"))
        author = video.get("author") or video.get("creator") or {}
        if isinstance(author, list):
            author = author[0] if author else {}
        if isinstance(author, str):
            author = {"name": author}
        if not isinstance(author, dict):
            author = {}
        author_name = _text(first_present(author, "name")) or "Unknown"
        thumbnail = video.get("thumbnailUrl") or video.get("image") or meta.get("image", "")
        if isinstance(thumbnail, list):
            thumbnail = thumbnail[0] if thumbnail else ""
        if isinstance(thumbnail, dict):
            thumbnail = thumbnail.get("url", "")
        title = _text(first_present(video, "name", "headline"))
        description = _text(first_present(video, "description", "articleBody"))
        return self.build(
            url,
            title=clean_title(title) or clean_title(meta.get("title")),
            description=description or meta.get("description", ""),
            views=counts.get("WatchAction", 0) or to_int(video.get("interactionCount")),
            likes=counts.get("LikeAction", 0),
            comments=counts.get("CommentAction", 0) or to_int(video.get("commentCount")),
            shares=counts.get("ShareAction", 0),
            author=Author(
                username=str(first_present(author, "alternateName", "name", default="Unknown")).lstrip("@"),
                display_name=author_name,
                avatar_url=author.get("image") if isinstance(author.get("image"), str) else "",
            ),
            published_at=parse_timestamp(first_present(video, "uploadDate", "datePublished")),
            duration_seconds=parse_iso8601_duration(_text(video.get("duration"))),
            thumbnail_url=str(thumbnail or ""),
        )


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def collect_meta(page: Any) -> dict[str, str]:
    meta: dict[str, str] = {}
    for key, selectors in META_SELECTORS.items():
        for selector in selectors:
            value = ""
            for el in page.css(selector):
                value = (el.attrib.get("content") or "").strip()
                if value:
                    break
            if value:
                meta[key] = value
                break
    return meta


def find_video_object(blocks: list[str]) -> dict | None:
    """Return the first JSON-LD node describing a video or post."""
    for raw in blocks:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            continue
        for node in _walk_nodes(data):
            types = node.get("@type")
            types = types if isinstance(types, list) else [types]
            if any(t in _VIDEO_TYPES for t in types):
                return node
    return None


def _walk_nodes(data: Any):
    if isinstance(data, list):
        for item in data:
            yield from _walk_nodes(item)
    elif isinstance(data, dict):
        yield data
        if "@graph" in data:
            yield from _walk_nodes(data["@graph"])


def interaction_counts(stats: Any) -> dict[str, int]:
    """Map schema.org ``InteractionCounter`` entries to ``{"WatchAction": n, ...}``."""
    if isinstance(stats, dict):
        stats = [stats]
    if not isinstance(stats, list):
        return {}
    counts: dict[str, int] = {}
    for stat in stats:
        if not isinstance(stat, dict):
            continue
        action = stat.get("interactionType")
        if isinstance(action, dict):
            action = action.get("@type")
        if not action:
            continue
        action = str(action).rsplit("/", 1)[-1]
        counts[action] = to_int(stat.get("userInteractionCount"))
    return counts
