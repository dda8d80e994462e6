from __future__ import annotations

import logging

import httpx

from adapters.base import BaseAdapter, request_json
from core.errors import ProviderError
from core.models import Author, Platform, VideoMetadata
from core.normalize import (
    first_present,
    parse_count_text,
    parse_iso8601_duration,
    parse_timestamp,
    to_int,
)

log = logging.getLogger(__name__)

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"


class YouTubeDataAPIAdapter(BaseAdapter):
    """Official YouTube Data API v3: a video lookup followed by a channel lookup."""

    name = "YouTube Data API v3"
    platform = Platform.YOUTUBE
    data_source = "YouTube Data API v3"
    extraction_method = "Official API"
    required_credential = "YOUTUBE_API_KEY"
    authentic = True
    hashtag_limit = 15

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        api_key: str | None,
    ) -> VideoMetadata:
        data = await request_json(
            client,
            "GET",
            f"{YOUTUBE_API_BASE}/videos",
            params={"part": "snippet,statistics,contentDetails", "id": video_id, "key": api_key},
        )
        items = data.get("items") if isinstance(data, dict) else None
        if not items:
            raise ProviderError("video not found or private")

        video = items[0]
        snippet = video.get("snippet") or {}
        stats = video.get("statistics") or {}
        content = video.get("contentDetails") or {}
        channel = await self._fetch_channel(client, snippet.get("channelId"), api_key)
        channel_snippet = channel.get("snippet") or {}
        channel_title = snippet.get("channelTitle") or "Unknown"

        return self.build(
            url,
            title=snippet.get("title") or "YouTube Video",
            description=snippet.get("description") or "",
            views=to_int(stats.get("viewCount")),
            likes=to_int(stats.get("likeCount")),
            comments=to_int(stats.get("commentCount")),
            author=Author(
                username=channel_snippet.get("customUrl") or channel_title,
                display_name=channel_title,
                follower_count=to_int((channel.get("statistics") or {}).get("subscriberCount")),
                avatar_url=first_present(channel_snippet, "thumbnails.default.url", default=""),
                bio=channel_snippet.get("description") or "",
            ),
            published_at=parse_timestamp(snippet.get("publishedAt")),
            duration_seconds=parse_iso8601_duration(content.get("duration") or "PT0S"),
            thumbnail_url=first_present(
                snippet, "thumbnails.maxres.url", "thumbnails.high.url", default=""
            ),
        )

    async def _fetch_channel(
        self, client: httpx.AsyncClient, channel_id: str | None, api_key: str | None
    ) -> dict:
        if not channel_id:
            return {}
        try:
            data = await request_json(
                client,
                "GET",
                f"{YOUTUBE_API_BASE}/channels",
                params={"part": "snippet,statistics", "id": channel_id, "key": api_key},
            )
        except ProviderError as e:
            log.debug("Channel %s unavailable: %s", channel_id, e)
            return {}
        items = data.get("items") if isinstance(data, dict) else None
        return items[0] if items else {}


class InvidiousAdapter(BaseAdapter):
    """Queries Invidious mirrors (open YouTube frontends).

    Mirrors come and go, so we rotate through the configured list and use
    the first one that answers.
    """

    name = "Invidious API"
    platform = Platform.YOUTUBE
    data_source = "Invidious API"
    extraction_method = "Alternative API"
    hashtag_limit = 15

    def __init__(self, instances: list[str]) -> None:
        self._instances = [u.rstrip("/") for u in instances if u.strip()]

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        api_key: str | None,
    ) -> VideoMetadata:
        if not self._instances:
            raise ProviderError("no Invidious instances configured")
        last_error: ProviderError | None = None
        for instance in self._instances:
            try:
                data = await request_json(client, "GET", f"{instance}/api/v1/videos/{video_id}")
            except ProviderError as e:
                last_error = e
                log.debug("Invidious instance %s failed for %s: %s", instance, video_id, e)
                continue
            if not isinstance(data, dict) or not data.get("title"):
                last_error = ProviderError(f"{instance} returned no video data")
                continue
            log.info("Invidious instance %s answered for %s", instance, video_id)
            return self._to_metadata(url, data)
        raise ProviderError(
            f"all Invidious instances failed: {last_error}",
            retriable=bool(last_error and last_error.retriable),
        )

    def _to_metadata(self, url: str, data: dict) -> VideoMetadata:
        thumbnails = data.get("videoThumbnails") or []
        return self.build(
            url,
            title=data.get("title") or "YouTube Video",
            description=data.get("description") or "",
            views=to_int(data.get("viewCount")),
            likes=to_int(data.get("likeCount")),
            author=Author(
                username=data.get("authorId") or data.get("author") or "Unknown",
                display_name=data.get("author") or "Unknown",
                follower_count=parse_count_text(data.get("subCountText")),
                verified=bool(data.get("authorVerified")),
                avatar_url=_first_url(data.get("authorThumbnails")),
            ),
            published_at=parse_timestamp(data.get("published")),
            duration_seconds=to_int(data.get("lengthSeconds")),
            thumbnail_url=_first_url(thumbnails),
        )


def _first_url(items: object) -> str:
    if isinstance(items, list):
        for item in items:
            if isinstance(item, dict) and item.get("url"):
                return str(item["url"])
    return ""
