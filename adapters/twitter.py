from __future__ import annotations

import httpx

from adapters.base import BaseAdapter, request_json
from core.errors import ProviderError
from core.models import Author, Platform, VideoMetadata
from core.normalize import first_present, parse_timestamp, to_int

TWITTER_API_BASE = "https://api.twitter.com/2"


class TwitterAPIAdapter(BaseAdapter):
    """Twitter API v2 tweet lookup with the author and media expansions."""

    name = "Twitter API v2"
    platform = Platform.TWITTER
    data_source = "Twitter API v2"
    extraction_method = "Official API"
    required_credential = "TWITTER_BEARER_TOKEN"
    authentic = True

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
            f"{TWITTER_API_BASE}/tweets/{video_id}",
            params={
                "expansions": "author_id,attachments.media_keys",
                "tweet.fields": "created_at,public_metrics,entities",
                "user.fields": "username,name,verified,profile_image_url,description,public_metrics",
                "media.fields": "duration_ms,preview_image_url,public_metrics,type",
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )
        tweet = data.get("data") if isinstance(data, dict) else None
        if not tweet:
            detail = first_present(data, "errors.0.detail", default="tweet not found")
            raise ProviderError(str(detail))

        includes = data.get("includes") or {}
        user = first_present(includes, "users.0", default={})
        media = first_present(includes, "media.0", default={})
        metrics = tweet.get("public_metrics") or {}
        tags = [h.get("tag") for h in first_present(tweet, "entities.hashtags", default=[]) if isinstance(h, dict)]
        text = tweet.get("text") or ""
        return self.build(
            url,
            title=text[:100] or "Tweet",
            description=text,
            views=to_int(metrics.get("impression_count"))
            or to_int(first_present(media, "public_metrics.view_count")),
            likes=to_int(metrics.get("like_count")),
            comments=to_int(metrics.get("reply_count")),
            shares=to_int(metrics.get("retweet_count")) + to_int(metrics.get("quote_count")),
            author=Author(
                username=user.get("username") or "Unknown",
                display_name=user.get("name") or "Unknown",
                follower_count=to_int(first_present(user, "public_metrics.followers_count")),
                verified=bool(user.get("verified")),
                avatar_url=user.get("profile_image_url") or "",
                bio=user.get("description") or "",
            ),
            hashtags=[t for t in tags if t] or None,
            published_at=parse_timestamp(tweet.get("created_at")),
            duration_seconds=to_int(media.get("duration_ms")) // 1000,
            thumbnail_url=media.get("preview_image_url") or media.get("url") or "",
        )
