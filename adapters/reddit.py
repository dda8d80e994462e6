"""Reddit post metadata via the public JSON API."""

from __future__ import annotations

import html
import logging
from urllib.parse import urlsplit, urlunsplit

import httpx

from adapters.base import BaseAdapter, request_json
from core.errors import ProviderError
from core.models import Author, Platform, VideoMetadata
from core.normalize import first_present, parse_timestamp, to_int

log = logging.getLogger(__name__)


def json_url(url: str) -> str:
    """``https://www.reddit.com/r/x/comments/id/slug/?utm=1`` -> ``.../slug.json``"""
    parts = urlsplit(url)
    path = parts.path.rstrip("/") or "/"
    if not path.endswith(".json"):
        path = f"{path}.json"
    return urlunsplit((parts.scheme or "https", parts.netloc, path, "", ""))


class RedditJSONAdapter(BaseAdapter):
    name = "Reddit JSON API"
    platform = Platform.REDDIT
    data_source = "Reddit JSON API"
    extraction_method = "Official API"
    authentic = True

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        api_key: str | None,
    ) -> VideoMetadata:
        data = await request_json(client, "GET", json_url(video_id or url), params={"raw_json": 1})
        try:
            post = data[0]["data"]["children"][0]["data"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("no post found in Reddit listing") from e
        if not post.get("title"):
            raise ProviderError("Reddit post has no title")

        video = first_present(post, "media.reddit_video", "secure_media.reddit_video", default={})
        author = post.get("author") or "[deleted]"
        log.debug("r/%s post %s fetched", post.get("subreddit"), post.get("id"))
        return self.build(
            url,
            title=post["title"],
            description=post.get("selftext") or "",
            views=to_int(post.get("view_count")),
            likes=to_int(post.get("score")),
            comments=to_int(post.get("num_comments")),
            shares=to_int(post.get("num_crossposts")),
            author=Author(username=author, display_name=author),
            published_at=parse_timestamp(post.get("created_utc")),
            duration_seconds=to_int(video.get("duration")),
            thumbnail_url=html.unescape(
                first_present(post, "preview.images.0.source.url", default="")
                or _thumbnail(post.get("thumbnail"))
            ),
        )


def _thumbnail(value: str | None) -> str:
    # Reddit uses "self", "default" and "nsfw" as placeholder thumbnails.
    if value and value.startswith("http"):
        return value
    return ""
