from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass

import httpx

from adapters.base import BaseAdapter, request_json
from core.errors import ProviderError
from core.models import Author, Platform, VideoMetadata
from core.normalize import clean_title, first_present

log = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com/v18.0"

_TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class OEmbedEndpoint:
    name: str
    platform: Platform
    endpoint: str
    # Graph endpoints need an app token; public endpoints are last-resort only.
    required_credential: str | None = None


OEMBED_ENDPOINTS: dict[Platform, OEmbedEndpoint] = {
    Platform.YOUTUBE: OEmbedEndpoint(
        name="YouTube oEmbed",
        platform=Platform.YOUTUBE,
        endpoint="https://www.youtube.com/oembed",
    ),
    Platform.TIKTOK: OEmbedEndpoint(
        name="TikTok oEmbed",
        platform=Platform.TIKTOK,
        endpoint="https://www.tiktok.com/oembed",
    ),
    Platform.REDDIT: OEmbedEndpoint(
        name="Reddit oEmbed",
        platform=Platform.REDDIT,
        endpoint="https://www.reddit.com/oembed",
    ),
    Platform.TWITTER: OEmbedEndpoint(
        name="Twitter oEmbed",
        platform=Platform.TWITTER,
        endpoint="https://publish.twitter.com/oembed",
    ),
    Platform.INSTAGRAM: OEmbedEndpoint(
        name="Instagram Graph oEmbed",
        platform=Platform.INSTAGRAM,
        endpoint=f"{GRAPH_API_BASE}/instagram_oembed",
        required_credential="FACEBOOK_ACCESS_TOKEN",
    ),
    Platform.FACEBOOK: OEmbedEndpoint(
        name="Facebook Graph oEmbed",
        platform=Platform.FACEBOOK,
        endpoint=f"{GRAPH_API_BASE}/oembed_video",
        required_credential="FACEBOOK_ACCESS_TOKEN",
    ),
}


class OEmbedAdapter(BaseAdapter):
    """oEmbed lookups: title, author and thumbnail only, never engagement."""

    extraction_method = "Basic Info Only"
    authentic = False

    def __init__(self, endpoint: OEmbedEndpoint) -> None:
        self.endpoint = endpoint
        self.name = endpoint.name
        self.platform = endpoint.platform
        self.data_source = endpoint.name
        self.required_credential = endpoint.required_credential
        self.last_resort = endpoint.required_credential is None

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        api_key: str | None,
    ) -> VideoMetadata:
        params = {"url": url, "format": "json"}
        if api_key:
            params["access_token"] = api_key
        data = await request_json(client, "GET", self.endpoint.endpoint, params=params)
        if not isinstance(data, dict):
            raise ProviderError(f"unexpected oEmbed payload from {self.name}")

        title = clean_title(data.get("title")) or _text_from_html(data.get("html"))
        if not title:
            raise ProviderError(f"{self.name} returned no title")
        author_name = data.get("author_name") or "Unknown"
        return self.build(
            url,
            title=title,
            description=_text_from_html(data.get("html")),
            author=Author(
                username=first_present(data, "author_unique_id", default="")
                or _handle_from_url(data.get("author_url"))
                or author_name,
                display_name=author_name,
            ),
            thumbnail_url=data.get("thumbnail_url") or "",
        )


def _text_from_html(markup: str | None) -> str:
    if not markup:
        return ""
    # Embed snippets ship a <script> tag after the quoted post.
    markup = markup.split("<script", 1)[0]
    return " ".join(html.unescape(_TAG_RE.sub(" ", markup)).split())


def _handle_from_url(author_url: str | None) -> str:
    if not author_url:
        return ""
    return author_url.rstrip("/").rsplit("/", 1)[-1].lstrip("@")


def oembed_adapter(platform: Platform) -> OEmbedAdapter:
    return OEmbedAdapter(OEMBED_ENDPOINTS[platform])
