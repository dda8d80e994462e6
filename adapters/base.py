from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import httpx

from core.errors import ProviderError, ProviderNotConfigured
from core.models import Author, Credentials, Engagement, Platform, Provenance, VideoMetadata
from core.normalize import DEFAULT_HASHTAG_LIMIT, dedupe_hashtags, extract_hashtags

log = logging.getLogger(__name__)


class BaseAdapter(ABC):
    """One data source for one platform.

    ``name`` is what the extraction report lists; ``data_source`` and
    ``extraction_method`` end up in the result's provenance together with
    ``authentic``, so scraping and oEmbed subclasses cannot claim otherwise.
    """

    name: str
    platform: Platform
    data_source: str
    extraction_method: str
    required_credential: str | None = None
    authentic: bool = False
    last_resort: bool = False
    hashtag_limit: int = DEFAULT_HASHTAG_LIMIT

    async def extract(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        credentials: Credentials,
    ) -> VideoMetadata:
        api_key = None
        if self.required_credential:
            api_key = credentials.get(self.required_credential)
            if not api_key:
                raise ProviderNotConfigured(self.required_credential)
        return await self.fetch(client, url, video_id, api_key)

    @abstractmethod
    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        api_key: str | None,
    ) -> VideoMetadata:
        """Perform the provider call(s) and map the payload."""
        ...

    def build(
        self,
        url: str,
        *,
        title: str,
        description: str = "",
        views: int = 0,
        likes: int = 0,
        comments: int = 0,
        shares: int = 0,
        author: Author | None = None,
        hashtags: list[str] | None = None,
        published_at: datetime | None = None,
        duration_seconds: int = 0,
        thumbnail_url: str = "",
        data_source: str | None = None,
    ) -> VideoMetadata:
        if hashtags is None:
            hashtags = extract_hashtags(description, limit=self.hashtag_limit)
        return VideoMetadata(
            title=title or f"{self.platform.value} Video",
            description=description or "",
            engagement=Engagement(views=views, likes=likes, comments=comments, shares=shares),
            author=author or Author(),
            hashtags=dedupe_hashtags(hashtags, limit=self.hashtag_limit),
            platform=self.platform,
            source_url=url,
            provenance=Provenance(
                is_authentic=self.authentic,
                data_source=data_source or self.data_source,
                extraction_method=self.extraction_method,
            ),
            published_at=published_at,
            duration_seconds=duration_seconds,
            thumbnail_url=thumbnail_url or "",
        )


class RateLimiter:
    """Simple token-bucket style rate limiter."""

    def __init__(self, delay_seconds: float = 2.0) -> None:
        self._delay = delay_seconds
        self._lock = asyncio.Lock()
        self._last_request: float = 0.0

    async def wait(self) -> None:
        async with self._lock:
            now = asyncio.get_running_loop().time()
            elapsed = now - self._last_request
            if elapsed < self._delay:
                await asyncio.sleep(self._delay - elapsed)
            self._last_request = asyncio.get_running_loop().time()


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """Send one request and decode JSON, translating failures into ``ProviderError``."""
    try:
        resp = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise ProviderError(f"request timed out: {exc}", retriable=True) from exc
    except httpx.HTTPError as exc:
        raise ProviderError(f"transport error: {exc}", retriable=True) from exc

    if resp.status_code >= 400:
        raise ProviderError(
            f"HTTP {resp.status_code} from {resp.url.host}: {_error_message(resp)}",
            retriable=resp.status_code == 429 or resp.status_code >= 500,
        )
    try:
        return resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProviderError(f"invalid JSON from {resp.url.host}") from exc


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return resp.reason_phrase or "error"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if body.get("message"):
            return str(body["message"])
    return resp.reason_phrase or "error"
