from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from adapters.base import BaseAdapter, request_json
from core.errors import ProviderError
from core.models import Author, Platform, VideoMetadata
from core.normalize import first_present, parse_iso8601_duration, parse_timestamp, to_int

log = logging.getLogger(__name__)

# A mapper turns one service's JSON into metadata, or returns None when the
# payload does not carry a video.
ResponseMapper = Callable[[BaseAdapter, str, Any], "VideoMetadata | None"]


@dataclass(frozen=True)
class RapidAPIService:
    """One RapidAPI host and how to call it."""

    name: str
    host: str
    path: str
    mapper: ResponseMapper
    method: str = "POST"
    # Query parameters; "{video_id}" and "{url}" are filled in per call.
    params: dict[str, str] = field(default_factory=dict)
    # POST services receive {"url": <video url>} as their JSON body.
    send_url_body: bool = True

    def request_kwargs(self, api_key: str, url: str, video_id: str) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "headers": {"X-RapidAPI-Key": api_key, "X-RapidAPI-Host": self.host},
        }
        if self.params:
            kwargs["params"] = {
                k: v.format(video_id=video_id, url=url) for k, v in self.params.items()
            }
        if self.method == "POST" and self.send_url_body:
            kwargs["json"] = {"url": url}
        return kwargs


# ── response mappers ────────────────────────────────────────────────


def map_youtube(adapter: BaseAdapter, url: str, data: Any) -> VideoMetadata | None:
    """YouTube-clone APIs answer either Data-API style ``items`` or a flat object."""
    if not isinstance(data, dict):
        return None
    items = data.get("items")
    if isinstance(items, list) and items:
        video = items[0] if isinstance(items[0], dict) else {}
        snippet = video.get("snippet") or {}
        stats = video.get("statistics") or {}
        channel = snippet.get("channelTitle") or "Unknown"
        return adapter.build(
            url,
            title=snippet.get("title") or "YouTube Video",
            description=snippet.get("description") or "",
            views=to_int(stats.get("viewCount")),
            likes=to_int(stats.get("likeCount")),
            comments=to_int(stats.get("commentCount")),
            author=Author(username=channel, display_name=channel),
            published_at=parse_timestamp(snippet.get("publishedAt")),
            duration_seconds=parse_iso8601_duration(
                (video.get("contentDetails") or {}).get("duration")
            ),
            thumbnail_url=first_present(snippet, "thumbnails.high.url", default=""),
        )
    if data.get("title"):
        channel = first_present(data, "channelTitle", "author", "channel.name", default="Unknown")
        stats = data.get("stats") if isinstance(data.get("stats"), dict) else data
        duration = data.get("lengthSeconds") or data.get("duration")
        return adapter.build(
            url,
            title=data["title"],
            description=first_present(data, "description", default=""),
            views=to_int(first_present(stats, "viewCount", "views")),
            likes=to_int(first_present(stats, "likeCount", "likes")),
            comments=to_int(first_present(stats, "commentCount", "comments")),
            author=Author(
                username=channel,
                display_name=channel,
                follower_count=to_int(first_present(data, "subscriberCount", "channel.subscribers")),
            ),
            published_at=parse_timestamp(first_present(data, "publishedAt", "publishedDate")),
            duration_seconds=parse_iso8601_duration(duration)
            if isinstance(duration, str) and duration.upper().startswith("P")
            else to_int(duration),
            thumbnail_url=_thumbnail(data),
        )
    return None


def map_tiktok_specialized(adapter: BaseAdapter, url: str, data: Any) -> VideoMetadata | None:
    """Scraper-style APIs nest ``video``/``author``/``stats`` under ``data``."""
    if not isinstance(data, dict) or not (data.get("data") or data.get("video")):
        return None
    inner = data.get("data") if isinstance(data.get("data"), Mapping) else {}
    video = inner.get("video") or data.get("video") or inner or data
    if not isinstance(video, Mapping):
        video = {}
    author = inner.get("author") or data.get("author") or video.get("author") or {}
    stats = inner.get("stats") or data.get("stats") or video.get("stats") or {}
    if not isinstance(author, Mapping):
        author = {}
    if not isinstance(stats, Mapping):
        stats = {}
    if not video and not author:
        return None
    desc = first_present(video, "desc", "title", default="")
    return adapter.build(
        url,
        title=desc or "TikTok Video",
        description=desc,
        views=to_int(first_present(stats, "playCount", "play_count") or video.get("playCount")),
        likes=to_int(first_present(stats, "diggCount", "digg_count") or video.get("diggCount")),
        comments=to_int(first_present(stats, "commentCount", "comment_count") or video.get("commentCount")),
        shares=to_int(first_present(stats, "shareCount", "share_count") or video.get("shareCount")),
        author=Author(
            username=first_present(author, "uniqueId", "unique_id", "username", default="Unknown"),
            display_name=first_present(author, "nickname", "displayName", default="Unknown"),
            follower_count=to_int(first_present(author, "followerCount", "follower_count")),
            verified=bool(author.get("verified")),
            avatar_url=first_present(author, "avatarMedium", "avatar", default=""),
            bio=first_present(author, "signature", "bio", default=""),
        ),
        published_at=parse_timestamp(first_present(video, "createTime", "create_time")),
        duration_seconds=to_int(video.get("duration")),
        thumbnail_url=first_present(video, "cover", "thumbnail", "origin_cover", default=""),
    )


def map_tiktok_general(adapter: BaseAdapter, url: str, data: Any) -> VideoMetadata | None:
    """Downloader-style APIs use snake_case fields under ``data``/``video``/``result``."""
    if not isinstance(data, dict):
        return None
    info = first_present(data, "data", "video", "result")
    if not isinstance(info, dict):
        return None
    author = first_present(info, "author", "creator", default={})
    if not isinstance(author, dict):
        author = {}
    desc = first_present(info, "desc", "description", "title", default="")
    return adapter.build(
        url,
        title=first_present(info, "title", "desc", default="TikTok Video"),
        description=desc,
        views=to_int(first_present(info, "play_count", "playCount", "viewCount")),
        likes=to_int(first_present(info, "digg_count", "likeCount", "likes")),
        comments=to_int(first_present(info, "comment_count", "commentCount", "comments")),
        shares=to_int(first_present(info, "share_count", "shareCount", "shares")),
        author=Author(
            username=first_present(author, "unique_id", "username", default="Unknown"),
            display_name=first_present(author, "nickname", "display_name", "name", default="Unknown"),
            follower_count=to_int(first_present(author, "follower_count", "followers")),
            verified=bool(author.get("verified")),
            avatar_url=first_present(author, "avatar", default=""),
            bio=first_present(author, "signature", "bio", default=""),
        ),
        published_at=parse_timestamp(first_present(info, "create_time", "createTime")),
        duration_seconds=to_int(info.get("duration")),
        thumbnail_url=first_present(info, "cover", "thumbnail", "origin_cover", default=""),
    )


def _thumbnail(data: dict) -> str:
    thumb = first_present(data, "thumbnail", "thumbnails")
    if isinstance(thumb, str):
        return thumb
    if isinstance(thumb, list):
        for item in reversed(thumb):
            if isinstance(item, dict) and item.get("url"):
                return str(item["url"])
    return ""


# ── service tables ──────────────────────────────────────────────────

YOUTUBE_SERVICES: tuple[RapidAPIService, ...] = (
    RapidAPIService(
        name="YouTube v3.1",
        host="youtube-v31.p.rapidapi.com",
        path="/videos",
        method="GET",
        params={"part": "snippet,statistics", "id": "{video_id}"},
        mapper=map_youtube,
    ),
    RapidAPIService(
        name="YouTube Data8",
        host="youtube-data8.p.rapidapi.com",
        path="/video/details/",
        mapper=map_youtube,
    ),
    RapidAPIService(
        name="YouTube Search and Download",
        host="youtube-search-and-download.p.rapidapi.com",
        path="/video/details",
        method="GET",
        params={"id": "{video_id}"},
        mapper=map_youtube,
    ),
)

TIKTOK_SPECIALIZED_SERVICES: tuple[RapidAPIService, ...] = (
    RapidAPIService(
        name="TikTok Scraper 7",
        host="tiktok-scraper7.p.rapidapi.com",
        path="/video/info",
        mapper=map_tiktok_specialized,
    ),
    RapidAPIService(
        name="TikTok Full Info",
        host="tiktok-full-info.p.rapidapi.com",
        path="/video/info",
        mapper=map_tiktok_specialized,
    ),
    RapidAPIService(
        name="TikTok Video Data",
        host="tiktok-video-data.p.rapidapi.com",
        path="/video/details",
        mapper=map_tiktok_specialized,
    ),
)

TIKTOK_GENERAL_SERVICES: tuple[RapidAPIService, ...] = (
    RapidAPIService(
        name="TikTok Video No Watermark",
        host="tiktok-video-no-watermark2.p.rapidapi.com",
        path="/video/info",
        mapper=map_tiktok_general,
    ),
    RapidAPIService(
        name="TikTok Download Without Watermark",
        host="tiktok-download-without-watermark.p.rapidapi.com",
        path="/video-info",
        mapper=map_tiktok_general,
    ),
    RapidAPIService(
        name="TikTok API by Toolbench",
        host="tiktok-api25.p.rapidapi.com",
        path="/video/info",
        mapper=map_tiktok_general,
    ),
)


class RapidAPIFamilyAdapter(BaseAdapter):
    """Tries each service of a family in order; the first one that maps wins."""

    authentic = True

    def __init__(
        self,
        *,
        name: str,
        platform: Platform,
        extraction_method: str,
        required_credential: str,
        services: tuple[RapidAPIService, ...],
        hashtag_limit: int = 15,
    ) -> None:
        self.name = name
        self.platform = platform
        self.data_source = name
        self.extraction_method = extraction_method
        self.required_credential = required_credential
        self.services = services
        self.hashtag_limit = hashtag_limit

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        api_key: str | None,
    ) -> VideoMetadata:
        errors: list[str] = []
        retriable = False
        for service in self.services:
            try:
                data = await request_json(
                    client,
                    service.method,
                    f"https://{service.host}{service.path}",
                    **service.request_kwargs(api_key or "", url, video_id),
                )
            except ProviderError as e:
                errors.append(f"{service.name}: {e.reason}")
                retriable = retriable or e.retriable
                log.debug("RapidAPI service %s failed: %s", service.name, e)
                continue
            try:
                metadata = service.mapper(self, url, data)
            except (KeyError, TypeError, AttributeError, ValueError) as e:
                errors.append(f"{service.name}: unexpected payload")
                log.debug("RapidAPI service %s sent an unexpected payload: %s", service.name, e)
                continue
            if metadata is None:
                errors.append(f"{service.name}: no video in response")
                continue
            log.info("RapidAPI service %s answered for %s", service.name, url)
            return _with_source(metadata, f"RapidAPI {service.name}")
        raise ProviderError(f"all {self.name} failed: {'; '.join(errors)}", retriable=retriable)


def _with_source(metadata: VideoMetadata, data_source: str) -> VideoMetadata:
    metadata.provenance = replace(metadata.provenance, data_source=data_source)
    return metadata


def youtube_rapidapi() -> RapidAPIFamilyAdapter:
    return RapidAPIFamilyAdapter(
        name="RapidAPI YouTube Services",
        platform=Platform.YOUTUBE,
        extraction_method="RapidAPI",
        required_credential="RAPIDAPI_KEY",
        services=YOUTUBE_SERVICES,
    )


def tiktok_specialized_rapidapi() -> RapidAPIFamilyAdapter:
    return RapidAPIFamilyAdapter(
        name="RapidAPI TikTok Scraper",
        platform=Platform.TIKTOK,
        extraction_method="Specialized API",
        required_credential="RAPIDAPI_KEY_TIKTOK",
        services=TIKTOK_SPECIALIZED_SERVICES,
    )


def tiktok_general_rapidapi() -> RapidAPIFamilyAdapter:
    return RapidAPIFamilyAdapter(
        name="General RapidAPI TikTok Services",
        platform=Platform.TIKTOK,
        extraction_method="General API",
        required_credential="RAPIDAPI_KEY",
        services=TIKTOK_GENERAL_SERVICES,
    )
