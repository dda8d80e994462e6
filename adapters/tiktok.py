from __future__ import annotations

import httpx

from adapters.base import BaseAdapter, request_json
from core.errors import ProviderError
from core.models import Author, Platform, VideoMetadata
from core.normalize import first_present, parse_timestamp, to_int

MOBILE_API_URL = "https://api.tiktokv.com/aweme/v1/aweme/detail/"
MOBILE_USER_AGENT = "com.ss.android.ugc.trill/494+ (Linux; U; Android 10; en_US; Pixel 4; Build/QQ3A.200805.001; Cronet/58.0.2991.0)"


class TikTokMobileAPIAdapter(BaseAdapter):
    """TikTok's own app backend. Only works with numeric ids, not short-link tokens."""

    name = "TikTok Mobile API"
    platform = Platform.TIKTOK
    data_source = "TikTok Mobile API"
    extraction_method = "Mobile API"
    authentic = True
    hashtag_limit = 15

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        video_id: str,
        api_key: str | None,
    ) -> VideoMetadata:
        if not video_id.isdigit():
            raise ProviderError(f"needs a numeric video id, got short link {video_id!r}")
        data = await request_json(
            client,
            "GET",
            MOBILE_API_URL,
            params={"aweme_id": video_id},
            headers={"User-Agent": MOBILE_USER_AGENT},
        )
        aweme = data.get("aweme_detail") if isinstance(data, dict) else None
        if not aweme:
            status = data.get("status_msg") if isinstance(data, dict) else None
            raise ProviderError(f"no aweme_detail in response{f': {status}' if status else ''}")

        stats = aweme.get("statistics") or {}
        author = aweme.get("author") or {}
        desc = aweme.get("desc") or ""
        # text_extra carries the hashtags TikTok itself parsed out of the caption.
        tags = [t.get("hashtag_name") for t in aweme.get("text_extra") or [] if isinstance(t, dict)]
        return self.build(
            url,
            title=desc or "TikTok Video",
            description=desc,
            views=to_int(stats.get("play_count")),
            likes=to_int(stats.get("digg_count")),
            comments=to_int(stats.get("comment_count")),
            shares=to_int(stats.get("share_count")),
            author=Author(
                username=author.get("unique_id") or "Unknown",
                display_name=author.get("nickname") or "Unknown",
                follower_count=to_int(author.get("follower_count")),
                verified=author.get("verification_type") == 1,
                avatar_url=first_present(author, "avatar_medium.url_list.0", default=""),
                bio=author.get("signature") or "",
            ),
            hashtags=[t for t in tags if t] or None,
            published_at=parse_timestamp(aweme.get("create_time")),
            # Mobile API reports milliseconds under video.duration.
            duration_seconds=to_int(aweme.get("duration"))
            or to_int(first_present(aweme, "video.duration")) // 1000,
            thumbnail_url=first_present(aweme, "video.cover.url_list.0", default=""),
        )
