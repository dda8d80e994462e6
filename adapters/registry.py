"""Per-platform adapter chains. List order is priority order."""

from __future__ import annotations

from typing import Any

from adapters.base import BaseAdapter
from adapters.oembed import oembed_adapter
from adapters.rapidapi import (
    tiktok_general_rapidapi,
    tiktok_specialized_rapidapi,
    youtube_rapidapi,
)
from adapters.reddit import RedditJSONAdapter
from adapters.scraping import PageScrapingAdapter
from adapters.tiktok import TikTokMobileAPIAdapter
from adapters.twitter import TwitterAPIAdapter
from adapters.youtube import InvidiousAdapter, YouTubeDataAPIAdapter
from core.models import Platform
from core.normalize import DEFAULT_HASHTAG_LIMIT


def build_adapter_chain(platform: Platform, settings: Any) -> list[BaseAdapter]:
    """Official API, then third-party APIs, then mirrors, then oEmbed, then scraping."""
    if platform is Platform.YOUTUBE:
        chain: list[BaseAdapter] = [
            YouTubeDataAPIAdapter(),
            youtube_rapidapi(),
            InvidiousAdapter(getattr(settings, "invidious_instances", [])),
        ]
    elif platform is Platform.TIKTOK:
        chain = [
            tiktok_specialized_rapidapi(),
            tiktok_general_rapidapi(),
            TikTokMobileAPIAdapter(),
        ]
    elif platform is Platform.REDDIT:
        chain = [RedditJSONAdapter()]
    elif platform is Platform.TWITTER:
        chain = [TwitterAPIAdapter()]
    elif platform in (Platform.INSTAGRAM, Platform.FACEBOOK):
        chain = []
    else:
        return []
    chain.append(oembed_adapter(platform))
    chain.append(PageScrapingAdapter(platform))

    limit = getattr(settings, "HASHTAG_LIMIT", DEFAULT_HASHTAG_LIMIT)
    for adapter in chain:
        # Adapters that declare their own cap keep it.
        if adapter.hashtag_limit == DEFAULT_HASHTAG_LIMIT:
            adapter.hashtag_limit = limit
    return chain


def build_all_chains(settings: Any) -> dict[Platform, list[BaseAdapter]]:
    return {
        platform: build_adapter_chain(platform, settings)
        for platform in Platform
        if platform is not Platform.UNKNOWN
    }
