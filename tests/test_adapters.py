import asyncio
import json

import httpx
import pytest

import adapters.scraping as scraping
from adapters.base import request_json
from adapters.oembed import oembed_adapter
from adapters.rapidapi import (
    tiktok_general_rapidapi,
    tiktok_specialized_rapidapi,
    youtube_rapidapi,
)
from adapters.reddit import RedditJSONAdapter, json_url
from adapters.scraping import PageScrapingAdapter, find_video_object, interaction_counts
from adapters.tiktok import TikTokMobileAPIAdapter
from adapters.twitter import TwitterAPIAdapter
from adapters.youtube import InvidiousAdapter, YouTubeDataAPIAdapter
from core.errors import ProviderError, ProviderNotConfigured
from core.models import Credentials, Platform

YT_URL = "https://www.youtube.com/watch?v=abc123XYZ"
TT_URL = "https://www.tiktok.com/@dancer/video/7234567890123456789"
TT_ID = "7234567890123456789"


def run(handler, call):
    """Run ``call(client)`` against an httpx client backed by ``handler``."""

    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await call(client)

    return asyncio.run(main())


def recorder(responses):
    """Handler answering by host (or host+path), remembering every request."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        for key in (f"{request.url.host}{request.url.path}", request.url.host):
            if key in responses:
                status, body = responses[key]
                return httpx.Response(status, json=body)
        return httpx.Response(404, json={"error": "not mocked"})

    return handler, seen


# ── request_json ────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "status,retriable",
    [(400, False), (403, False), (404, False), (429, True), (500, True), (503, True)],
)
def test_request_json_status_mapping(status, retriable):
    handler, _ = recorder({"api.example.com": (status, {"error": {"message": "nope"}})})
    with pytest.raises(ProviderError) as exc:
        run(handler, lambda c: request_json(c, "GET", "https://api.example.com/x"))
    assert exc.value.retriable is retriable
    assert f"HTTP {status}" in exc.value.reason
    assert "nope" in exc.value.reason


def test_request_json_invalid_json_is_not_retriable():
    def handler(request):
        return httpx.Response(200, text="<html>")

    with pytest.raises(ProviderError) as exc:
        run(handler, lambda c: request_json(c, "GET", "https://api.example.com/x"))
    assert exc.value.retriable is False
    assert "invalid JSON" in exc.value.reason


def test_request_json_transport_error_is_retriable():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(ProviderError) as exc:
        run(handler, lambda c: request_json(c, "GET", "https://api.example.com/x"))
    assert exc.value.retriable is True


# ── YouTube ─────────────────────────────────────────────────────────

YT_VIDEO = {
    "items": [
        {
            "snippet": {
                "title": "Launch day",
                "description": "We shipped! #launch #rockets #launch",
                "channelId": "UC1",
                "channelTitle": "Rocket Lab",
                "publishedAt": "2024-03-01T12:00:00Z",
                "thumbnails": {"high": {"url": "https://i.ytimg.com/hq.jpg"}},
            },
            "statistics": {"viewCount": "10000", "likeCount": "600", "commentCount": "42"},
            "contentDetails": {"duration": "PT1H2M3S"},
        }
    ]
}
YT_CHANNEL = {
    "items": [
        {
            "snippet": {
                "customUrl": "@rocketlab",
                "description": "Space",
                "thumbnails": {"default": {"url": "https://yt3.ggpht.com/a.jpg"}},
            },
            "statistics": {"subscriberCount": "2500"},
        }
    ]
}


def test_youtube_data_api_maps_video_and_channel():
    handler, seen = recorder(
        {
            "www.googleapis.com/youtube/v3/videos": (200, YT_VIDEO),
            "www.googleapis.com/youtube/v3/channels": (200, YT_CHANNEL),
        }
    )
    creds = Credentials({"YOUTUBE_API_KEY": "yt-key"})
    md = run(handler, lambda c: YouTubeDataAPIAdapter().extract(c, YT_URL, "abc123XYZ", creds))

    assert md.title == "Launch day"
    assert md.engagement.views == 10000
    assert md.engagement.likes == 600
    assert md.engagement.comments == 42
    assert md.rating == 4
    assert md.duration_seconds == 3723
    assert md.hashtags == ["launch", "rockets"]
    assert md.author.username == "@rocketlab"
    assert md.author.display_name == "Rocket Lab"
    assert md.author.follower_count == 2500
    assert md.thumbnail_url == "https://i.ytimg.com/hq.jpg"
    assert md.published_at.year == 2024
    assert md.source_url == YT_URL
    assert md.provenance.is_authentic is True
    assert md.provenance.data_source == "YouTube Data API v3"
    assert seen[0].url.params["key"] == "yt-key"
    assert seen[0].url.params["id"] == "abc123XYZ"


def test_youtube_data_api_survives_missing_channel():
    handler, _ = recorder({"www.googleapis.com/youtube/v3/videos": (200, YT_VIDEO)})
    creds = Credentials({"YOUTUBE_API_KEY": "yt-key"})
    md = run(handler, lambda c: YouTubeDataAPIAdapter().extract(c, YT_URL, "abc123XYZ", creds))
    assert md.author.display_name == "Rocket Lab"
    assert md.author.follower_count == 0


def test_youtube_data_api_without_key_makes_no_request():
    handler, seen = recorder({})
    with pytest.raises(ProviderNotConfigured) as exc:
        run(handler, lambda c: YouTubeDataAPIAdapter().extract(c, YT_URL, "abc123XYZ", Credentials()))
    assert exc.value.credential == "YOUTUBE_API_KEY"
    assert seen == []


def test_youtube_data_api_empty_items():
    handler, _ = recorder({"www.googleapis.com/youtube/v3/videos": (200, {"items": []})})
    creds = Credentials({"YOUTUBE_API_KEY": "k"})
    with pytest.raises(ProviderError, match="not found"):
        run(handler, lambda c: YouTubeDataAPIAdapter().extract(c, YT_URL, "abc123XYZ", creds))


def test_invidious_rotates_to_next_instance():
    handler, seen = recorder(
        {
            "bad.example": (502, {}),
            "good.example": (
                200,
                {
                    "title": "Mirror video",
                    "description": "#mirror",
                    "viewCount": 1200,
                    "likeCount": 30,
                    "author": "Someone",
                    "authorId": "UC9",
                    "subCountText": "1.5K",
                    "lengthSeconds": 61,
                    "published": 1700000000,
                    "videoThumbnails": [{"url": "https://good.example/t.jpg"}],
                },
            ),
        }
    )
    adapter = InvidiousAdapter(["https://bad.example/", "https://good.example"])
    md = run(handler, lambda c: adapter.extract(c, YT_URL, "abc123XYZ", Credentials()))

    assert [r.url.host for r in seen] == ["bad.example", "good.example"]
    assert seen[1].url.path == "/api/v1/videos/abc123XYZ"
    assert md.title == "Mirror video"
    assert md.author.follower_count == 1500
    assert md.duration_seconds == 61
    assert md.provenance.is_authentic is False
    assert md.provenance.data_source == "Invidious API"


def test_invidious_all_instances_fail():
    handler, _ = recorder({"a.example": (503, {}), "b.example": (500, {})})
    adapter = InvidiousAdapter(["https://a.example", "https://b.example"])
    with pytest.raises(ProviderError) as exc:
        run(handler, lambda c: adapter.extract(c, YT_URL, "abc123XYZ", Credentials()))
    assert exc.value.retriable is True


# ── RapidAPI families ───────────────────────────────────────────────


def test_rapidapi_youtube_falls_through_services():
    handler, seen = recorder(
        {
            "youtube-v31.p.rapidapi.com": (403, {"message": "You are not subscribed to this API."}),
            "youtube-data8.p.rapidapi.com": (
                200,
                {
                    "title": "Flat shape",
                    "description": "#one #two",
                    "viewCount": "500",
                    "likeCount": "50",
                    "author": "Chan",
                    "lengthSeconds": "120",
                },
            ),
        }
    )
    creds = Credentials({"RAPIDAPI_KEY": "rk"})
    md = run(handler, lambda c: youtube_rapidapi().extract(c, YT_URL, "abc123XYZ", creds))

    assert [r.url.host for r in seen] == ["youtube-v31.p.rapidapi.com", "youtube-data8.p.rapidapi.com"]
    assert seen[0].method == "GET"
    assert seen[0].url.params["id"] == "abc123XYZ"
    assert seen[1].method == "POST"
    assert json.loads(seen[1].content) == {"url": YT_URL}
    assert seen[1].headers["X-RapidAPI-Key"] == "rk"
    assert seen[1].headers["X-RapidAPI-Host"] == "youtube-data8.p.rapidapi.com"
    assert md.title == "Flat shape"
    assert md.engagement.views == 500
    assert md.duration_seconds == 120
    assert md.hashtags == ["one", "two"]
    assert md.provenance.is_authentic is True
    assert md.provenance.data_source == "RapidAPI YouTube Data8"


def test_rapidapi_youtube_items_shape():
    handler, _ = recorder({"youtube-v31.p.rapidapi.com": (200, YT_VIDEO)})
    creds = Credentials({"RAPIDAPI_KEY": "rk"})
    md = run(handler, lambda c: youtube_rapidapi().extract(c, YT_URL, "abc123XYZ", creds))
    assert md.title == "Launch day"
    assert md.engagement.comments == 42
    assert md.provenance.data_source == "RapidAPI YouTube v3.1"


def test_rapidapi_family_reports_every_service_failure():
    handler, seen = recorder({})
    creds = Credentials({"RAPIDAPI_KEY_TIKTOK": "tk"})
    with pytest.raises(ProviderError) as exc:
        run(handler, lambda c: tiktok_specialized_rapidapi().extract(c, TT_URL, TT_ID, creds))
    assert len(seen) == 3
    for name in ("TikTok Scraper 7", "TikTok Full Info", "TikTok Video Data"):
        assert name in exc.value.reason


def test_rapidapi_tiktok_specialized_mapping():
    payload = {
        "data": {
            "video": {"desc": "Trick shot #golf #fyp", "createTime": 1700000000, "duration": 15, "cover": "https://c/1.jpg"},
            "author": {
                "uniqueId": "golfpro",
                "nickname": "Golf Pro",
                "followerCount": 9000,
                "verified": True,
                "avatarMedium": "https://c/a.jpg",
                "signature": "tee time",
            },
            "stats": {"playCount": 100000, "diggCount": 12000, "commentCount": 300, "shareCount": 45},
        }
    }
    handler, seen = recorder({"tiktok-scraper7.p.rapidapi.com": (200, payload)})
    creds = Credentials({"RAPIDAPI_KEY_TIKTOK": "tk"})
    md = run(handler, lambda c: tiktok_specialized_rapidapi().extract(c, TT_URL, TT_ID, creds))

    assert seen[0].method == "POST"
    assert md.engagement.views == 100000
    assert md.engagement.likes == 12000
    assert md.engagement.shares == 45
    assert md.rating == 5
    assert md.author.username == "golfpro"
    assert md.author.verified is True
    assert md.author.bio == "tee time"
    assert md.hashtags == ["golf", "fyp"]
    assert md.duration_seconds == 15
    assert md.platform is Platform.TIKTOK
    assert md.provenance.extraction_method == "Specialized API"
    assert md.provenance.data_source == "RapidAPI TikTok Scraper 7"


def test_rapidapi_tiktok_odd_shape_moves_on_to_next_service():
    handler, seen = recorder(
        {
            "tiktok-scraper7.p.rapidapi.com": (200, {"data": {"video": "https://cdn.example/v.mp4"}}),
            "tiktok-full-info.p.rapidapi.com": (
                200,
                {"data": {"video": {"desc": "Second try"}, "author": {"uniqueId": "backup"}, "stats": "n/a"}},
            ),
        }
    )
    creds = Credentials({"RAPIDAPI_KEY_TIKTOK": "tk"})
    md = run(handler, lambda c: tiktok_specialized_rapidapi().extract(c, TT_URL, TT_ID, creds))

    assert [r.url.host for r in seen] == ["tiktok-scraper7.p.rapidapi.com", "tiktok-full-info.p.rapidapi.com"]
    assert md.title == "Second try"
    assert md.author.username == "backup"
    assert md.engagement.views == 0
    assert md.provenance.data_source == "RapidAPI TikTok Full Info"


def test_rapidapi_mapper_crash_is_reported_and_skipped():
    handler, seen = recorder(
        {
            "youtube-v31.p.rapidapi.com": (200, {"items": [{"snippet": "oops"}]}),
            "youtube-data8.p.rapidapi.com": (200, {"title": "Fallback", "viewCount": "9"}),
        }
    )
    creds = Credentials({"RAPIDAPI_KEY": "rk"})
    md = run(handler, lambda c: youtube_rapidapi().extract(c, YT_URL, "abc123XYZ", creds))
    assert len(seen) == 2
    assert md.title == "Fallback"

    handler, _ = recorder({"youtube-v31.p.rapidapi.com": (200, {"items": [{"snippet": "oops"}]})})
    with pytest.raises(ProviderError) as exc:
        run(handler, lambda c: youtube_rapidapi().extract(c, YT_URL, "abc123XYZ", creds))
    assert "YouTube v3.1: unexpected payload" in exc.value.reason


def test_rapidapi_tiktok_general_mapping():
    payload = {
        "data": {
            "title": "Cooking #food",
            "play_count": 2000,
            "digg_count": 100,
            "comment_count": 7,
            "share_count": 3,
            "create_time": 1700000000,
            "author": {"unique_id": "chef", "nickname": "Chef"},
        }
    }
    handler, _ = recorder({"tiktok-video-no-watermark2.p.rapidapi.com": (200, payload)})
    creds = Credentials({"RAPIDAPI_KEY": "rk"})
    md = run(handler, lambda c: tiktok_general_rapidapi().extract(c, TT_URL, TT_ID, creds))
    assert md.title == "Cooking #food"
    assert md.engagement.views == 2000
    assert md.author.username == "chef"
    assert md.provenance.extraction_method == "General API"


def test_rapidapi_tiktok_general_needs_general_key():
    with pytest.raises(ProviderNotConfigured) as exc:
        run(
            recorder({})[0],
            lambda c: tiktok_general_rapidapi().extract(
                c, TT_URL, TT_ID, Credentials({"RAPIDAPI_KEY_TIKTOK": "tk"})
            ),
        )
    assert exc.value.credential == "RAPIDAPI_KEY"


# ── TikTok mobile API ───────────────────────────────────────────────


def test_tiktok_mobile_api_mapping():
    payload = {
        "aweme_detail": {
            "desc": "Sunset #beach",
            "create_time": 1700000000,
            "statistics": {"play_count": 5000, "digg_count": 400, "comment_count": 20, "share_count": 8},
            "author": {
                "unique_id": "surfer",
                "nickname": "Surfer",
                "follower_count": 321,
                "verification_type": 1,
                "avatar_medium": {"url_list": ["https://p/a.jpg"]},
                "signature": "waves",
            },
            "text_extra": [{"hashtag_name": "beach"}, {"hashtag_name": "sunset"}],
            "video": {"duration": 21000, "cover": {"url_list": ["https://p/c.jpg"]}},
        }
    }
    handler, seen = recorder({"api.tiktokv.com": (200, payload)})
    md = run(handler, lambda c: TikTokMobileAPIAdapter().extract(c, TT_URL, TT_ID, Credentials()))

    assert seen[0].url.params["aweme_id"] == TT_ID
    assert seen[0].headers["User-Agent"].startswith("com.ss.android.ugc.trill")
    assert md.engagement.views == 5000
    assert md.author.verified is True
    assert md.author.avatar_url == "https://p/a.jpg"
    assert md.hashtags == ["beach", "sunset"]
    assert md.duration_seconds == 21
    assert md.thumbnail_url == "https://p/c.jpg"
    assert md.provenance.is_authentic is True


def test_tiktok_mobile_api_rejects_short_link_without_request():
    handler, seen = recorder({})
    with pytest.raises(ProviderError, match="numeric"):
        run(handler, lambda c: TikTokMobileAPIAdapter().extract(c, "https://vm.tiktok.com/ZMabc/", "ZMabc", Credentials()))
    assert seen == []


def test_tiktok_mobile_api_missing_detail():
    handler, _ = recorder({"api.tiktokv.com": (200, {"status_code": 0, "status_msg": "removed"})})
    with pytest.raises(ProviderError, match="removed"):
        run(handler, lambda c: TikTokMobileAPIAdapter().extract(c, TT_URL, TT_ID, Credentials()))


# ── Reddit ──────────────────────────────────────────────────────────


def test_reddit_json_url():
    assert (
        json_url("https://www.reddit.com/r/videos/comments/abc/title/?utm_source=share#top")
        == "https://www.reddit.com/r/videos/comments/abc/title.json"
    )
    assert json_url("https://www.reddit.com/r/videos/comments/abc.json") == (
        "https://www.reddit.com/r/videos/comments/abc.json"
    )


def test_reddit_adapter_reads_first_listing():
    url = "https://www.reddit.com/r/videos/comments/abc/title/"
    listing = [
        {
            "data": {
                "children": [
                    {
                        "data": {
                            "id": "abc",
                            "subreddit": "videos",
                            "title": "Dog learns to skate",
                            "selftext": "so proud #dogs",
                            "author": "skater",
                            "score": 5400,
                            "num_comments": 210,
                            "created_utc": 1700000000.0,
                            "thumbnail": "self",
                            "media": {"reddit_video": {"duration": 33}},
                        }
                    }
                ]
            }
        },
        {"data": {"children": []}},
    ]
    handler, seen = recorder({"www.reddit.com/r/videos/comments/abc/title.json": (200, listing)})
    md = run(handler, lambda c: RedditJSONAdapter().extract(c, url, url, Credentials()))

    assert seen[0].url.params["raw_json"] == "1"
    assert md.title == "Dog learns to skate"
    assert md.engagement.likes == 5400
    assert md.engagement.comments == 210
    assert md.duration_seconds == 33
    assert md.thumbnail_url == ""
    assert md.hashtags == ["dogs"]
    assert md.provenance.is_authentic is True


def test_reddit_adapter_bad_listing():
    url = "https://www.reddit.com/r/videos/comments/abc/title/"
    handler, _ = recorder({"www.reddit.com": (200, {"kind": "Listing"})})
    with pytest.raises(ProviderError, match="no post"):
        run(handler, lambda c: RedditJSONAdapter().extract(c, url, url, Credentials()))


# ── Twitter API v2 ──────────────────────────────────────────────────


def test_twitter_api_v2_mapping():
    payload = {
        "data": {
            "id": "1790000000000000000",
            "text": "Watch this #space launch",
            "created_at": "2024-05-01T10:00:00.000Z",
            "public_metrics": {"like_count": 90, "reply_count": 4, "retweet_count": 10, "quote_count": 2, "impression_count": 3000},
            "entities": {"hashtags": [{"tag": "space"}]},
        },
        "includes": {
            "users": [{"username": "nasa", "name": "NASA", "verified": True, "public_metrics": {"followers_count": 100}}],
            "media": [{"type": "video", "duration_ms": 45000, "preview_image_url": "https://pbs/p.jpg"}],
        },
    }
    url = "https://twitter.com/nasa/status/1790000000000000000"
    handler, seen = recorder({"api.twitter.com": (200, payload)})
    creds = Credentials({"TWITTER_BEARER_TOKEN": "bt"})
    md = run(handler, lambda c: TwitterAPIAdapter().extract(c, url, "1790000000000000000", creds))

    assert seen[0].headers["Authorization"] == "Bearer bt"
    assert seen[0].url.path == "/2/tweets/1790000000000000000"
    assert md.engagement.views == 3000
    assert md.engagement.shares == 12
    assert md.author.username == "nasa"
    assert md.author.follower_count == 100
    assert md.duration_seconds == 45
    assert md.hashtags == ["space"]


def test_twitter_api_v2_error_payload():
    handler, _ = recorder({"api.twitter.com": (200, {"errors": [{"detail": "Could not find tweet"}]})})
    creds = Credentials({"TWITTER_BEARER_TOKEN": "bt"})
    with pytest.raises(ProviderError, match="Could not find tweet"):
        run(handler, lambda c: TwitterAPIAdapter().extract(c, "https://twitter.com/x/status/1", "1", creds))


# ── oEmbed ──────────────────────────────────────────────────────────


def test_youtube_oembed_is_basic_and_not_authentic():
    handler, seen = recorder(
        {
            "www.youtube.com/oembed": (
                200,
                {
                    "title": "Launch day",
                    "author_name": "Rocket Lab",
                    "author_url": "https://www.youtube.com/@rocketlab",
                    "thumbnail_url": "https://i.ytimg.com/hq.jpg",
                    "html": "<iframe></iframe>",
                },
            )
        }
    )
    adapter = oembed_adapter(Platform.YOUTUBE)
    md = run(handler, lambda c: adapter.extract(c, YT_URL, "abc123XYZ", Credentials()))

    assert adapter.last_resort is True
    assert seen[0].url.params["url"] == YT_URL
    assert seen[0].url.params["format"] == "json"
    assert md.title == "Launch day"
    assert md.author.username == "rocketlab"
    assert md.author.display_name == "Rocket Lab"
    assert md.engagement.views == 0
    assert md.rating == 0
    assert md.provenance.is_authentic is False
    assert md.provenance.data_source == "YouTube oEmbed"
    assert md.provenance.extraction_method == "Basic Info Only"


def test_twitter_oembed_takes_text_from_html():
    html = (
        '<blockquote class="twitter-tweet"><p lang="en">Hello #world</p>&mdash; Jane (@jane) '
        '<a href="https://twitter.com/jane/status/1">May 1, 2024</a></blockquote>\n'
        '<script async src="https://platform.twitter.com/widgets.js"></script>'
    )
    handler, _ = recorder(
        {"publish.twitter.com": (200, {"author_name": "Jane", "author_url": "https://twitter.com/jane", "html": html})}
    )
    md = run(
        handler,
        lambda c: oembed_adapter(Platform.TWITTER).extract(c, "https://twitter.com/jane/status/1", "1", Credentials()),
    )
    assert md.title.startswith("Hello #world")
    assert "widgets.js" not in md.description
    assert md.author.username == "jane"
    assert md.hashtags == ["world"]


def test_instagram_graph_oembed_needs_token():
    adapter = oembed_adapter(Platform.INSTAGRAM)
    assert adapter.last_resort is False
    assert adapter.required_credential == "FACEBOOK_ACCESS_TOKEN"

    handler, seen = recorder({"graph.facebook.com": (200, {"title": "Reel", "author_name": "insta"})})
    creds = Credentials({"FACEBOOK_ACCESS_TOKEN": "fb"})
    md = run(handler, lambda c: adapter.extract(c, "https://www.instagram.com/reel/Cxyz/", "Cxyz", creds))
    assert seen[0].url.path == "/v18.0/instagram_oembed"
    assert seen[0].url.params["access_token"] == "fb"
    assert md.provenance.is_authentic is False


# ── page scraping ───────────────────────────────────────────────────


class FakeElement:
    def __init__(self, attrib=None, text=""):
        self.attrib = attrib or {}
        self.text = text


class FakePage:
    def __init__(self, elements=None, status=200):
        self.status = status
        self._elements = elements or {}

    def css(self, selector):
        return self._elements.get(selector, [])


def test_scraping_open_graph_fallback(monkeypatch):
    page = FakePage(
        {
            'meta[property="og:title"]': [FakeElement({"content": "Cool dance | TikTok"})],
            'meta[property="og:description"]': [FakeElement({"content": "moves #dance"})],
            'meta[property="og:image"]': [FakeElement({"content": "https://img/og.jpg"})],
        }
    )
    adapter = PageScrapingAdapter(Platform.TIKTOK)
    monkeypatch.setattr(adapter, "_fetch_page", lambda url: page)
    md = asyncio.run(adapter.extract(None, TT_URL, TT_ID, Credentials()))

    assert md.title == "Cool dance"
    assert md.description == "moves #dance"
    assert md.hashtags == ["dance"]
    assert md.thumbnail_url == "https://img/og.jpg"
    assert md.provenance.is_authentic is False
    assert md.provenance.data_source == "Web Scraping"
    assert md.provenance.extraction_method == "HTML Parsing"


def test_scraping_prefers_json_ld_video_object(monkeypatch):
    ld = json.dumps(
        {
            "@context": "https://schema.org",
            "@graph": [
                {"@type": "WebPage", "name": "page"},
                {
                    "@type": "VideoObject",
                    "name": "Structured title",
                    "description": "From JSON-LD",
                    "duration": "PT2M5S",
                    "uploadDate": "2024-02-03T00:00:00Z",
                    "thumbnailUrl": ["https://img/ld.jpg"],
                    "author": {"name": "Creator", "alternateName": "@creator"},
                    "interactionStatistic": [
                        {"interactionType": {"@type": "WatchAction"}, "userInteractionCount": 777},
                        {"interactionType": "https://schema.org/LikeAction", "userInteractionCount": "77"},
                    ],
                },
            ],
        }
    )
    page = FakePage(
        {
            'script[type="application/ld+json"]': [FakeElement(text="{broken"), FakeElement(text=ld)],
            'meta[property="og:title"]': [FakeElement({"content": "OG title"})],
        }
    )
    adapter = PageScrapingAdapter(Platform.YOUTUBE)
    monkeypatch.setattr(adapter, "_fetch_page", lambda url: page)
    md = asyncio.run(adapter.extract(None, YT_URL, "abc123XYZ", Credentials()))

    assert md.title == "Structured title"
    assert md.engagement.views == 777
    assert md.engagement.likes == 77
    assert md.duration_seconds == 125
    assert md.author.username == "creator"
    assert md.thumbnail_url == "https://img/ld.jpg"
    assert md.provenance.is_authentic is False


def test_scraping_json_ld_with_odd_field_types(monkeypatch):
    ld = json.dumps(
        {
            "@type": "VideoObject",
            "name": ["Not", "a", "string"],
            "description": 42,
            "duration": 125,
            "author": 7,
            "interactionCount": "Infinity",
        }
    )
    page = FakePage(
        {
            'script[type="application/ld+json"]': [FakeElement(text=ld)],
            'meta[property="og:title"]': [FakeElement({"content": "OG title - YouTube"})],
            'meta[property="og:description"]': [FakeElement({"content": "OG description"})],
        }
    )
    adapter = PageScrapingAdapter(Platform.YOUTUBE)
    monkeypatch.setattr(adapter, "_fetch_page", lambda url: page)
    md = asyncio.run(adapter.extract(None, YT_URL, "abc123XYZ", Credentials()))

    assert md.title == "OG title"
    assert md.description == "OG description"
    assert md.duration_seconds == 0
    assert md.engagement.views == 0
    assert md.author.display_name == "Unknown"


def test_scraping_http_error_from_fetcher(monkeypatch):
    class FakeFetcher:
        def get(self, url, **kwargs):
            assert kwargs["stealthy_headers"] is True
            return FakePage(status=503)

    monkeypatch.setattr(scraping, "Fetcher", FakeFetcher)
    with pytest.raises(ProviderError) as exc:
        asyncio.run(PageScrapingAdapter(Platform.YOUTUBE).extract(None, YT_URL, "abc123XYZ", Credentials()))
    assert exc.value.retriable is True
    assert "HTTP 503" in exc.value.reason


def test_scraping_without_title_fails(monkeypatch):
    adapter = PageScrapingAdapter(Platform.FACEBOOK)
    monkeypatch.setattr(adapter, "_fetch_page", lambda url: FakePage())
    with pytest.raises(ProviderError, match="no title"):
        asyncio.run(adapter.extract(None, "https://www.facebook.com/watch/?v=1", "x", Credentials()))


def test_interaction_counts_and_video_object_helpers():
    assert interaction_counts({"interactionType": "http://schema.org/WatchAction", "userInteractionCount": 5}) == {
        "WatchAction": 5
    }
    assert interaction_counts("junk") == {}
    assert find_video_object(["[]", '{"@type": ["VideoObject", "Thing"], "name": "x"}'])["name"] == "x"
    assert find_video_object(["not json"]) is None


def test_build_dedupes_explicit_hashtags_before_capping():
    adapter = PageScrapingAdapter(Platform.TIKTOK)
    tags = ["fyp", "#fyp", "fyp"] + [f"t{i}" for i in range(12)]
    md = adapter.build(TT_URL, title="Tagged", hashtags=tags)
    assert len(md.hashtags) == adapter.hashtag_limit
    assert md.hashtags[:3] == ["fyp", "t0", "t1"]
