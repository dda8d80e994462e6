from __future__ import annotations

import re

from core.errors import MalformedUrl, UnsupportedPlatform
from core.models import Platform

# Order matters: the first hostname contained in the URL decides the platform.
PLATFORM_HOSTS: tuple[tuple[str, Platform], ...] = (
    ("youtube.com", Platform.YOUTUBE),
    ("youtu.be", Platform.YOUTUBE),
    ("tiktok.com", Platform.TIKTOK),
    ("vm.tiktok.com", Platform.TIKTOK),
    ("reddit.com", Platform.REDDIT),
    ("facebook.com", Platform.FACEBOOK),
    ("instagram.com", Platform.INSTAGRAM),
    ("twitter.com", Platform.TWITTER),
)

_ID_PATTERNS: dict[Platform, tuple[re.Pattern[str], ...]] = {
    Platform.YOUTUBE: (
        re.compile(r"youtube\.com/.*[?&]v=([\w-]+)", re.IGNORECASE),
        re.compile(r"youtu\.be/([\w-]+)", re.IGNORECASE),
        re.compile(r"youtube\.com/(?:embed|shorts|v|live)/([\w-]+)", re.IGNORECASE),
    ),
    Platform.TIKTOK: (
        re.compile(r"tiktok\.com/.*/video/(\d+)", re.IGNORECASE),
        re.compile(r"tiktok\.com/v/(\d+)", re.IGNORECASE),
        re.compile(r"(?:vm|vt)\.tiktok\.com/([A-Za-z0-9]+)", re.IGNORECASE),
    ),
    Platform.TWITTER: (re.compile(r"twitter\.com/[^/]+/status(?:es)?/(\d+)", re.IGNORECASE),),
    Platform.INSTAGRAM: (re.compile(r"instagram\.com/(?:[^/]+/)?(?:p|reels?|tv)/([\w-]+)", re.IGNORECASE),),
}

# These platforms hand the whole URL to their adapters.
_PASS_THROUGH = frozenset({Platform.REDDIT, Platform.FACEBOOK})


def detect(url: str) -> Platform:
    """Classify ``url`` by hostname substring, or raise ``UnsupportedPlatform``."""
    lowered = (url or "").strip().lower()
    for host, platform in PLATFORM_HOSTS:
        if host in lowered:
            return platform
    raise UnsupportedPlatform(f"platform not supported: {url!r}")


def extract_platform_id(url: str, platform: Platform) -> str:
    """Return the platform-specific identifier adapters key their requests on."""
    url = (url or "").strip()
    if platform in _PASS_THROUGH:
        if not url.lower().startswith(("http://", "https://")):
            raise MalformedUrl(f"expected an absolute {platform.value} URL: {url!r}")
        return url
    patterns = _ID_PATTERNS.get(platform)
    if not patterns:
        raise UnsupportedPlatform(f"platform not supported: {platform.value}")
    for pattern in patterns:
        match = pattern.search(url)
        if match:
            return match.group(1)
    raise MalformedUrl(f"could not find a {platform.value} id in {url!r}")


def supported_platforms() -> list[Platform]:
    seen: list[Platform] = []
    for _, platform in PLATFORM_HOSTS:
        if platform not in seen:
            seen.append(platform)
    return seen
