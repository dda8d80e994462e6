"""Pure helpers shared by every adapter: hashtags, rating, durations, counts."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

DEFAULT_HASHTAG_LIMIT = 10

# \w already covers most scripts; the explicit blocks keep Hebrew and Arabic
# combining marks inside a tag.
_HASHTAG_RE = re.compile(r"#([\w\u0590-\u05FF\u0600-\u06FF]+)")
_ISO_DURATION_RE = re.compile(
    r"P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)(?:\.\d+)?S)?)?"
)
_COUNT_RE = re.compile(r"([\d.,]+)\s*([KMB])?", re.IGNORECASE)
_COUNT_SUFFIX = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}
_TITLE_SUFFIX_RE = re.compile(
    r"\s*[|\-–]\s*(TikTok|YouTube|Instagram|Facebook|Reddit|X|Twitter)\s*$",
    re.IGNORECASE,
)


def dedupe_hashtags(tags: Iterable[str], limit: int | None = None) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for tag in tags:
        if limit is not None and len(out) >= limit:
            break
        tag = (tag or "").strip().lstrip("#")
        if not tag or tag in seen:
            continue
        seen.add(tag)
        out.append(tag)
    return out


def extract_hashtags(text: str, limit: int = DEFAULT_HASHTAG_LIMIT) -> list[str]:
    """Pull ``#tag`` tokens out of free text, deduplicated in first-seen order."""
    if not text:
        return []
    return dedupe_hashtags(_HASHTAG_RE.findall(text), limit=limit)


def calculate_rating(views: int, likes: int) -> int:
    """Map the like/view engagement rate onto a 0-5 score."""
    if views <= 0:
        return 0
    rate = likes / views * 100
    if rate >= 10:
        return 5
    if rate >= 5:
        return 4
    if rate >= 2:
        return 3
    if rate >= 1:
        return 2
    return 1


def parse_iso8601_duration(text: str | None) -> int:
    """Convert ISO-8601 durations (``PT1H2M3S``) into seconds, 0 when unparseable."""
    if not text:
        return 0
    match = _ISO_DURATION_RE.fullmatch(text.strip().upper())
    if not match:
        return 0
    days, hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def to_int(value: Any) -> int:
    """Lenient, non-negative integer coercion for provider payload fields."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        try:
            return max(int(value), 0)
        except (OverflowError, ValueError):
            return 0
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "").replace("_", "")
        try:
            return max(int(float(cleaned)), 0)
        except (OverflowError, ValueError):
            return 0
    return 0


def parse_count_text(text: str | None) -> int:
    """Parse human counts such as ``1.2M subscribers`` or ``12,345 views``."""
    if not text:
        return 0
    match = _COUNT_RE.search(str(text))
    if not match:
        return 0
    number, suffix = match.groups()
    number = number.replace(",", "")
    try:
        value = float(number)
    except ValueError:
        return 0
    if suffix:
        value *= _COUNT_SUFFIX[suffix.upper()]
    return int(round(value))


def parse_timestamp(value: Any) -> datetime | None:
    """Accept epoch seconds or ISO-8601 strings; return an aware UTC datetime."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
        seconds = float(value)
        if seconds <= 0:
            return None
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def first_present(source: Mapping[str, Any] | None, *keys: str, default: Any = None) -> Any:
    """Return the first non-empty value among ``keys``.

    Keys may be dotted paths (``"author.unique_id"``, ``"images.0.url"``) so
    one call can probe the differently shaped payloads third-party APIs
    return for the same data.
    """
    if not isinstance(source, Mapping):
        return default
    for key in keys:
        node: Any = source
        for part in key.split("."):
            if isinstance(node, list) and part.isdigit():
                index = int(part)
                node = node[index] if index < len(node) else None
            elif isinstance(node, Mapping):
                node = node.get(part)
            else:
                node = None
                break
        if node not in (None, "", [], {}):
            return node
    return default


def clean_title(title: str | None) -> str:
    if not title:
        return ""
    return _TITLE_SUFFIX_RE.sub("", title.strip())
