from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from core.normalize import calculate_rating, dedupe_hashtags

CREDENTIAL_LABELS: dict[str, str] = {
    "YOUTUBE_API_KEY": "YouTube API",
    "RAPIDAPI_KEY": "RapidAPI General",
    "RAPIDAPI_KEY_TIKTOK": "RapidAPI TikTok",
    "TWITTER_BEARER_TOKEN": "Twitter API",
    "FACEBOOK_ACCESS_TOKEN": "Facebook Graph",
}


class Platform(str, Enum):
    YOUTUBE = "YouTube"
    TIKTOK = "TikTok"
    REDDIT = "Reddit"
    FACEBOOK = "Facebook"
    INSTAGRAM = "Instagram"
    TWITTER = "Twitter"
    UNKNOWN = "Unknown"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    NOT_CONFIGURED = "notConfigured"
    NOT_ATTEMPTED = "notAttempted"


@dataclass
class Engagement:
    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0


@dataclass
class Author:
    username: str = ""
    display_name: str = ""
    follower_count: int = 0
    verified: bool = False
    avatar_url: str = ""
    bio: str = ""


@dataclass(frozen=True)
class Provenance:
    is_authentic: bool
    data_source: str
    extraction_method: str


@dataclass
class VideoMetadata:
    """Normalised metadata for one video, whichever provider produced it."""

    title: str
    description: str
    engagement: Engagement
    author: Author
    hashtags: list[str]
    platform: Platform
    source_url: str
    provenance: Provenance
    published_at: datetime | None = None
    duration_seconds: int = 0
    thumbnail_url: str = ""

    def __post_init__(self) -> None:
        self.hashtags = dedupe_hashtags(self.hashtags)

    @property
    def rating(self) -> int:
        return calculate_rating(self.engagement.views, self.engagement.likes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "engagement": {
                "views": self.engagement.views,
                "likes": self.engagement.likes,
                "comments": self.engagement.comments,
                "shares": self.engagement.shares,
            },
            "author": {
                "username": self.author.username,
                "displayName": self.author.display_name,
                "followerCount": self.author.follower_count,
                "verified": self.author.verified,
                "avatarUrl": self.author.avatar_url,
                "bio": self.author.bio,
            },
            "hashtags": list(self.hashtags),
            "platform": self.platform.value,
            "rating": self.rating,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "durationSeconds": self.duration_seconds,
            "thumbnailUrl": self.thumbnail_url,
            "sourceUrl": self.source_url,
            "provenance": {
                "isAuthentic": self.provenance.is_authentic,
                "dataSource": self.provenance.data_source,
                "extractionMethod": self.provenance.extraction_method,
            },
        }


@dataclass(frozen=True)
class ExtractionAttempt:
    """Diagnostic record for one adapter call."""

    method_name: str
    outcome: AttemptOutcome
    error_detail: str | None = None
    phase: str = "parallel"  # "parallel" or "sequential"

    def to_dict(self) -> dict[str, Any]:
        return {
            "methodName": self.method_name,
            "outcome": self.outcome.value,
            "errorDetail": self.error_detail,
            "phase": self.phase,
        }


@dataclass
class ExtractionReport:
    """Append-only log of what the resolver tried for one URL."""

    platform: Platform = Platform.UNKNOWN
    attempts: list[ExtractionAttempt] = field(default_factory=list)
    successful_method: str | None = None
    recommended_actions: list[str] = field(default_factory=list)
    credentials_available: frozenset[str] = frozenset()

    def record(self, attempt: ExtractionAttempt) -> None:
        self.attempts.append(attempt)

    @property
    def failure_reasons(self) -> list[str]:
        return [
            f"{a.method_name}: {a.error_detail}"
            for a in self.attempts
            if a.outcome is AttemptOutcome.FAILED and a.error_detail
        ]

    def attempted(self) -> list[ExtractionAttempt]:
        """Attempts that actually reached an adapter's fetch."""
        return [
            a
            for a in self.attempts
            if a.outcome in (AttemptOutcome.SUCCESS, AttemptOutcome.FAILED)
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform.value,
            "attempts": [a.to_dict() for a in self.attempts],
            "successfulMethod": self.successful_method,
            "failureReasons": self.failure_reasons,
            "recommendedActions": list(self.recommended_actions),
            "credentialsAvailable": sorted(self.credentials_available),
        }


@dataclass(frozen=True)
class Credentials:
    """Read-only provider secrets keyed by their configuration name."""

    values: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Any) -> Credentials:
        return cls(
            {
                name: str(getattr(settings, name, "") or "").strip()
                for name in CREDENTIAL_LABELS
            }
        )

    def get(self, name: str) -> str | None:
        value = self.values.get(name)
        return value or None

    def available(self) -> frozenset[str]:
        return frozenset(name for name, value in self.values.items() if value)
