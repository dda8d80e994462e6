"""Remediation hints attached to a report when every provider failed."""

from __future__ import annotations

from core.models import (
    CREDENTIAL_LABELS,
    AttemptOutcome,
    Credentials,
    ExtractionReport,
    Platform,
)

# Advice for credentials an adapter needed but did not get.
MISSING_CREDENTIAL_ACTIONS: dict[Platform, dict[str, str]] = {
    Platform.YOUTUBE: {
        "YOUTUBE_API_KEY": "Configure YOUTUBE_API_KEY to enable the YouTube Data API v3",
        "RAPIDAPI_KEY": "Subscribe to a RapidAPI YouTube plan and set RAPIDAPI_KEY",
    },
    Platform.TIKTOK: {
        "RAPIDAPI_KEY_TIKTOK": "Subscribe to RapidAPI TikTok services and set RAPIDAPI_KEY_TIKTOK",
        "RAPIDAPI_KEY": "Set RAPIDAPI_KEY to enable the general RapidAPI TikTok services",
    },
    Platform.TWITTER: {
        "TWITTER_BEARER_TOKEN": "Configure TWITTER_BEARER_TOKEN to enable the Twitter API v2",
    },
    Platform.INSTAGRAM: {
        "FACEBOOK_ACCESS_TOKEN": "Configure FACEBOOK_ACCESS_TOKEN to enable Instagram oEmbed",
    },
    Platform.FACEBOOK: {
        "FACEBOOK_ACCESS_TOKEN": "Configure FACEBOOK_ACCESS_TOKEN to enable Facebook oEmbed",
    },
}

# Always appended on total failure so the caller has something to act on.
PLATFORM_FALLBACK_ACTIONS: dict[Platform, str] = {
    Platform.YOUTUBE: "Enable YouTube Data API v3 or subscribe to RapidAPI services",
    Platform.TIKTOK: "Subscribe to RapidAPI TikTok services for authentic data",
    Platform.REDDIT: "Check that the Reddit post is public and not removed",
    Platform.TWITTER: "Check that the tweet is public and not deleted",
    Platform.INSTAGRAM: "Check that the Instagram post is public",
    Platform.FACEBOOK: "Check that the Facebook video is public",
}

TIMEOUT_ACTION = "Increase EXTRACTION_TIMEOUT_SECONDS or check outbound network connectivity"
RATE_LIMIT_ACTION = "Provider quota or rate limit reached; retry later or upgrade the plan"


def recommend_actions(platform: Platform, report: ExtractionReport) -> list[str]:
    actions: list[str] = []
    per_credential = MISSING_CREDENTIAL_ACTIONS.get(platform, {})
    for attempt in report.attempts:
        if attempt.outcome is not AttemptOutcome.NOT_CONFIGURED:
            continue
        credential = (attempt.error_detail or "").rsplit(" ", 1)[-1]
        action = per_credential.get(credential)
        if action and action not in actions:
            actions.append(action)

    details = " ".join(r.lower() for r in report.failure_reasons)
    if "timed out" in details and TIMEOUT_ACTION not in actions:
        actions.append(TIMEOUT_ACTION)
    if "http 429" in details and RATE_LIMIT_ACTION not in actions:
        actions.append(RATE_LIMIT_ACTION)

    fallback = PLATFORM_FALLBACK_ACTIONS.get(platform, "Try a URL from a supported platform")
    if fallback not in actions:
        actions.append(fallback)
    return actions


def authentication_status(credentials: Credentials) -> str:
    labels = [CREDENTIAL_LABELS[name] for name in CREDENTIAL_LABELS if credentials.get(name)]
    return f"Available: {', '.join(labels)}" if labels else "No API keys available"
