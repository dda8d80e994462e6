from core.models import (
    AttemptOutcome,
    Credentials,
    ExtractionAttempt,
    ExtractionReport,
    Platform,
)
from core.report import (
    PLATFORM_FALLBACK_ACTIONS,
    RATE_LIMIT_ACTION,
    TIMEOUT_ACTION,
    authentication_status,
    recommend_actions,
)


def _report(*attempts):
    report = ExtractionReport(platform=Platform.TIKTOK)
    for attempt in attempts:
        report.record(attempt)
    return report


def test_missing_tiktok_credentials_map_to_subscription_advice():
    report = _report(
        ExtractionAttempt("RapidAPI TikTok Scraper", AttemptOutcome.NOT_CONFIGURED, "missing credential RAPIDAPI_KEY_TIKTOK"),
        ExtractionAttempt("General RapidAPI TikTok Services", AttemptOutcome.NOT_CONFIGURED, "missing credential RAPIDAPI_KEY"),
        ExtractionAttempt("TikTok Mobile API", AttemptOutcome.FAILED, "HTTP 403 from api.tiktokv.com: Forbidden"),
    )
    actions = recommend_actions(Platform.TIKTOK, report)
    assert actions == [
        "Subscribe to RapidAPI TikTok services and set RAPIDAPI_KEY_TIKTOK",
        "Set RAPIDAPI_KEY to enable the general RapidAPI TikTok services",
        PLATFORM_FALLBACK_ACTIONS[Platform.TIKTOK],
    ]


def test_failure_kinds_add_timeout_and_rate_limit_advice():
    report = _report(
        ExtractionAttempt("a", AttemptOutcome.FAILED, "timed out after 12s"),
        ExtractionAttempt("b", AttemptOutcome.FAILED, "HTTP 429 from host: slow down"),
        ExtractionAttempt("c", AttemptOutcome.FAILED, "timed out after 12s", phase="sequential"),
    )
    actions = recommend_actions(Platform.REDDIT, report)
    assert actions.count(TIMEOUT_ACTION) == 1
    assert RATE_LIMIT_ACTION in actions
    assert actions[-1] == PLATFORM_FALLBACK_ACTIONS[Platform.REDDIT]


def test_actions_never_empty():
    assert recommend_actions(Platform.UNKNOWN, ExtractionReport()) == ["Try a URL from a supported platform"]


def test_report_helpers():
    report = _report(
        ExtractionAttempt("a", AttemptOutcome.NOT_CONFIGURED, "missing credential X"),
        ExtractionAttempt("b", AttemptOutcome.FAILED, "boom"),
        ExtractionAttempt("c", AttemptOutcome.NOT_ATTEMPTED, "abandoned"),
        ExtractionAttempt("d", AttemptOutcome.SUCCESS),
    )
    assert report.failure_reasons == ["b: boom"]
    assert [a.method_name for a in report.attempted()] == ["b", "d"]
    data = report.to_dict()
    assert data["platform"] == "TikTok"
    assert data["attempts"][2] == {
        "methodName": "c",
        "outcome": "notAttempted",
        "errorDetail": "abandoned",
        "phase": "parallel",
    }


def test_authentication_status():
    assert authentication_status(Credentials()) == "No API keys available"
    creds = Credentials({"YOUTUBE_API_KEY": "y", "RAPIDAPI_KEY": "", "RAPIDAPI_KEY_TIKTOK": "t"})
    assert authentication_status(creds) == "Available: YouTube API, RapidAPI TikTok"


def test_credentials_from_settings_strips_and_ignores_blanks():
    class S:
        YOUTUBE_API_KEY = " y "
        RAPIDAPI_KEY = ""
        TWITTER_BEARER_TOKEN = None

    creds = Credentials.from_settings(S())
    assert creds.get("YOUTUBE_API_KEY") == "y"
    assert creds.get("RAPIDAPI_KEY") is None
    assert creds.get("TWITTER_BEARER_TOKEN") is None
    assert creds.available() == frozenset({"YOUTUBE_API_KEY"})
