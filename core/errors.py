from __future__ import annotations

from typing import Any

from core.models import ExtractionReport


class ExtractionError(Exception):
    """Base class for everything the extraction core can surface."""

    kind = "ExtractionError"
    retriable = False

    def __init__(self, message: str, report: ExtractionReport | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.report = report

    def to_dict(self) -> dict[str, Any]:
        report = self.report
        return {
            "kind": self.kind,
            "message": self.message,
            "attempts": [a.to_dict() for a in report.attempts] if report else [],
            "recommendedActions": list(report.recommended_actions) if report else [],
        }


class UnsupportedPlatform(ExtractionError):
    kind = "UnsupportedPlatform"


class MalformedUrl(ExtractionError):
    kind = "MalformedUrl"


class ProviderNotConfigured(ExtractionError):
    kind = "ProviderNotConfigured"

    def __init__(self, credential: str) -> None:
        super().__init__(f"missing credential {credential}")
        self.credential = credential


class ProviderError(ExtractionError):
    """One adapter failed; the resolver records it and moves on."""

    kind = "ProviderError"

    def __init__(self, reason: str, *, retriable: bool = False) -> None:
        super().__init__(reason)
        self.reason = reason
        self.retriable = retriable


class AllProvidersFailed(ExtractionError):
    kind = "AllProvidersFailed"
