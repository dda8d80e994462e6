from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from adapters.base import BaseAdapter, RateLimiter
from adapters.registry import build_adapter_chain
from config.settings import settings as default_settings
from core import platforms
from core.errors import AllProvidersFailed, ExtractionError, ProviderNotConfigured
from core.models import (
    AttemptOutcome,
    Credentials,
    ExtractionAttempt,
    ExtractionReport,
    Platform,
    VideoMetadata,
)
from core.report import recommend_actions

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 12.0

# Sentinel for "a higher-priority adapter is still running".
_PENDING = object()


@dataclass
class ExtractionResult:
    metadata: VideoMetadata
    report: ExtractionReport

    def to_dict(self) -> dict[str, Any]:
        return {"analysis": self.metadata.to_dict(), "report": self.report.to_dict()}


class FallbackResolver:
    """Runs a platform's adapter chain and picks the best result.

    All eligible adapters start at once. The winner is the first authentic
    success in chain order, else the first success; we stop waiting as soon
    as nothing still running could beat the current candidate. If the whole
    chain fails, the last-resort adapters get one more, sequential, try.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: Credentials,
        settings: Any = None,
        *,
        chains: dict[Platform, Sequence[BaseAdapter]] | None = None,
        timeout_seconds: float | None = None,
        last_resort_delay: float | None = None,
        broadcast_fn=None,
    ) -> None:
        if settings is None:
            settings = default_settings
        self._client = client
        self._credentials = credentials
        self._settings = settings
        self._chains = chains
        self._timeout = timeout_seconds or getattr(
            settings, "EXTRACTION_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS
        )
        if last_resort_delay is None:
            last_resort_delay = getattr(settings, "LAST_RESORT_DELAY_SECONDS", 1.0)
        self._last_resort_delay = last_resort_delay
        self._broadcast = broadcast_fn

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    def chain_for(self, platform: Platform) -> list[BaseAdapter]:
        if self._chains is not None:
            return list(self._chains.get(platform, ()))
        return build_adapter_chain(platform, self._settings)

    async def resolve(
        self,
        url: str,
        platform: Platform | None = None,
        credentials: Credentials | None = None,
    ) -> ExtractionResult:
        credentials = credentials or self._credentials
        report = ExtractionReport(credentials_available=credentials.available())
        url = (url or "").strip()

        try:
            platform = platform or platforms.detect(url)
            report.platform = platform
            video_id = platforms.extract_platform_id(url, platform)
        except ExtractionError as e:
            e.report = report
            log.info("Rejected %r before extraction: %s", url, e)
            raise

        chain = self.chain_for(platform)
        t0 = time.monotonic()
        log.info("Resolving %s URL %s (id=%s) across %d adapters", platform.value, url, video_id, len(chain))

        eligible: list[BaseAdapter] = []
        for adapter in chain:
            credential = adapter.required_credential
            if credential and not credentials.get(credential):
                await self._record(
                    report,
                    ExtractionAttempt(
                        adapter.name,
                        AttemptOutcome.NOT_CONFIGURED,
                        ProviderNotConfigured(credential).message,
                    ),
                )
            else:
                eligible.append(adapter)

        metadata, winner = await self._run_parallel(eligible, url, video_id, credentials, report)
        if metadata is None:
            metadata, winner = await self._run_sequential(
                [a for a in eligible if a.last_resort], url, video_id, credentials, report
            )

        elapsed = time.monotonic() - t0
        if metadata is None:
            report.recommended_actions = recommend_actions(platform, report)
            log.warning(
                "All providers failed for %s after %.1fs: %s",
                url,
                elapsed,
                "; ".join(report.failure_reasons) or "no adapter configured",
            )
            await self._emit(
                {"event": "extraction_failed", "platform": platform.value, "url": url}
            )
            raise AllProvidersFailed(
                f"all providers failed for {platform.value} URL", report=report
            )

        report.successful_method = winner
        log.info(
            "Resolved %s via %s (authentic=%s) in %.1fs",
            url,
            winner,
            metadata.provenance.is_authentic,
            elapsed,
        )
        await self._emit(
            {
                "event": "extraction_complete",
                "platform": platform.value,
                "url": url,
                "successfulMethod": winner,
                "isAuthentic": metadata.provenance.is_authentic,
            }
        )
        return ExtractionResult(metadata=metadata, report=report)

    async def _run_parallel(
        self,
        adapters: list[BaseAdapter],
        url: str,
        video_id: str,
        credentials: Credentials,
        report: ExtractionReport,
    ) -> tuple[VideoMetadata | None, str | None]:
        if not adapters:
            return None, None

        tasks = [
            asyncio.create_task(self._call(adapter, url, video_id, credentials), name=adapter.name)
            for adapter in adapters
        ]
        index_of = {task: i for i, task in enumerate(tasks)}
        settled: dict[int, VideoMetadata | BaseException] = {}
        attempts: dict[int, ExtractionAttempt] = {}
        pending = set(tasks)
        choice: Any = _PENDING

        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    i = index_of[task]
                    settled[i] = _task_result(task)
                    attempts[i] = _attempt_for(adapters[i], settled[i], phase="parallel")
                    await self._emit_attempt(report.platform, attempts[i])
                choice = _pick(adapters, settled)
                if choice is not _PENDING:
                    break
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        winner = adapters[choice].name if choice is not None else None
        for i, adapter in enumerate(adapters):
            attempt = attempts.get(i)
            if attempt is None:
                attempt = ExtractionAttempt(
                    adapter.name,
                    AttemptOutcome.NOT_ATTEMPTED,
                    f"abandoned after {winner} was selected",
                )
                await self._emit_attempt(report.platform, attempt)
            report.record(attempt)

        if choice is None:
            return None, None
        return settled[choice], winner

    async def _run_sequential(
        self,
        adapters: list[BaseAdapter],
        url: str,
        video_id: str,
        credentials: Credentials,
        report: ExtractionReport,
    ) -> tuple[VideoMetadata | None, str | None]:
        if not adapters:
            return None, None
        log.info("Parallel pass failed for %s; retrying %d last-resort adapters in sequence", url, len(adapters))
        limiter = RateLimiter(delay_seconds=self._last_resort_delay)
        for adapter in adapters:
            await limiter.wait()
            try:
                outcome: VideoMetadata | BaseException = await self._call(
                    adapter, url, video_id, credentials
                )
            except Exception as e:
                outcome = e
            await self._record(report, _attempt_for(adapter, outcome, phase="sequential"))
            if isinstance(outcome, VideoMetadata):
                return outcome, adapter.name
        return None, None

    async def _call(
        self,
        adapter: BaseAdapter,
        url: str,
        video_id: str,
        credentials: Credentials,
    ) -> VideoMetadata:
        try:
            return await asyncio.wait_for(
                adapter.extract(self._client, url, video_id, credentials),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"timed out after {self._timeout:g}s") from e

    async def _record(self, report: ExtractionReport, attempt: ExtractionAttempt) -> None:
        report.record(attempt)
        await self._emit_attempt(report.platform, attempt)

    async def _emit_attempt(self, platform: Platform, attempt: ExtractionAttempt) -> None:
        await self._emit({"event": "extraction_attempt", "platform": platform.value, **attempt.to_dict()})

    async def _emit(self, data: dict) -> None:
        if self._broadcast:
            try:
                await self._broadcast(data)
            except Exception as e:
                log.warning("Broadcast failed: %s", e)


def _task_result(task: asyncio.Task) -> VideoMetadata | BaseException:
    if task.cancelled():
        return asyncio.CancelledError()
    return task.exception() or task.result()


def _attempt_for(
    adapter: BaseAdapter, outcome: VideoMetadata | BaseException, *, phase: str
) -> ExtractionAttempt:
    if isinstance(outcome, VideoMetadata):
        return ExtractionAttempt(adapter.name, AttemptOutcome.SUCCESS, None, phase)
    if isinstance(outcome, ProviderNotConfigured):
        return ExtractionAttempt(adapter.name, AttemptOutcome.NOT_CONFIGURED, outcome.message, phase)
    if isinstance(outcome, (ExtractionError, TimeoutError)):
        log.debug("%s failed: %s", adapter.name, outcome)
    else:
        log.warning("%s raised %s: %s", adapter.name, type(outcome).__name__, outcome)
    detail = str(outcome) or type(outcome).__name__
    return ExtractionAttempt(adapter.name, AttemptOutcome.FAILED, detail, phase)


def _pick(adapters: Sequence[BaseAdapter], settled: dict[int, Any]) -> Any:
    """Index of the winning adapter, ``None`` if all failed, or ``_PENDING``.

    An unsettled adapter blocks the decision only if it could still win:
    it declares itself authentic, or nothing before it has succeeded yet.
    """
    first_success: int | None = None
    for i, adapter in enumerate(adapters):
        if i not in settled:
            if adapter.authentic or first_success is None:
                return _PENDING
            continue
        result = settled[i]
        if isinstance(result, VideoMetadata):
            if result.provenance.is_authentic:
                return i
            if first_success is None:
                first_success = i
    return first_success
