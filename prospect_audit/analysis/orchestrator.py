"""
Sequential fetch-and-analyze pipeline for related pages.

A batch runs one worker task that drains a job queue and publishes one
`RelatedPageResult` per job on a result channel. The consumer iterates the
channel; iteration ends after exactly one event per submitted URL.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence

from prospect_audit.analysis.analyzer import analyze_document
from prospect_audit.analysis.config.models import SiteAnalysisSettings
from prospect_audit.analysis.errors import (
    AnalysisError,
    JobTimeoutError,
    OriginMismatchError,
)
from prospect_audit.analysis.fetcher import PageFetcher
from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.page_context import url_origin
from prospect_audit.analysis.parsing import DocumentParser
from prospect_audit.analysis.rate_limiter import DomainRateLimiter
from prospect_audit.analysis.registry import DetectorRegistry
from prospect_audit.analysis.types import AnalysisJob, JobState, RelatedPageResult

logger = logging.getLogger(__name__)

ParserFactory = Callable[..., DocumentParser]


class RelatedPageOrchestrator:
    """
    Processes related-page URLs one at a time, in submission order.
    """

    def __init__(
        self,
        *,
        fetcher: PageFetcher,
        settings: SiteAnalysisSettings,
        parser_factory: ParserFactory = DocumentParser,
        rate_limiter: DomainRateLimiter | None = None,
        registry: DetectorRegistry | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._settings = settings
        self._parser_factory = parser_factory
        self._rate_limiter = rate_limiter
        self._registry = registry
        self.jobs: list[AnalysisJob] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.last_parser: DocumentParser | None = None

    async def submit_batch(
        self,
        urls: Sequence[str],
        allowed_origin: str,
    ) -> AsyncIterator[RelatedPageResult]:
        jobs = [AnalysisJob(url=url) for url in urls]
        self.jobs = jobs
        job_queue: asyncio.Queue[AnalysisJob] = asyncio.Queue()
        results: asyncio.Queue[RelatedPageResult | BaseException] = asyncio.Queue()
        for job in jobs:
            job_queue.put_nowait(job)

        parser = self._parser_factory(features=self._settings.html_parser)
        self.last_parser = parser
        parser.open()
        log_event(
            logger,
            logging.INFO,
            "related_batch_started",
            allowed_origin=allowed_origin,
            job_count=len(jobs),
        )
        worker = asyncio.create_task(self._worker(job_queue, results, parser, allowed_origin))
        try:
            for _ in range(len(jobs)):
                event = await results.get()
                if isinstance(event, BaseException):
                    raise event
                yield event
        finally:
            if not worker.done():
                worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)
            parser.close()
            log_event(
                logger,
                logging.INFO,
                "related_batch_finished",
                allowed_origin=allowed_origin,
                states={job.url: job.state.value for job in jobs},
            )

    async def _worker(
        self,
        job_queue: asyncio.Queue[AnalysisJob],
        results: asyncio.Queue[RelatedPageResult | BaseException],
        parser: DocumentParser,
        allowed_origin: str,
    ) -> None:
        while True:
            try:
                job = job_queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                result = await self._process(job, parser, allowed_origin)
            except Exception as exc:
                await results.put(exc)
                return
            await results.put(result)

    async def _process(
        self,
        job: AnalysisJob,
        parser: DocumentParser,
        allowed_origin: str,
    ) -> RelatedPageResult:
        if not allowed_origin or url_origin(job.url) != allowed_origin:
            self._finish(job, JobState.SKIPPED, OriginMismatchError(job.url, allowed_origin))
            log_event(
                logger,
                logging.INFO,
                "related_page_skipped",
                page_url=job.url,
                allowed_origin=allowed_origin,
            )
            return self._result(job)

        job.state = JobState.FETCHING
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self._rate_limiter is not None:
                await self._rate_limiter.wait(job.url)
            job.network_calls += 1
            markup = await self._fetch(job.url, allowed_origin)
            context = parser.parse(markup, job.url)
            analysis = analyze_document(context, registry=self._registry)
        except AnalysisError as exc:
            self._finish(job, JobState.FAILED, exc)
            log_event(
                logger,
                logging.WARNING,
                "related_page_fetch_failed",
                page_url=job.url,
                error_kind=exc.kind,
                error=str(exc),
            )
            return self._result(job)
        finally:
            self.in_flight -= 1

        job.state = JobState.ANALYZED
        job.error = analysis.error
        job.error_kind = "detector" if analysis.error else None
        log_event(
            logger,
            logging.INFO,
            "related_page_analyzed",
            page_url=job.url,
            forms=len(analysis.form_signatures),
            phone_numbers=len(analysis.phone_numbers),
        )
        return self._result(
            job,
            form_signatures=analysis.form_signatures,
            phone_numbers=analysis.phone_numbers,
        )

    async def _fetch(self, url: str, allowed_origin: str) -> str:
        timeout = self._settings.job_timeout_seconds
        pending = asyncio.ensure_future(
            asyncio.to_thread(self._fetcher.fetch_same_origin, url, allowed_origin)
        )
        try:
            return await asyncio.wait_for(asyncio.shield(pending), timeout=timeout)
        except asyncio.TimeoutError as exc:
            # The thread cannot be interrupted; the job slot stays held until it returns.
            await asyncio.gather(pending, return_exceptions=True)
            log_event(
                logger,
                logging.WARNING,
                "related_page_fetch_abandoned",
                page_url=url,
                timeout_seconds=timeout,
            )
            raise JobTimeoutError(f"Timed out after {timeout:g}s") from exc

    @staticmethod
    def _finish(job: AnalysisJob, state: JobState, exc: AnalysisError) -> None:
        job.state = state
        job.error = str(exc)
        job.error_kind = exc.kind

    @staticmethod
    def _result(
        job: AnalysisJob,
        *,
        form_signatures: tuple[str, ...] = (),
        phone_numbers: tuple[str, ...] = (),
    ) -> RelatedPageResult:
        return RelatedPageResult(
            url=job.url,
            state=job.state,
            form_signatures=form_signatures,
            phone_numbers=phone_numbers,
            error=job.error,
            error_kind=job.error_kind,
        )
