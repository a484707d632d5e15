"""
Site analysis engine: primary page, related pages, Report and next steps.
"""

from __future__ import annotations

import asyncio
import logging

import requests

from prospect_audit.analysis.aggregator import ReportAggregator
from prospect_audit.analysis.analyzer import analyze_primary_page
from prospect_audit.analysis.config.models import SiteAnalysisSettings
from prospect_audit.analysis.discovery import discover_related_pages
from prospect_audit.analysis.fetcher import PageFetcher
from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.next_steps import draft_next_steps
from prospect_audit.analysis.orchestrator import RelatedPageOrchestrator
from prospect_audit.analysis.page_context import PageContext
from prospect_audit.analysis.rate_limiter import DomainRateLimiter
from prospect_audit.analysis.registry import DetectorRegistry
from prospect_audit.analysis.types import SiteAnalysis

logger = logging.getLogger(__name__)


class SiteAnalysisEngine:
    """
    Runs one end-to-end analysis for an already captured primary page.
    """

    def __init__(
        self,
        *,
        settings: SiteAnalysisSettings,
        registry: DetectorRegistry | None = None,
        session: requests.Session | None = None,
        orchestrator: RelatedPageOrchestrator | None = None,
    ) -> None:
        self._settings = settings
        self._registry = registry or DetectorRegistry()
        self._orchestrator = orchestrator or RelatedPageOrchestrator(
            fetcher=PageFetcher(settings=settings, session=session),
            settings=settings,
            rate_limiter=DomainRateLimiter(
                rate_limit_per_second=settings.rate_limit_per_second
            ),
            registry=self._registry,
        )

    def run(self, context: PageContext) -> SiteAnalysis:
        return asyncio.run(self.run_async(context))

    async def run_async(self, context: PageContext) -> SiteAnalysis:
        primary = analyze_primary_page(context, registry=self._registry)
        related_urls = discover_related_pages(
            context,
            limit=self._settings.max_related_pages,
        )

        aggregator = ReportAggregator(len(related_urls))
        aggregator.apply_primary(primary)
        if related_urls:
            async for result in self._orchestrator.submit_batch(related_urls, context.origin):
                aggregator.apply_related(result)

        report = aggregator.report()
        next_steps = draft_next_steps(report, self._settings.contacts)
        log_event(
            logger,
            logging.INFO,
            "site_analysis_completed",
            page_url=context.url,
            related_pages=len(related_urls),
            is_final=aggregator.is_final,
            errors=len(report.errors),
            next_steps=len(next_steps),
        )
        return SiteAnalysis(
            report=report,
            primary=primary,
            related_urls=tuple(related_urls),
            jobs=tuple(self._orchestrator.jobs) if related_urls else (),
            next_steps=next_steps,
        )
