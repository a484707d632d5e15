"""
prospect_audit/services/site_analysis_service.py

Service orchestration for primary page capture and site analysis.
"""

from __future__ import annotations

from functools import lru_cache
from urllib.parse import urlparse

import requests

from prospect_audit.analysis.config import SiteAnalysisSettings, get_site_analysis_settings
from prospect_audit.analysis.engine import SiteAnalysisEngine
from prospect_audit.analysis.export import render_html_report, render_text_report
from prospect_audit.analysis.fetcher import PageFetcher, fetch_static_context
from prospect_audit.analysis.page_context import PageContext
from prospect_audit.analysis.types import SiteAnalysis
from prospect_audit.schemas.site_analysis import RelatedPageJobResponse, SiteAnalysisResponse

ALLOWED_MODES = ("static", "live")


class SiteAnalysisService:
    """
    Captures the primary page in the requested mode and runs the engine.
    """

    def __init__(
        self,
        *,
        settings: SiteAnalysisSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or get_site_analysis_settings()
        self._session = session

    @property
    def settings(self) -> SiteAnalysisSettings:
        return self._settings

    def analyze(self, *, url: str, mode: str = "static") -> SiteAnalysis:
        normalized_url = validate_target_url(url)
        normalized_mode = mode.strip().lower()
        if normalized_mode not in ALLOWED_MODES:
            raise ValueError(
                f"Unknown analysis mode '{mode}'. Allowed: {', '.join(ALLOWED_MODES)}"
            )

        context = self._capture(normalized_url, normalized_mode)
        engine = SiteAnalysisEngine(settings=self._settings, session=self._session)
        return engine.run(context)

    def _capture(self, url: str, mode: str) -> PageContext:
        if mode == "live":
            from prospect_audit.analysis.live import capture_live_context

            return capture_live_context(url, settings=self._settings)
        fetcher = PageFetcher(settings=self._settings, session=self._session)
        return fetch_static_context(url, settings=self._settings, fetcher=fetcher)


def validate_target_url(url: str) -> str:
    """
    Return the stripped URL, rejecting non-web targets such as about: pages.
    """

    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        raise ValueError(
            f"Cannot analyze '{candidate or url}'. Provide an absolute http(s) website URL."
        )
    return candidate


@lru_cache(maxsize=1)
def get_site_analysis_service() -> SiteAnalysisService:
    """
    Build and cache site analysis service.
    """

    return SiteAnalysisService()


def build_site_analysis_response(analysis: SiteAnalysis) -> SiteAnalysisResponse:
    report = analysis.report
    return SiteAnalysisResponse(
        url=report.url,
        tag_manager_id=report.tag_manager_id,
        analytics_id=report.analytics_id,
        ads_conversion_ids=list(report.ads_conversion_ids),
        bing_tag_id=report.bing_tag_id,
        call_tracking_services=list(report.call_tracking_services),
        chat_platforms=list(report.chat_platforms),
        cms_platform=report.cms_platform,
        privacy_policy_location=report.privacy_policy_location,
        form_signatures=list(report.form_signatures),
        phone_numbers=list(report.phone_numbers),
        errors=list(report.errors),
        related_pages=[
            RelatedPageJobResponse(
                url=job.url,
                state=job.state.value,
                error=job.error,
                error_kind=job.error_kind,
            )
            for job in analysis.jobs
        ],
        next_steps=list(analysis.next_steps),
        report_text=render_text_report(report),
        report_html=render_html_report(report),
    )
