"""
Page analyzers: full detection for the primary page, reduced detection for
statically fetched related pages.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from prospect_audit.analysis.detectors import (
    detect_ads_conversion_ids,
    detect_analytics,
    detect_bing_tag,
    detect_platform,
    detect_privacy_policy,
    detect_tag_manager,
    extract_phone_numbers,
)
from prospect_audit.analysis.detectors.platform import PLATFORM_GLOBAL_PATHS
from prospect_audit.analysis.detectors.tags import TAG_GLOBAL_PATHS
from prospect_audit.analysis.errors import AnalysisError, OriginMismatchError
from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.page_context import PageContext, url_origin
from prospect_audit.analysis.parsing import DocumentParser
from prospect_audit.analysis.registry import (
    CALL_TRACKING,
    CHAT,
    FORMS,
    REDUCED_FAMILY_NAMES,
    DetectorRegistry,
)
from prospect_audit.analysis.types import MarkupAnalysis, PageSignal

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_REGISTRY = DetectorRegistry()


def required_global_paths(registry: DetectorRegistry | None = None) -> tuple[str, ...]:
    """
    Every global path the primary-page detectors read, for live capture.
    """

    active = registry or _DEFAULT_REGISTRY
    paths: dict[str, None] = {}
    for path in (*active.global_paths(), *TAG_GLOBAL_PATHS, *PLATFORM_GLOBAL_PATHS, "__ctm.config.aid"):
        paths.setdefault(path, None)
    return tuple(paths)


class _FamilyRunner:
    """
    Runs detector families, recording failures instead of aborting the page.
    """

    def __init__(self, context: PageContext) -> None:
        self._context = context
        self.errors: list[str] = []

    def run(self, name: str, detector: Callable[[PageContext], T], default: T) -> T:
        try:
            return detector(self._context)
        except Exception as exc:
            self.errors.append(f"{name}: {exc}")
            log_event(
                logger,
                logging.WARNING,
                "detector_family_failed",
                detector=name,
                page_url=self._context.url,
                error=str(exc),
            )
            return default

    @property
    def error(self) -> str | None:
        return "; ".join(self.errors) or None


def analyze_primary_page(
    context: PageContext,
    *,
    registry: DetectorRegistry | None = None,
) -> PageSignal:
    """
    Run the full detector set against a live (or live-equivalent) page.
    """

    active = registry or _DEFAULT_REGISTRY
    runner = _FamilyRunner(context)
    signal = PageSignal(
        url=context.url,
        tag_manager_id=runner.run("tag_manager", detect_tag_manager, None),
        analytics_id=runner.run("analytics", detect_analytics, None),
        ads_conversion_ids=runner.run("ads_conversion", detect_ads_conversion_ids, ()),
        bing_tag_id=runner.run("bing_uet", detect_bing_tag, None),
        call_tracking_services=runner.run(
            CALL_TRACKING,
            lambda page: active.evaluate(CALL_TRACKING, page),
            (),
        ),
        chat_platforms=runner.run(CHAT, lambda page: active.evaluate(CHAT, page), ()),
        cms_platform=runner.run("platform", detect_platform, None),
        privacy_policy_location=runner.run("privacy_policy", detect_privacy_policy, None),
        form_signatures=runner.run(FORMS, lambda page: active.evaluate(FORMS, page), ()),
        phone_numbers=runner.run("phone_numbers", extract_phone_numbers, ()),
        error=runner.error,
    )
    log_event(
        logger,
        logging.INFO,
        "primary_page_analyzed",
        page_url=context.url,
        forms=len(signal.form_signatures),
        phone_numbers=len(signal.phone_numbers),
        platform=signal.cms_platform,
        error=signal.error,
    )
    return signal


def analyze_document(
    context: PageContext,
    *,
    registry: DetectorRegistry | None = None,
) -> MarkupAnalysis:
    """
    Run the reduced detector subset (forms and phone numbers) on a parsed page.
    """

    active = registry or _DEFAULT_REGISTRY
    runner = _FamilyRunner(context)
    forms: tuple[str, ...] = ()
    for name in REDUCED_FAMILY_NAMES:
        forms += runner.run(name, lambda page, family=name: active.evaluate(family, page), ())
    phones = runner.run("phone_numbers", extract_phone_numbers, ())
    return MarkupAnalysis(form_signatures=forms, phone_numbers=phones, error=runner.error)


def analyze_fetched_markup(
    markup: str,
    source_url: str,
    allowed_origin: str,
    *,
    parser: DocumentParser | None = None,
    registry: DetectorRegistry | None = None,
) -> MarkupAnalysis:
    """
    Parse fetched markup and run the reduced detectors; never raises.

    Origin or parse failures come back as `MarkupAnalysis.error` with empty
    detector results.
    """

    try:
        if url_origin(source_url) != allowed_origin:
            raise OriginMismatchError(source_url, allowed_origin)
        if parser is None:
            with DocumentParser() as scoped_parser:
                context = scoped_parser.parse(markup, source_url)
        else:
            context = parser.parse(markup, source_url)
    except AnalysisError as exc:
        log_event(
            logger,
            logging.WARNING,
            "fetched_markup_rejected",
            page_url=source_url,
            error_kind=exc.kind,
            error=str(exc),
        )
        return MarkupAnalysis(error=str(exc))
    return analyze_document(context, registry=registry)
