"""
Website marketing-stack analysis: detectors, related pages and reporting.
"""

from prospect_audit.analysis.aggregator import ReportAggregator
from prospect_audit.analysis.analyzer import (
    analyze_document,
    analyze_fetched_markup,
    analyze_primary_page,
)
from prospect_audit.analysis.discovery import discover_related_pages
from prospect_audit.analysis.engine import SiteAnalysisEngine
from prospect_audit.analysis.next_steps import draft_next_steps
from prospect_audit.analysis.orchestrator import RelatedPageOrchestrator
from prospect_audit.analysis.page_context import PageContext
from prospect_audit.analysis.types import PageSignal, Report, SiteAnalysis

__all__ = [
    "PageContext",
    "PageSignal",
    "RelatedPageOrchestrator",
    "Report",
    "ReportAggregator",
    "SiteAnalysis",
    "SiteAnalysisEngine",
    "analyze_document",
    "analyze_fetched_markup",
    "analyze_primary_page",
    "discover_related_pages",
    "draft_next_steps",
]
