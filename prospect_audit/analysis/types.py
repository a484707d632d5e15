"""
Shared site analysis data models.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


def unique_labels(*groups: Iterable[str] | None) -> tuple[str, ...]:
    """
    Union label groups, keeping the first occurrence of each exact string.
    """

    merged: dict[str, None] = {}
    for group in groups:
        if not group:
            continue
        for label in group:
            if label:
                merged.setdefault(label, None)
    return tuple(merged)


@dataclass(frozen=True)
class PageSignal:
    """
    Full detection output for one analyzed page.
    """

    url: str
    tag_manager_id: str | None = None
    analytics_id: str | None = None
    ads_conversion_ids: tuple[str, ...] = ()
    bing_tag_id: str | None = None
    call_tracking_services: tuple[str, ...] = ()
    chat_platforms: tuple[str, ...] = ()
    cms_platform: str | None = None
    privacy_policy_location: str | None = None
    form_signatures: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class Report:
    """
    Aggregated detection output across the primary page and its related pages.
    """

    url: str
    tag_manager_id: str | None = None
    analytics_id: str | None = None
    ads_conversion_ids: tuple[str, ...] = ()
    bing_tag_id: str | None = None
    call_tracking_services: tuple[str, ...] = ()
    chat_platforms: tuple[str, ...] = ()
    cms_platform: str | None = None
    privacy_policy_location: str | None = None
    form_signatures: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class MarkupAnalysis:
    """
    Reduced detection output for statically fetched markup.
    """

    form_signatures: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    error: str | None = None


class JobState(str, Enum):
    QUEUED = "queued"
    FETCHING = "fetching"
    ANALYZED = "analyzed"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_JOB_STATES = frozenset({JobState.ANALYZED, JobState.FAILED, JobState.SKIPPED})


@dataclass
class AnalysisJob:
    """
    One related-page fetch-and-analyze unit; only the orchestrator moves its state.
    """

    url: str
    state: JobState = JobState.QUEUED
    error: str | None = None
    error_kind: str | None = None
    network_calls: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_JOB_STATES


@dataclass(frozen=True)
class RelatedPageResult:
    """
    Event streamed to the aggregator once per related-page job.
    """

    url: str
    state: JobState
    form_signatures: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    error: str | None = None
    error_kind: str | None = None


@dataclass(frozen=True)
class SiteAnalysis:
    """
    Outcome of one end-to-end run.
    """

    report: Report
    primary: PageSignal
    related_urls: tuple[str, ...]
    jobs: tuple[AnalysisJob, ...] = ()
    next_steps: tuple[str, ...] = field(default_factory=tuple)
