"""
Folds the primary page signal and streamed related-page results into a Report.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from prospect_audit.analysis.errors import AggregationError
from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.types import PageSignal, RelatedPageResult, Report, unique_labels

logger = logging.getLogger(__name__)

FinalListener = Callable[[Report], None]


class ReportAggregator:
    """
    Accumulates one Report and finalizes it once every expected result arrived.

    Scalar fields come only from the primary page. Related results contribute
    forms, phone numbers and error-log entries.
    """

    def __init__(self, expected_count: int, *, on_final: FinalListener | None = None) -> None:
        if expected_count < 0:
            raise ValueError("expected_count must be >= 0.")
        self.expected_count = expected_count
        self.received_count = 0
        self._primary: PageSignal | None = None
        self._form_signatures: tuple[str, ...] = ()
        self._phone_numbers: tuple[str, ...] = ()
        self._errors: list[str] = []
        self._final_report: Report | None = None
        self._listeners: list[FinalListener] = [on_final] if on_final else []

    @property
    def is_final(self) -> bool:
        return self._final_report is not None

    def add_final_listener(self, listener: FinalListener) -> None:
        if self._final_report is not None:
            listener(self._final_report)
            return
        self._listeners.append(listener)

    def apply_primary(self, signal: PageSignal) -> None:
        if self.is_final:
            raise AggregationError("Report is already final.")
        if self._primary is not None:
            raise AggregationError("Primary page signal was already applied.")

        self._primary = signal
        self._form_signatures = unique_labels(self._form_signatures, signal.form_signatures)
        self._phone_numbers = unique_labels(self._phone_numbers, signal.phone_numbers)
        if signal.error:
            self._errors.append(f"Error on current page ({signal.url}): {signal.error}")
        self._finalize_if_complete()

    def apply_related(self, result: RelatedPageResult) -> None:
        if self.is_final:
            raise AggregationError(f"Report is already final; dropped result for {result.url}.")
        if self._primary is None:
            raise AggregationError("Related results require the primary page signal first.")

        self._form_signatures = unique_labels(self._form_signatures, result.form_signatures)
        self._phone_numbers = unique_labels(self._phone_numbers, result.phone_numbers)
        if result.error:
            self._errors.append(f"Error on {result.url}: {result.error}")
        self.received_count += 1
        self._finalize_if_complete()

    def report(self) -> Report:
        """
        Snapshot of the Report so far; equal to the final Report once final.
        """

        if self._final_report is not None:
            return self._final_report
        return self._build()

    def _build(self) -> Report:
        primary = self._primary
        if primary is None:
            raise AggregationError("No primary page signal applied.")
        return Report(
            url=primary.url,
            tag_manager_id=primary.tag_manager_id,
            analytics_id=primary.analytics_id,
            ads_conversion_ids=unique_labels(primary.ads_conversion_ids),
            bing_tag_id=primary.bing_tag_id,
            call_tracking_services=unique_labels(primary.call_tracking_services),
            chat_platforms=unique_labels(primary.chat_platforms),
            cms_platform=primary.cms_platform,
            privacy_policy_location=primary.privacy_policy_location,
            form_signatures=self._form_signatures,
            phone_numbers=self._phone_numbers,
            errors=tuple(self._errors),
        )

    def _finalize_if_complete(self) -> None:
        if self.received_count < self.expected_count:
            return
        final_report = self._build()
        self._final_report = final_report
        log_event(
            logger,
            logging.INFO,
            "report_finalized",
            page_url=final_report.url,
            related_results=self.received_count,
            forms=len(final_report.form_signatures),
            phone_numbers=len(final_report.phone_numbers),
            errors=len(final_report.errors),
        )
        for error in final_report.errors:
            log_event(logger, logging.WARNING, "analysis_error_logged", message=error)
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(final_report)
