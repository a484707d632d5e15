"""
Plain-text and HTML renderings of a Report and its next steps.

Both report renderings walk the same field table, so every field appears in
each with the same label, value and empty placeholder.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from html import escape

from prospect_audit.analysis.next_steps import NO_NEXT_STEPS_MESSAGE
from prospect_audit.analysis.types import Report

ERRORS_HEADING = "Errors During Analysis:"


@dataclass(frozen=True)
class ReportField:
    label: str
    attribute: str
    empty_text: str = "Not found"

    def values(self, report: Report) -> tuple[str, ...]:
        value = getattr(report, self.attribute)
        if not value:
            return ()
        if isinstance(value, str):
            return (value,)
        return tuple(value)


REPORT_FIELDS: tuple[ReportField, ...] = (
    ReportField("Google Tag Manager", "tag_manager_id"),
    ReportField("Google Analytics 4 (GA4)", "analytics_id"),
    ReportField("Google Ads Conversion/Remarketing IDs", "ads_conversion_ids"),
    ReportField("Bing UET Tag ID", "bing_tag_id"),
    ReportField("Call Tracking", "call_tracking_services"),
    ReportField("Chat Platforms", "chat_platforms"),
    ReportField("Website Platform", "cms_platform", "Unknown"),
    ReportField("Privacy Policy", "privacy_policy_location"),
    ReportField("Forms Found (across analyzed pages)", "form_signatures", "None detected"),
    ReportField(
        "Phone Numbers Found (across analyzed pages)",
        "phone_numbers",
        "None found",
    ),
)


def report_rows(report: Report) -> list[tuple[str, str]]:
    """(label, display text) pairs in field-table order."""
    rows = []
    for report_field in REPORT_FIELDS:
        values = report_field.values(report)
        rows.append((report_field.label, ", ".join(values) or report_field.empty_text))
    return rows


def render_text_report(report: Report) -> str:
    lines = [f"Analysis for: {report.url}", ""]
    lines.extend(f"{label}: {text}" for label, text in report_rows(report))
    if report.errors:
        lines.extend(["", ERRORS_HEADING])
        lines.extend(f"- {error}" for error in report.errors)
    return "\n".join(lines)


def _html_value(report_field: ReportField, values: tuple[str, ...]) -> str:
    if not values:
        return escape(report_field.empty_text)
    if report_field.attribute == "phone_numbers":
        return "<br>".join(f"<code>{escape(value)}</code>" for value in values)
    if report_field.attribute == "privacy_policy_location" and values[0].startswith("http"):
        href = escape(values[0])
        return f'<a href="{href}" target="_blank">{href}</a>'
    return ", ".join(escape(value) for value in values)


def render_html_report(report: Report) -> str:
    parts = [f"<p><strong>Analysis for:</strong> {escape(report.url)}</p>"]
    for report_field in REPORT_FIELDS:
        value_html = _html_value(report_field, report_field.values(report))
        parts.append(f"<p><strong>{escape(report_field.label)}:</strong> {value_html}</p>")
    if report.errors:
        parts.append(f"<hr><h4>{escape(ERRORS_HEADING)}</h4>")
        parts.extend(f'<p class="analysis-error">- {escape(error)}</p>' for error in report.errors)
    return "\n".join(parts)


def render_next_steps_text(steps: Sequence[str]) -> str:
    return "\n\n".join(steps) if steps else NO_NEXT_STEPS_MESSAGE


def render_next_steps_html(steps: Sequence[str]) -> str:
    if not steps:
        steps = (NO_NEXT_STEPS_MESSAGE,)
    return "".join(f"<p>{escape(step).replace(chr(10), '<br>')}</p>" for step in steps)
