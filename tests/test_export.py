from __future__ import annotations

from prospect_audit.analysis.export import (
    ERRORS_HEADING,
    REPORT_FIELDS,
    render_html_report,
    render_next_steps_html,
    render_next_steps_text,
    render_text_report,
)
from prospect_audit.analysis.next_steps import NO_NEXT_STEPS_MESSAGE
from prospect_audit.analysis.types import Report

FULL_REPORT = Report(
    url="https://example.com/",
    tag_manager_id="GTM-ABC123",
    analytics_id="G-ABCD1234",
    ads_conversion_ids=("AW-123456789",),
    bing_tag_id="12345678",
    call_tracking_services=("CallRail",),
    chat_platforms=("Tidio", "Intercom (JS Object)"),
    cms_platform="WordPress 6.4",
    privacy_policy_location="https://example.com/privacy-policy",
    form_signatures=("Gravity Form",),
    phone_numbers=("555-123-4567", "(555) 987-6543"),
    errors=("Error on https://example.com/contact: HTTP error! status: 500",),
)


def test_text_report_lists_every_field() -> None:
    text = render_text_report(FULL_REPORT)

    assert text.startswith("Analysis for: https://example.com/\n\n")
    assert "Chat Platforms: Tidio, Intercom (JS Object)" in text
    assert "Phone Numbers Found (across analyzed pages): 555-123-4567, (555) 987-6543" in text
    assert f"{ERRORS_HEADING}\n- Error on https://example.com/contact" in text


def test_empty_report_uses_placeholders() -> None:
    text = render_text_report(Report(url="https://example.com/"))

    assert "Google Tag Manager: Not found" in text
    assert "Website Platform: Unknown" in text
    assert "Forms Found (across analyzed pages): None detected" in text
    assert "Phone Numbers Found (across analyzed pages): None found" in text
    assert ERRORS_HEADING not in text


def test_text_and_html_carry_the_same_fields() -> None:
    text = render_text_report(FULL_REPORT)
    html = render_html_report(FULL_REPORT)

    for report_field in REPORT_FIELDS:
        assert f"{report_field.label}:" in text
        assert f"<strong>{report_field.label}:</strong>" in html
        for value in report_field.values(FULL_REPORT):
            assert value in text
    assert "<code>(555) 987-6543</code>" in html


def test_html_escapes_values_and_links_policy() -> None:
    report = Report(
        url="https://example.com/",
        form_signatures=("<script>alert(1)</script>",),
        privacy_policy_location="https://example.com/privacy?a=1&b=2",
    )

    html = render_html_report(report)

    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert '<a href="https://example.com/privacy?a=1&amp;b=2" target="_blank">' in html


def test_next_steps_renderings() -> None:
    steps = ("1. First line\nsecond line", "2. Done & dusted")

    assert render_next_steps_text(steps) == "1. First line\nsecond line\n\n2. Done & dusted"
    assert render_next_steps_html(steps) == (
        "<p>1. First line<br>second line</p><p>2. Done &amp; dusted</p>"
    )
    assert render_next_steps_text(()) == NO_NEXT_STEPS_MESSAGE
