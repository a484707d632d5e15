"""
tests/test_detectors.py

Pytest unit tests for detection rules and the detector registry.

All tests build pages from literal markup plus an optional globals
snapshot; nothing touches the network.
"""

from __future__ import annotations

import pytest

from prospect_audit.analysis.errors import DetectorError
from prospect_audit.analysis.page_context import GlobalBinding, PageContext
from prospect_audit.analysis.registry import (
    CALL_TRACKING,
    CHAT,
    FORMS,
    GENERIC_DNI_LABEL,
    GENERIC_FORM_LABEL,
    DetectorRegistry,
)
from prospect_audit.analysis.rules import AnyMatch, Detector, DetectorFamily, SelectorRule


def _context(markup: str, **globals_snapshot: GlobalBinding) -> PageContext:
    return PageContext.from_markup(
        markup,
        "https://example.com/",
        globals_snapshot=globals_snapshot,
    )


def _object(value: object = None) -> GlobalBinding:
    return GlobalBinding(type_name="object", truthy=True, value=value)


def _function() -> GlobalBinding:
    return GlobalBinding(type_name="function", truthy=True)


@pytest.fixture()
def registry() -> DetectorRegistry:
    return DetectorRegistry()


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------


class TestSelectorRule:
    def test_one_bad_part_does_not_hide_a_match(self) -> None:
        assert SelectorRule("div[[, p").matches(_context("<p>x</p>")) is True

    def test_only_bad_parts_raise_detector_error(self) -> None:
        with pytest.raises(DetectorError):
            SelectorRule("div[[").matches(_context("<p>x</p>"))

    def test_failing_matcher_is_ignored_by_detector(self) -> None:
        detector = Detector("Broken", (SelectorRule("div[["), SelectorRule("p", "para")))
        assert detector.evaluate(_context("<p>x</p>")) == ("Broken (para)",)

    def test_any_match_tolerates_child_errors(self) -> None:
        rule = AnyMatch((SelectorRule("div[["), SelectorRule("span")))
        assert rule.matches(_context("<span>x</span>")) is True


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------


class TestFormDetection:
    def test_gravity_form_only(self, registry: DetectorRegistry) -> None:
        page = _context('<html><body><form id="gform_1"><input name="q"></form></body></html>')
        assert registry.evaluate(FORMS, page) == ("Gravity Form",)

    def test_no_forms(self, registry: DetectorRegistry) -> None:
        page = _context("<html><body><p>Hello</p></body></html>")
        assert registry.evaluate(FORMS, page) == ()

    def test_plain_form_falls_back_to_generic_label(self, registry: DetectorRegistry) -> None:
        page = _context('<form action="/search"><input name="q"></form>')
        assert registry.evaluate(FORMS, page) == (GENERIC_FORM_LABEL,)

    def test_every_matcher_contributes_a_qualified_label(self, registry: DetectorRegistry) -> None:
        page = _context(
            '<div class="gform_wrapper"></div>'
            '<script src="/wp-content/plugins/gravityforms/js/gravityforms.min.js"></script>'
        )
        assert registry.evaluate(FORMS, page) == (
            "Gravity Form",
            "Gravity Form (script detected)",
        )

    def test_js_variable_only(self, registry: DetectorRegistry) -> None:
        page = _context("<html></html>", gf_apply_rules=_function())
        assert registry.evaluate(FORMS, page) == ("Gravity Form (JS variable)",)

    def test_inline_script_pattern(self, registry: DetectorRegistry) -> None:
        page = _context("<script>var form = new WufooForm();</script>")
        assert registry.evaluate(FORMS, page) == ("Wufoo Form (JS pattern detected)",)

    def test_placeholder_element_is_third_party_form(self, registry: DetectorRegistry) -> None:
        page = _context('<div data-form-id="42"></div>')
        assert registry.evaluate(FORMS, page) == (
            "Third-Party Embedded Form (placeholder element detected)",
        )

    def test_labels_are_unique(self, registry: DetectorRegistry) -> None:
        page = _context('<form id="gform_1"></form><form id="gform_2"></form>')
        labels = registry.evaluate(FORMS, page)
        assert len(labels) == len(set(labels))


# ---------------------------------------------------------------------------
# Chat and call tracking
# ---------------------------------------------------------------------------


class TestChatDetection:
    def test_global_and_element_evidence(self, registry: DetectorRegistry) -> None:
        page = _context('<div id="intercom-container"></div>', Intercom=_function())
        assert registry.evaluate(CHAT, page) == (
            "Intercom (JS Object)",
            "Intercom (HTML Element)",
        )

    def test_generic_chat_script_fallback(self, registry: DetectorRegistry) -> None:
        page = _context('<script src="https://cdn.example.net/js/chat-loader.js"></script>')
        assert registry.evaluate(CHAT, page) == ("Generic Chat Script (chat-loader.js)",)

    def test_no_chat(self, registry: DetectorRegistry) -> None:
        assert registry.evaluate(CHAT, _context("<p>Hi</p>")) == ()


class TestCallTrackingDetection:
    def test_callrail_script(self, registry: DetectorRegistry) -> None:
        page = _context('<script src="//cdn.callrail.com/companies/1/abc/12/swap.js"></script>')
        assert registry.evaluate(CALL_TRACKING, page) == ("CallRail",)

    def test_dni_fallback(self, registry: DetectorRegistry) -> None:
        page = _context('<span class="dni-number">555-123-4567</span>')
        assert registry.evaluate(CALL_TRACKING, page) == (GENERIC_DNI_LABEL,)

    def test_dni_fallback_suppressed_by_callrail(self, registry: DetectorRegistry) -> None:
        page = _context(
            '<span class="dni-number">555-123-4567</span>'
            '<script src="https://cdn.callrail.com/companies/1/swap.js"></script>'
        )
        assert registry.evaluate(CALL_TRACKING, page) == ("CallRail",)

    def test_ctm_account_id_replaces_plain_labels(self, registry: DetectorRegistry) -> None:
        page = _context(
            "<html></html>",
            _ctm=_object({}),
            **{"__ctm.config.aid": _object("12345")},
        )
        assert registry.evaluate(CALL_TRACKING, page) == ("CallTrackingMetrics (AID: 12345)",)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestDetectorRegistry:
    def test_unknown_family(self, registry: DetectorRegistry) -> None:
        with pytest.raises(ValueError, match="Unknown detector family"):
            registry.family("newsletters")

    def test_global_paths_cover_detector_globals(self, registry: DetectorRegistry) -> None:
        paths = registry.global_paths()
        assert "hbspt" in paths
        assert "Intercom" in paths
        assert "elementorFrontend.modules.forms" in paths

    def test_evaluate_many(self, registry: DetectorRegistry) -> None:
        page = _context('<form id="gform_1"></form>')
        results = registry.evaluate_many((FORMS, CHAT), page)
        assert results == {FORMS: ("Gravity Form",), CHAT: ()}

    def test_family_names_are_case_insensitive(self, registry: DetectorRegistry) -> None:
        widget = Detector("Acme Form", (SelectorRule("form.acme-form"),))
        registry.register(DetectorFamily(name=" Forms ", detectors=(widget,)))
        page = _context('<form class="acme-form"></form>')

        assert registry.evaluate("Forms", page) == ("Acme Form",)
        assert registry.evaluate(FORMS, page) == ("Acme Form",)
