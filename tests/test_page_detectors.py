"""
tests/test_page_detectors.py

Pytest unit tests for tag IDs, phone numbers, platform and privacy policy.
"""

from __future__ import annotations

import pytest

from prospect_audit.analysis.detectors import (
    CUSTOM_PLATFORM_LABEL,
    UNKNOWN_PLATFORM_LABEL,
    detect_ads_conversion_ids,
    detect_analytics,
    detect_bing_tag,
    detect_platform,
    detect_privacy_policy,
    detect_tag_manager,
    extract_phone_numbers,
    is_valid_phone,
)
from prospect_audit.analysis.detectors.privacy import PRIVACY_ON_PAGE_LABEL
from prospect_audit.analysis.detectors.tags import LEGACY_ADS_SCRIPT
from prospect_audit.analysis.page_context import GlobalBinding, PageContext


def _context(
    markup: str,
    globals_snapshot: dict[str, GlobalBinding] | None = None,
    url: str = "https://example.com/",
) -> PageContext:
    return PageContext.from_markup(markup, url, globals_snapshot=globals_snapshot)


# ---------------------------------------------------------------------------
# Tag identifiers
# ---------------------------------------------------------------------------


class TestTagManager:
    def test_id_from_container_script(self) -> None:
        page = _context(
            '<script async src="https://www.googletagmanager.com/gtm.js?id=GTM-ABC123"></script>'
        )
        assert detect_tag_manager(page) == "GTM-ABC123"

    def test_id_from_inline_snippet(self) -> None:
        page = _context(
            "<script>(function(w,d,s,l,i){w[l]=w[l]||[];"
            "w[l].push({'gtm.start': new Date().getTime(),event:'gtm.js'});"
            "})(window,document,'script','dataLayer','GTM-XYZ789');</script>"
        )
        assert detect_tag_manager(page) == "GTM-XYZ789"

    def test_id_from_noscript_iframe(self) -> None:
        page = _context(
            '<noscript><iframe src="https://www.googletagmanager.com/ns.html?id=GTM-NS1">'
            "</iframe></noscript>"
        )
        assert detect_tag_manager(page) == "GTM-NS1"

    def test_absent(self) -> None:
        assert detect_tag_manager(_context("<p>plain</p>")) is None


class TestAnalytics:
    def test_id_from_gtag_script(self) -> None:
        page = _context(
            '<script async src="https://www.googletagmanager.com/gtag/js?id=G-ABCD1234"></script>'
        )
        assert detect_analytics(page) == "G-ABCD1234"

    def test_id_from_config_call(self) -> None:
        page = _context("<script>gtag('config', 'G-XYZ98765');</script>")
        assert detect_analytics(page) == "G-XYZ98765"

    def test_id_from_captured_data_layer(self) -> None:
        data_layer = [{"0": "js", "1": {}}, {"0": "config", "1": "G-LIVE1234"}]
        page = _context(
            "<html></html>",
            {"dataLayer": GlobalBinding(type_name="object", truthy=True, value=data_layer)},
        )
        assert detect_analytics(page) == "G-LIVE1234"

    def test_recaptcha_markup_is_not_an_analytics_id(self) -> None:
        page = _context(
            '<div class="g-recaptcha"></div><script>grecaptcha.render("g-recaptcha");</script>'
        )
        assert detect_analytics(page) is None


class TestAdsAndBing:
    def test_ads_id_from_config_call(self) -> None:
        page = _context("<script>gtag('config', 'AW-123456789');</script>")
        assert detect_ads_conversion_ids(page) == ("AW-123456789",)

    def test_legacy_ads_script_without_id(self) -> None:
        page = _context(
            '<script src="https://www.googleadservices.com/pagead/conversion_async.js"></script>'
        )
        assert detect_ads_conversion_ids(page) == (LEGACY_ADS_SCRIPT,)

    def test_no_ads(self) -> None:
        assert detect_ads_conversion_ids(_context("<p>x</p>")) == ()

    def test_bing_id_from_init_snippet(self) -> None:
        page = _context(
            "<script>window.uetq = window.uetq || [];window.uetq.push('u', '12345678');</script>"
        )
        assert detect_bing_tag(page) == "12345678"

    def test_bing_id_from_action_script(self) -> None:
        page = _context('<script src="https://bat.bing.com/p/action/5012345.js"></script>')
        assert detect_bing_tag(page) == "5012345"


# ---------------------------------------------------------------------------
# Phone numbers
# ---------------------------------------------------------------------------


class TestPhoneNumbers:
    @pytest.mark.parametrize(
        "candidate, expected",
        [
            ("555-123-4567", True),
            ("(555) 123-4567", True),
            ("+1 555 123 4567", True),
            ("555-123-456", False),
            ("1234 5678 9012", False),
        ],
    )
    def test_accepts_only_ten_or_eleven_digits(self, candidate: str, expected: bool) -> None:
        assert is_valid_phone(candidate) is expected

    def test_repeated_number_is_reported_once(self) -> None:
        page = _context("<p>Call 555-123-4567 or 555-123-4567</p>")
        assert extract_phone_numbers(page) == ("555-123-4567",)

    def test_tel_link_target(self) -> None:
        page = _context('<a href="tel:+1-555-123-4567">Call us</a>')
        assert extract_phone_numbers(page) == ("+1-555-123-4567",)

    def test_tel_link_keeps_extension_marker(self) -> None:
        page = _context('<a href="tel:555-123-4567x1">Call us</a>')
        assert extract_phone_numbers(page) == ("555-123-4567x1",)

    def test_distinct_renderings_are_kept(self) -> None:
        page = _context("<p>555-123-4567 and (555) 123-4567</p>")
        assert extract_phone_numbers(page) == ("555-123-4567", "(555) 123-4567")

    def test_short_and_long_digit_runs_are_rejected(self) -> None:
        page = _context("<p>Order 12345 shipped. Ref 1234 5678 9012.</p>")
        assert extract_phone_numbers(page) == ()


# ---------------------------------------------------------------------------
# Platform
# ---------------------------------------------------------------------------


class TestPlatform:
    def test_wordpress_with_version(self) -> None:
        page = _context(
            '<html><head><link rel="stylesheet" href="/wp-content/themes/x/style.css"></head>'
            '<body class="home wp-version-6_4_2"></body></html>'
        )
        assert detect_platform(page) == "WordPress 6.4.2"

    def test_wordpress_with_foreign_generator(self) -> None:
        page = _context(
            '<head><meta name="generator" content="Elementor 3.1">'
            '<script src="/wp-includes/js/jquery.js"></script></head>'
        )
        assert detect_platform(page) == "WordPress (Generator: Elementor)"

    def test_wordpress_generator_adds_no_suffix(self) -> None:
        page = _context(
            '<head><meta name="generator" content="WordPress 6.4">'
            '<script src="/wp-includes/js/jquery.js"></script></head>'
        )
        assert detect_platform(page) == "WordPress"

    def test_drupal_generator_keeps_full_text(self) -> None:
        page = _context('<meta name="generator" content="Drupal 10 (https://www.drupal.org)">')
        assert detect_platform(page) == "Drupal (Drupal 10 (https://www.drupal.org))"

    def test_unrecognized_generator(self) -> None:
        page = _context('<meta name="generator" content="Hugo 0.120">')
        assert detect_platform(page) == "Platform by generator: Hugo 0.120"

    def test_shopify_theme(self) -> None:
        page = _context(
            "<html></html>",
            {
                "Shopify": GlobalBinding(type_name="object", truthy=True, value={}),
                "Shopify.theme.name": GlobalBinding(type_name="string", truthy=True, value="Dawn"),
            },
        )
        assert detect_platform(page) == "Shopify (Theme: Dawn)"

    def test_react_fingerprint(self) -> None:
        assert detect_platform(_context('<div id="__next"></div>')) == "React-based site"

    def test_doctype_without_match_is_custom(self) -> None:
        page = _context("<!DOCTYPE html><html><body><p>Hi</p></body></html>")
        assert detect_platform(page) == CUSTOM_PLATFORM_LABEL

    def test_no_doctype_is_unknown(self) -> None:
        assert detect_platform(_context("<p>Hi</p>")) == UNKNOWN_PLATFORM_LABEL

    def test_detection_does_not_mutate_the_page(self) -> None:
        page = _context('<!DOCTYPE html><html><body class="wp-version-6_1"><p>Hi</p></body></html>')
        before = page.markup
        detect_platform(page)
        assert page.markup == before


# ---------------------------------------------------------------------------
# Privacy policy
# ---------------------------------------------------------------------------


class TestPrivacyPolicy:
    def test_policy_link(self) -> None:
        page = _context('<a href="/privacy-policy">Privacy Policy</a>')
        assert detect_privacy_policy(page) == "https://example.com/privacy-policy"

    def test_link_rel(self) -> None:
        page = _context('<head><link rel="privacy-policy" href="/legal"></head>')
        assert detect_privacy_policy(page) == "https://example.com/legal"

    def test_on_page_mention(self) -> None:
        page = _context("<p>We respect your privacy.</p>")
        assert detect_privacy_policy(page) == PRIVACY_ON_PAGE_LABEL

    def test_absent(self) -> None:
        assert detect_privacy_policy(_context("<p>Hello</p>")) is None


# ---------------------------------------------------------------------------
# Live snapshot conversion
# ---------------------------------------------------------------------------


def test_live_snapshot_becomes_global_bindings() -> None:
    from prospect_audit.analysis.live import bindings_from_snapshot

    bindings = bindings_from_snapshot(
        {
            "gtag": {"type": "function", "truthy": True, "value": None, "keys": []},
            "google_tag_manager": {
                "type": "object",
                "truthy": True,
                "value": None,
                "keys": ["GTM-ABC123", "G-ABCD1234"],
            },
            "Intercom": {"type": "undefined", "truthy": False, "value": None, "keys": []},
        }
    )
    page = _context("<html></html>", bindings)

    assert page.global_is_function("gtag") is True
    assert page.has_global("Intercom") is False
    assert detect_analytics(page) == "G-ABCD1234"
