"""
Website platform (CMS / framework) detection.
"""

from __future__ import annotations

import re

from prospect_audit.analysis.page_context import PageContext
from prospect_audit.analysis.rules import (
    Detector,
    GlobalSymbolRule,
    ScriptSrcRule,
    SelectorRule,
)

UNKNOWN_PLATFORM_LABEL = "Unknown Platform"
CUSTOM_PLATFORM_LABEL = "Potentially Custom HTML or Less Common CMS/Framework"

PLATFORM_GLOBAL_PATHS = (
    "wp",
    "jQuery.fn.wpAjax",
    "jQuery.fn.drupal",
    "Shopify",
    "Shopify.theme.name",
    "wixPerformanceMeasurements",
    "wixBiSession",
    "viewerModel",
    "Squarespace",
    "Static.SQUARESPACE_CONTEXT",
    "Joomla",
    "Drupal",
    "BCData",
    "Vue",
    "angular",
)

_WORDPRESS = Detector(
    "WordPress",
    (
        SelectorRule(
            'link[href*="wp-content/"], script[src*="wp-content/"], '
            'link[href*="wp-includes/"], script[src*="wp-includes/"]'
        ),
        GlobalSymbolRule("wp"),
        GlobalSymbolRule("jQuery.fn.wpAjax", mode="defined"),
    ),
)

# Generator content needle -> label; Drupal keeps the full generator text.
_GENERATOR_LABELS = (
    ("wix.com", "Wix"),
    ("squarespace", "Squarespace"),
    ("joomla", "Joomla!"),
    ("drupal", None),
    ("shopify", "Shopify"),
)

_SHOPIFY = Detector(
    "Shopify",
    (
        GlobalSymbolRule("Shopify"),
        SelectorRule('script[src*="cdn.shopify.com"]'),
    ),
)

# Ordered fingerprint cascade; first match wins.
PLATFORM_SIGNATURES: tuple[Detector, ...] = (
    Detector(
        "Wix",
        (
            GlobalSymbolRule("wixPerformanceMeasurements"),
            GlobalSymbolRule("wixBiSession"),
            GlobalSymbolRule("viewerModel"),
            ScriptSrcRule(needles=("static.parastorage.com",)),
            SelectorRule("#wix-warmup-data"),
        ),
    ),
    Detector(
        "Squarespace",
        (
            GlobalSymbolRule("Squarespace"),
            GlobalSymbolRule("Static.SQUARESPACE_CONTEXT"),
            ScriptSrcRule(needles=(".squarespace.com",)),
        ),
    ),
    Detector(
        "Joomla!",
        (
            GlobalSymbolRule("Joomla"),
            ScriptSrcRule(needles=("/media/jui/js/joomla.min.js",)),
        ),
    ),
    Detector(
        "Drupal",
        (
            GlobalSymbolRule("Drupal"),
            GlobalSymbolRule("jQuery.fn.drupal", mode="defined"),
            ScriptSrcRule(needles=("/misc/drupal.js",)),
        ),
    ),
    Detector(
        "Weebly",
        (
            SelectorRule("#weebly-username"),
            SelectorRule('link[href*="cdn2.editmysite.com"]'),
        ),
    ),
    Detector(
        "BigCommerce",
        (
            GlobalSymbolRule("BCData"),
            ScriptSrcRule(needles=("bigcommerce.com/",)),
        ),
    ),
    Detector("React-based site", (SelectorRule("[data-reactroot], #__next, .ReactModalPortal"),)),
    Detector("Vue.js-based site", (GlobalSymbolRule("Vue"), SelectorRule("[data-v-app]"))),
    Detector(
        "AngularJS/Angular-based site",
        (GlobalSymbolRule("angular"), SelectorRule("[ng-app], [data-ng-app]")),
    ),
)


def _wordpress_label(context: PageContext) -> str:
    label = "WordPress"
    for css_class in context.body_classes:
        match = re.match(r"wp-version-(\S+)", css_class)
        if match:
            return f"{label} {match.group(1).replace('_', '.')}"
    return label


def _shopify_label(context: PageContext) -> str | None:
    if not (_SHOPIFY.matches(context) or "Shopify.theme" in context.markup):
        return None
    theme = context.global_value("Shopify.theme.name")
    return f"Shopify (Theme: {theme})" if theme else "Shopify"


def _generator_label(generator: str) -> str | None:
    lowered = generator.lower()
    for needle, label in _GENERATOR_LABELS:
        if needle in lowered:
            return label or f"Drupal ({generator})"
    return None


def detect_platform(context: PageContext) -> str:
    """
    Return a human-readable platform label for the page.
    """

    generator = context.meta_generator()

    if _WORDPRESS.matches(context):
        label = _wordpress_label(context)
        if generator and "wordpress" not in generator.lower():
            generator_name = re.split(r"[;,\s]", generator)[0]
            if generator_name:
                label += f" (Generator: {generator_name})"
        return label

    fallback: str | None = None
    if generator:
        label = _generator_label(generator)
        if label:
            return label
        fallback = f"Platform by generator: {generator}"

    shopify = _shopify_label(context)
    if shopify:
        return shopify
    for signature in PLATFORM_SIGNATURES:
        if signature.matches(context):
            return signature.name

    if fallback:
        return fallback
    if context.has_html_doctype:
        return CUSTOM_PLATFORM_LABEL
    return UNKNOWN_PLATFORM_LABEL
