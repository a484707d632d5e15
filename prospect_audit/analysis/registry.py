"""
Detector registry: built-in form, chat and call-tracking detector families.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from urllib.parse import urlparse

from prospect_audit.analysis.page_context import PageContext
from prospect_audit.analysis.rules import (
    AnyMatch,
    AttributeRule,
    Detector,
    DetectorFamily,
    FallbackRule,
    GlobalSymbolRule,
    IframeSrcRule,
    InlineScriptRule,
    Matcher,
    ScriptSrcRule,
    SelectorRule,
)

FORMS = "forms"
CHAT = "chat"
CALL_TRACKING = "call_tracking"

GENERIC_FORM_LABEL = "Generic HTML Form(s)"
GENERIC_DNI_LABEL = "Generic DNI Pattern Found"
THIRD_PARTY_FORM = "Third-Party Embedded Form"
CALL_TRACKING_METRICS = "CallTrackingMetrics"


def _form(
    name: str,
    selector: str,
    script_src: str | None = None,
    js_variable: str | None = None,
) -> Detector:
    matchers: list[Matcher] = [SelectorRule(selector)]
    if script_src:
        matchers.append(ScriptSrcRule(needles=(script_src,)))
    if js_variable:
        matchers.append(GlobalSymbolRule(js_variable, qualifier="JS variable", mode="defined"))
    return Detector(name, tuple(matchers))


FORM_DETECTORS: tuple[Detector, ...] = (
    _form("Gravity Form", 'form[id^="gform_"], div.gform_wrapper', "/gravityforms/", "gf_apply_rules"),
    _form("Contact Form 7", "form.wpcf7-form", "/contact-form-7/", "wpcf7"),
    _form(
        "Ninja Form",
        "form.nf-form-layout, div.nf-form-layout, div.nf-field-container",
        "/ninja-forms/",
        "nfForms",
    ),
    _form("WPForms", "form.wpforms-form, div.wpforms-container-full", "/wpforms/", "wpforms"),
    _form("Formidable Forms", "form.frm-show-form, div.frm_forms", "/formidable/", "frm_js"),
    _form(
        "Elementor Form",
        "form.elementor-form",
        "elementor-pro/assets/js/forms",
        "elementorFrontend.modules.forms",
    ),
    _form("Quform", 'form.quform-form[id^="quform-form-"]', "/quform/cache/quform.js"),
    Detector(
        "HubSpot Form",
        (
            SelectorRule('form.hs-form, iframe[src*="forms.hsforms.com"], div.hbspt-form'),
            ScriptSrcRule(needles=("//js.hsforms.net/forms/",)),
            GlobalSymbolRule("hbspt", qualifier="Global Object"),
        ),
    ),
    Detector(
        "Pardot Form",
        (
            SelectorRule('form[action*=".pardot.com/l/"]'),
            IframeSrcRule(needles=(".pardot.com/l/",)),
        ),
    ),
    Detector(
        "Marketo Form",
        (
            SelectorRule("form.mktoForm"),
            ScriptSrcRule(needles=("//app-sjst.marketo.com/js/forms2/",)),
        ),
    ),
    Detector(
        "Wufoo Form",
        (
            SelectorRule(
                'div[id^="wufoo-"], iframe[src*=".wufoo.com/embed/"], '
                'iframe[src*=".wufoo.com/forms/"]'
            ),
            ScriptSrcRule(needles=("wufoo.com/scripts/embed/form.js",)),
            InlineScriptRule(r"new WufooForm\(\)"),
        ),
    ),
    Detector(
        THIRD_PARTY_FORM,
        (
            ScriptSrcRule(
                patterns=(
                    r"form\.js", r"forms\.js", r"embed\.js", r"loader\.js", r"widget\.js",
                    r"scripts/forms/", r"js/forms/", r"form-builder/",
                ),
                qualifier="generic embed script detected",
            ),
            IframeSrcRule(
                patterns=(r"form", r"survey", r"signup"),
                qualifier="generic iframe detected",
            ),
            AnyMatch(
                (
                    SelectorRule('div[class*="form-embed"]'),
                    SelectorRule('div[id*="form-embed"]'),
                    SelectorRule('div[class*="form-placeholder"]'),
                    SelectorRule('div[id*="form-placeholder"]'),
                    SelectorRule("div[data-form-id]"),
                ),
                qualifier="placeholder element detected",
            ),
        ),
    ),
)

FORM_FALLBACKS = (
    FallbackRule(
        anchor=lambda context: bool(context.forms()),
        label=lambda _context: (GENERIC_FORM_LABEL,),
    ),
)


def _chat(
    name: str,
    script_srcs: tuple[str, ...],
    global_name: str,
    selector: str,
) -> Detector:
    matchers: list[Matcher] = []
    if script_srcs:
        matchers.append(ScriptSrcRule(needles=script_srcs, qualifier=None))
    matchers.append(GlobalSymbolRule(global_name))
    matchers.append(SelectorRule(selector, qualifier="HTML Element"))
    return Detector(name, tuple(matchers))


CHAT_DETECTORS: tuple[Detector, ...] = (
    _chat("Tidio", ("widget.tidiochat.com",), "tidioChatApi", 'iframe[id^="tidio-chat-iframe"]'),
    _chat(
        "Podium",
        ("connect-widget.podium.com",),
        "Podium",
        '[id*="podium-bubble"], [id*="podium-widget"]',
    ),
    _chat("LiveChat", ("cdn.livechatinc.com",), "LiveChatWidget", "#livechat-widget"),
    _chat("Intercom", ("widget.intercom.io", "js.intercomcdn.com"), "Intercom", '[id^="intercom-"]'),
    _chat("Drift", ("js.driftt.com",), "drift", "#drift-widget"),
    _chat("Tawk.to", ("embed.tawk.to",), "Tawk_API", '[id*="tawk-chat-widget"]'),
    _chat("Crisp", ("client.crisp.chat",), "$crisp", "#crisp-client"),
    _chat(
        "HubSpot Chat",
        ("js.hs-scripts.com", "js.usemessages.com"),
        "HubSpotConversations",
        "#hubspot-messages-iframe-container",
    ),
    _chat(
        "Zendesk Chat",
        ("v2.zopim.com", "static.zdassets.com/ekr/snippet.js"),
        "$zopim",
        'iframe[id^="zopim"]',
    ),
    _chat("Wix Chat", (), "wixChat", '[id*="wixapps-chat"], iframe[src*="wix-chat"]'),
    _chat(
        "HappyFox Chat",
        ("widget.happyfoxchat.com",),
        "HFCHAT",
        '#hf-chat-widget, iframe[src*="happyfoxchat.com"]',
    ),
    _chat(
        "Emitrr Chat",
        ("widget.emitrr.com",),
        "emitrr",
        '#emitrr-widget, iframe[src*="emitrr.com"]',
    ),
)

GENERIC_CHAT_PATTERN = re.compile(r"chat|livechat|messaging|widget", re.IGNORECASE)


def _generic_chat_filenames(context: PageContext) -> Iterator[str]:
    for script in context.scripts:
        if not script.src:
            continue
        if "googletagmanager" in script.src or "google-analytics" in script.src:
            continue
        filename = urlparse(script.src).path.rsplit("/", 1)[-1]
        if filename and GENERIC_CHAT_PATTERN.search(filename):
            yield filename


CHAT_FALLBACKS = (
    FallbackRule(
        anchor=lambda context: any(True for _ in _generic_chat_filenames(context)),
        label=lambda context: (
            f"Generic Chat Script ({filename})" for filename in _generic_chat_filenames(context)
        ),
    ),
)


CALL_TRACKING_DETECTORS: tuple[Detector, ...] = (
    Detector(
        CALL_TRACKING_METRICS,
        (
            ScriptSrcRule(
                patterns=(
                    r"(cdn\.calltrackingmetrics\.com/[^/]+/track\.js|ctm\.js|"
                    r"calltrackingmetrics\.com|tctm\.co)",
                ),
                qualifier=None,
            ),
            GlobalSymbolRule("_ctm"),
            GlobalSymbolRule("__ctm_loaded", qualifier="JS Object 2"),
            AttributeRule("data-ctm-identifier"),
            SelectorRule('span[data-ctm-tracked="true"]', qualifier="Specific Element"),
        ),
    ),
    Detector(
        "CallRail",
        (
            ScriptSrcRule(patterns=(r"cdn\.callrail\.com|callrail\.com",), qualifier=None),
            GlobalSymbolRule("CallTrk"),
        ),
    ),
    Detector(
        "WhatConverts",
        (
            ScriptSrcRule(patterns=(r"t\.whatconverts\.com|whatconverts\.com",), qualifier=None),
            GlobalSymbolRule("wc_event_yp"),
        ),
    ),
    Detector(
        "ServiceTitan DNI",
        (ScriptSrcRule(patterns=(r"dna\.js|servicetitan.*dni",), qualifier=None),),
    ),
    Detector(
        "Google Call Tracking",
        (
            ScriptSrcRule(
                patterns=(r"googleadservices\.com/pagead/conversion_async\.js",),
                qualifier=None,
            ),
            GlobalSymbolRule("google_wcc_status", qualifier="JS Function", mode="function"),
            SelectorRule("._goog_wcc_swap", qualifier="Known Element"),
        ),
    ),
)


def _dni_already_covered(label: str) -> bool:
    return (
        "dni" in label.lower()
        or CALL_TRACKING_METRICS in label
        or "CallRail" in label
    )


CALL_TRACKING_FALLBACKS = (
    FallbackRule(
        anchor=lambda context: context.has_element(
            'span[class*="dni"], span[id*="dni"], span[data-dni]'
        ),
        label=lambda _context: (GENERIC_DNI_LABEL,),
        suppressed_by=_dni_already_covered,
    ),
)


def _attach_ctm_account(context: PageContext, labels: tuple[str, ...]) -> tuple[str, ...]:
    account_id = context.global_value("__ctm.config.aid")
    if not account_id:
        return labels
    kept = tuple(
        label
        for label in labels
        if label != CALL_TRACKING_METRICS and not label.startswith(f"{CALL_TRACKING_METRICS} (")
    )
    return (*kept, f"{CALL_TRACKING_METRICS} (AID: {account_id})")


BUILTIN_FAMILIES: tuple[DetectorFamily, ...] = (
    DetectorFamily(FORMS, FORM_DETECTORS, FORM_FALLBACKS),
    DetectorFamily(CHAT, CHAT_DETECTORS, CHAT_FALLBACKS),
    DetectorFamily(
        CALL_TRACKING,
        CALL_TRACKING_DETECTORS,
        CALL_TRACKING_FALLBACKS,
        postprocess=_attach_ctm_account,
    ),
)

FULL_FAMILY_NAMES = (FORMS, CHAT, CALL_TRACKING)
# Families that only need markup; chat and call tracking depend on live globals.
REDUCED_FAMILY_NAMES = (FORMS,)


def _family_key(name: str) -> str:
    return name.strip().lower()


def _walk_global_paths(matchers: Iterable[Matcher]) -> Iterator[str]:
    for matcher in matchers:
        if isinstance(matcher, GlobalSymbolRule):
            yield matcher.path
        elif isinstance(matcher, AnyMatch):
            yield from _walk_global_paths(matcher.rules)


class DetectorRegistry:
    """
    Registry of detector families keyed by name.
    """

    def __init__(self, families: Iterable[DetectorFamily] | None = None) -> None:
        self._families: dict[str, DetectorFamily] = {}
        for family in (*BUILTIN_FAMILIES, *(families or ())):
            self.register(family)

    def register(self, family: DetectorFamily) -> None:
        self._families[_family_key(family.name)] = family

    def family(self, name: str) -> DetectorFamily:
        resolved = self._families.get(_family_key(name))
        if resolved is None:
            allowed = ", ".join(sorted(self._families))
            raise ValueError(f"Unknown detector family '{name}'. Allowed families: {allowed}.")
        return resolved

    def evaluate(self, name: str, context: PageContext) -> tuple[str, ...]:
        return self.family(name).evaluate(context)

    def evaluate_many(
        self,
        names: Iterable[str],
        context: PageContext,
    ) -> Mapping[str, tuple[str, ...]]:
        return {name: self.evaluate(name, context) for name in names}

    def global_paths(self) -> tuple[str, ...]:
        """
        Dotted global paths referenced by registered detectors.
        """

        paths: dict[str, None] = {}
        for family in self._families.values():
            for detector in family.detectors:
                for path in _walk_global_paths(detector.matchers):
                    paths.setdefault(path, None)
        return tuple(paths)
