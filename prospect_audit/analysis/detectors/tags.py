"""
Tag identifier extraction: Google Tag Manager, GA4, Google Ads and Bing UET.

Each extractor walks script sources, inline script content (including
deferred inline scripts held by the two_worker loader) and the captured
`dataLayer`/`uetq` queues, returning the most specific identifier found.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from collections.abc import Iterator, Sequence
from typing import Any
from urllib.parse import unquote

from prospect_audit.analysis.page_context import PageContext, ScriptElement

TAG_GLOBAL_PATHS = (
    "dataLayer",
    "google_tag_manager",
    "gtag",
    "two_worker_data_js.js",
    "google_conversion_id",
    "uetq",
)

GTAG_LOADED = "gtag.js loaded"
BAT_LOADED = "bat.js loaded"
LEGACY_ADS_SCRIPT = "Legacy Script Found"

_GTM_ID_IN_SRC = re.compile(r"id=([^&]+)")
_GTM_ID_IN_SNIPPET = re.compile(r"""['"](GTM-[A-Z0-9]+)['"]""")
_GA4_ID_IN_SRC = re.compile(r"id=(G-[A-Z0-9]+)", re.IGNORECASE)
_GA4_CONFIG_CALL = re.compile(
    r"""gtag\s*\(\s*['"]config['"]\s*,\s*['"](G-[A-Z0-9]+)['"]\s*(?:,\s*\{[^}]*\})?\s*\)\s*;""",
    re.IGNORECASE,
)
_GA4_LOOSE_ID = re.compile(r"\b(G-[A-Z0-9]{4,})\b")
_ADS_ID = re.compile(r"(AW-\d{9,11})", re.IGNORECASE)
_ADS_CONFIG_CALL = re.compile(
    r"""gtag\s*\(\s*['"]config['"]\s*,\s*['"](AW-\d{9,11})['"]\s*(?:,\s*\{[^}]*\})?\s*\)\s*;""",
    re.IGNORECASE,
)
_ADS_LEGACY_ASSIGNMENT = re.compile(r"google_conversion_id\s*=\s*(\d{9,11})", re.IGNORECASE)
_ADS_SRC_PATTERNS = (
    (re.compile(r"googleads\.g\.doubleclick\.net/pagead/viewthroughconversion/(\d{9,11})", re.I), True),
    (re.compile(r"googleadservices\.com/pagead/conversion/(\d{9,11})", re.I), True),
    (re.compile(r"googletagmanager\.com/gtag/js.*[?&]id=(AW-\d{9,11})", re.I), False),
)
_UET_ID_IN_SRC = re.compile(r"bat\.bing\.com/p/action/(\d{7,10})\.js", re.IGNORECASE)
_UET_INIT = re.compile(
    r"""uetq\s*=\s*window\.uetq\s*\|\|\s*\[\];\s*window\.uetq\.push\(\s*['"]u['"]\s*,\s*['"](\d+)['"]\s*\)""",
    re.IGNORECASE,
)
_UET_LOOSE_ID = re.compile(r"(\d{7,10})")


def resolved_script_content(context: PageContext, script: ScriptElement) -> str:
    """
    Inline script text, decoding deferred scripts parked by the two_worker loader.
    """

    if script.content or not script.delayed_id:
        return script.content
    parked = context.global_value("two_worker_data_js.js")
    if not isinstance(parked, list):
        return ""
    for item in parked:
        if not isinstance(item, dict):
            continue
        if item.get("uid") == script.delayed_id and item.get("inline") and item.get("code"):
            try:
                raw = base64.b64decode(str(item["code"]), validate=False)
                return unquote(raw.decode("latin-1"))
            except (binascii.Error, ValueError):
                return ""
    return ""


def _data_layer(context: PageContext, path: str = "dataLayer") -> list[Any]:
    value = context.global_value(path)
    return value if isinstance(value, list) else []


def _as_sequence(item: Any) -> Sequence[Any] | None:
    """
    View a queue entry as a positional sequence.

    `gtag()` pushes its `arguments` object, which serializes as
    ``{"0": ..., "1": ...}`` rather than a list.
    """

    if isinstance(item, list):
        return item
    if isinstance(item, dict) and "0" in item:
        values = []
        index = 0
        while str(index) in item:
            values.append(item[str(index)])
            index += 1
        return values
    return None


def _inline_scripts(context: PageContext) -> Iterator[tuple[ScriptElement, str]]:
    for script in context.scripts:
        content = resolved_script_content(context, script)
        if content:
            yield script, content


def detect_tag_manager(context: PageContext) -> str | None:
    for source in context.script_sources():
        if "googletagmanager.com/gtm.js" in source:
            match = _GTM_ID_IN_SRC.search(source)
            if match:
                return match.group(1)

    data_layer = _data_layer(context)
    for item in data_layer:
        if isinstance(item, dict) and item.get("event") == "gtm.js" and item.get("gtm.start"):
            for entry in data_layer:
                entry_values = _as_sequence(entry)
                if (
                    entry_values
                    and len(entry_values) > 1
                    and isinstance(entry_values[1], str)
                    and entry_values[1].startswith("GTM-")
                ):
                    return entry_values[1]
            return "GTM detected (dataLayer initialization)"
        values = _as_sequence(item)
        if values and len(values) > 1 and isinstance(values[1], str) and values[1].startswith("GTM-"):
            return values[1]

    # Static markup: the container snippet or its noscript iframe carries the ID.
    for _script, content in _inline_scripts(context):
        if "googletagmanager.com/gtm.js" in content or "gtm.start" in content:
            match = _GTM_ID_IN_SNIPPET.search(content)
            if match:
                return match.group(1)
    for source in context.iframe_sources():
        if "googletagmanager.com/ns.html" in source:
            match = _GTM_ID_IN_SRC.search(source)
            if match:
                return match.group(1)

    if context.has_element('iframe[src*="googletagmanager.com/ns.html"]') or context.has_element(
        'script[src*="googletagmanager.com/gtm.js"]'
    ):
        return "GTM likely present (found related elements/scripts)"
    return None


def detect_analytics(context: PageContext) -> str | None:
    found: str | None = None
    for script in context.scripts:
        for value in script.attributes.values():
            if value and "googletagmanager.com/gtag/js" in value:
                match = _GA4_ID_IN_SRC.search(value)
                if match:
                    return match.group(1)
                found = found or GTAG_LOADED

    for script, content in _inline_scripts(context):
        delayed = script.delayed_id is not None
        match = _GA4_CONFIG_CALL.search(content)
        if match:
            return match.group(1) + (" (Delayed Inline)" if delayed else "")
        match = _GA4_LOOSE_ID.search(content)
        if match and found in (None, GTAG_LOADED):
            where = "ID in Delayed Inline" if delayed else "ID in Inline Script"
            found = f"{match.group(1)} ({where})"
    if found and found != GTAG_LOADED:
        return found

    for item in _data_layer(context):
        values = _as_sequence(item)
        if (
            values
            and len(values) >= 2
            and values[0] == "config"
            and isinstance(values[1], str)
            and values[1].startswith("G-")
        ):
            return values[1]
        match = _GA4_LOOSE_ID.search(json.dumps(item, default=str))
        if match and found in (None, GTAG_LOADED):
            found = f"{match.group(1)} (ID in dataLayer)"
    if found and found != GTAG_LOADED:
        return found

    container = context.binding("google_tag_manager")
    if context.global_is_function("gtag") and container is not None:
        for container_id in container.keys:
            if container_id.startswith("G-"):
                return container_id
    return found


def detect_ads_conversion_ids(context: PageContext) -> tuple[str, ...]:
    ids: dict[str, None] = {}
    legacy_script = False

    for source in context.script_sources():
        for pattern, numeric in _ADS_SRC_PATTERNS:
            match = pattern.search(source)
            if match:
                ids.setdefault(f"AW-{match.group(1)}" if numeric else match.group(1), None)
        if "googleadservices.com/pagead/conversion_async.js" in source:
            legacy_script = True

    for _script, content in _inline_scripts(context):
        for match in _ADS_CONFIG_CALL.finditer(content):
            ids.setdefault(match.group(1), None)
        legacy = _ADS_LEGACY_ASSIGNMENT.search(content)
        if legacy:
            ids.setdefault(f"AW-{legacy.group(1)}", None)
        for match in _ADS_ID.finditer(content):
            ids.setdefault(match.group(1), None)

    for item in _data_layer(context):
        values = _as_sequence(item)
        if (
            values
            and len(values) >= 2
            and values[0] == "config"
            and isinstance(values[1], str)
            and values[1].startswith("AW-")
        ):
            ids.setdefault(values[1], None)
        for match in _ADS_ID.finditer(json.dumps(item, default=str)):
            ids.setdefault(match.group(1), None)

    conversion_id = context.global_value("google_conversion_id")
    if conversion_id is not None and re.fullmatch(r"\d{9,11}", str(conversion_id)):
        ids.setdefault(f"AW-{conversion_id}", None)

    if not ids and legacy_script:
        return (LEGACY_ADS_SCRIPT,)
    return tuple(ids)


def detect_bing_tag(context: PageContext) -> str | None:
    found: str | None = None
    script_seen = False
    for script in context.scripts:
        for value in script.attributes.values():
            if not value or "bat.bing.com/" not in value:
                continue
            script_seen = True
            match = _UET_ID_IN_SRC.search(value)
            if match:
                return match.group(1)
            if "bat.bing.com/bat.js" in value:
                found = found or BAT_LOADED

    for _script, content in _inline_scripts(context):
        match = _UET_INIT.search(content)
        if match:
            return match.group(1)
        if "uetq" in content:
            loose = _UET_LOOSE_ID.search(content)
            if loose and found in (None, BAT_LOADED):
                found = f"{loose.group(1)} (ID in Script)"
    if found and found != BAT_LOADED:
        return found

    queue = _data_layer(context, "uetq")
    if context.binding("uetq") is not None and isinstance(context.global_value("uetq"), list):
        found = found or "window.uetq object found"
        for item in queue:
            values = _as_sequence(item)
            if (
                values
                and len(values) >= 2
                and values[0] == "u"
                and isinstance(values[1], str)
                and re.fullmatch(r"\d{7,10}", values[1])
            ):
                return values[1]

    if script_seen and not found:
        return "bat.js loaded (ID not found)"
    return found
