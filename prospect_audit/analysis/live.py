"""
Live primary-page capture through a headless Chromium session.

Loads the page with scripts executing, then snapshots the rendered markup,
the body's rendered text and every global binding the primary-page
detectors read.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout
from playwright.sync_api import sync_playwright

from prospect_audit.analysis.analyzer import required_global_paths
from prospect_audit.analysis.config.models import SiteAnalysisSettings
from prospect_audit.analysis.errors import TransportError
from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.page_context import GlobalBinding, PageContext

logger = logging.getLogger(__name__)

# Resolves each dotted path on window and returns a JSON-safe description.
SNAPSHOT_GLOBALS_JS = """(paths) => {
    const describe = (value) => {
        const entry = { type: typeof value, truthy: !!value, value: null, keys: [] };
        if (value === null || value === undefined || typeof value === 'function') {
            return entry;
        }
        if (typeof value === 'object') {
            try { entry.keys = Object.keys(value).slice(0, 200); } catch (e) { entry.keys = []; }
        }
        try {
            entry.value = JSON.parse(JSON.stringify(value));
        } catch (e) {
            entry.value = null;
        }
        return entry;
    };
    const snapshot = {};
    for (const path of paths) {
        let current = window;
        let resolved = true;
        for (const part of path.split('.')) {
            try {
                if (current === null || current === undefined) { resolved = false; break; }
                current = current[part];
            } catch (e) {
                resolved = false;
                break;
            }
        }
        snapshot[path] = resolved ? describe(current) : describe(undefined);
    }
    return snapshot;
}"""

BODY_TEXT_JS = "() => (document.body ? document.body.innerText : '')"


def bindings_from_snapshot(snapshot: Mapping[str, Mapping[str, Any]]) -> dict[str, GlobalBinding]:
    bindings: dict[str, GlobalBinding] = {}
    for path, entry in snapshot.items():
        bindings[path] = GlobalBinding(
            type_name=str(entry.get("type") or "undefined"),
            truthy=bool(entry.get("truthy")),
            value=entry.get("value"),
            keys=tuple(str(key) for key in entry.get("keys") or ()),
        )
    return bindings


def capture_live_context(
    url: str,
    *,
    settings: SiteAnalysisSettings | None = None,
    global_paths: Iterable[str] | None = None,
) -> PageContext:
    """
    Render `url` in headless Chromium and return a live-equivalent PageContext.
    """

    active = settings or SiteAnalysisSettings()
    paths = list(global_paths or required_global_paths())
    log_event(logger, logging.INFO, "live_capture_started", page_url=url)

    try:
        with sync_playwright() as pw:
            browser = pw.chromium.launch(headless=True)
            try:
                page = browser.new_context(ignore_https_errors=True).new_page()
                try:
                    page.goto(url, timeout=active.live_timeout_ms, wait_until="load")
                except PlaywrightTimeout:
                    log_event(
                        logger,
                        logging.WARNING,
                        "live_capture_load_timeout",
                        page_url=url,
                        timeout_ms=active.live_timeout_ms,
                    )
                markup = page.content()
                final_url = page.url or url
                snapshot = page.evaluate(SNAPSHOT_GLOBALS_JS, paths)
                body_text = page.evaluate(BODY_TEXT_JS)
            finally:
                browser.close()
    except PlaywrightError as exc:
        raise TransportError(f"Could not load {url} in browser: {exc}") from exc

    context = PageContext.from_markup(
        markup,
        final_url,
        globals_snapshot=bindings_from_snapshot(snapshot or {}),
        body_text=body_text or "",
        parser=active.html_parser,
    )
    log_event(
        logger,
        logging.INFO,
        "live_capture_finished",
        page_url=final_url,
        globals_captured=len(snapshot or {}),
    )
    return context
