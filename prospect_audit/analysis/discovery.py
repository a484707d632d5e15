"""
Related page discovery: same-origin links that signal outreach intent.
"""

from __future__ import annotations

import logging
from urllib.parse import urldefrag

from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.page_context import PageContext, url_origin, visible_text

logger = logging.getLogger(__name__)

MAX_RELATED_PAGES = 5

OUTREACH_KEYWORDS = (
    "contact",
    "schedule",
    "book",
    "booking",
    "appointment",
    "support",
    "quote",
    "estimate",
    "request-a-quote",
    "get-in-touch",
    "demo",
    "consultation",
    "pricing",
    "ask",
    "reach-us",
    "contact-us",
    "customer-service",
    "reservations",
    "free-trial",
)

_SKIPPED_HREF_PREFIXES = ("javascript:", "#", "mailto:", "tel:")


def _keyword_variants(keyword: str) -> tuple[str, ...]:
    spaced = keyword.replace("-", " ").replace("_", " ")
    variants = {
        keyword,
        spaced,
        spaced.replace(" ", "-"),
        spaced.replace(" ", "_"),
    }
    return tuple(sorted(variants))


_KEYWORD_VARIANTS = tuple(_keyword_variants(keyword) for keyword in OUTREACH_KEYWORDS)


def has_outreach_intent(link_text: str, resolved_url: str) -> bool:
    """
    Case-insensitive keyword test over link text and resolved URL.
    """

    text = " ".join(link_text.lower().split())
    url = resolved_url.lower()
    for variants in _KEYWORD_VARIANTS:
        if any(variant in text or variant in url for variant in variants):
            return True
    return False


def discover_related_pages(
    context: PageContext,
    *,
    limit: int = MAX_RELATED_PAGES,
) -> list[str]:
    """
    Return up to `limit` same-origin outreach URLs in document order.
    """

    current_url = context.url
    related: dict[str, None] = {}
    for anchor in context.anchors():
        if len(related) >= limit:
            break
        href = str(anchor.get("href") or "").strip()
        if not href or href.lower().startswith(_SKIPPED_HREF_PREFIXES):
            continue
        try:
            resolved = context.resolve(href)
        except ValueError:
            continue
        if not context.origin or url_origin(resolved) != context.origin:
            continue
        if resolved == current_url or urldefrag(resolved)[0] == urldefrag(current_url)[0]:
            continue
        if has_outreach_intent(visible_text(anchor), resolved):
            related.setdefault(resolved, None)

    urls = list(related)
    log_event(
        logger,
        logging.INFO,
        "related_pages_discovered",
        page_url=current_url,
        related_count=len(urls),
    )
    return urls
