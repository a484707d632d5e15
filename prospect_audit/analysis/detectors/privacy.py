"""
Privacy policy presence detection.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from prospect_audit.analysis.page_context import PageContext, visible_text

PRIVACY_ON_PAGE_LABEL = "Privacy policy found on page"

PRIVACY_LINK_KEYWORDS = (
    "privacy policy",
    "privacy-policy",
    "privacy statement",
    "privacy-statement",
    "data protection",
    "data-protection",
    "privacy notice",
    "privacy-notice",
    "politique de confidentialité",
    "datenschutz",
    "datenschutzerklärung",
    "política de privacidad",
    "informativa sulla privacy",
    "privacyverklaring",
)
PRIVACY_URL_PATHS = (
    "/privacy",
    "/privacy-policy",
    "/legal/privacy",
    "/privacy_policy",
    "/privacystatement",
    "/data-privacy",
    "/meta/privacy",
)
# Link text containing one of these names the policy document itself.
_DOCUMENT_WORDS = ("policy", "statement", "notice", "erklärung", "confidentialité")
_PRIVACY_WORD = re.compile(r"privacy", re.IGNORECASE)


def detect_privacy_policy(context: PageContext) -> str | None:
    """
    Return the privacy policy URL, an on-page marker, or None.

    Strong matches (link text naming a policy/statement, or a policy-like
    path) return immediately; weaker keyword hits are remembered and used
    only when nothing stronger appears.
    """

    candidate: str | None = None
    anchors = list(context.anchors())
    for anchor in anchors:
        href = str(anchor.get("href") or "").strip()
        if not href or href.startswith("javascript:") or href.startswith("#"):
            continue
        try:
            absolute = context.resolve(href)
        except ValueError:
            continue
        text = visible_text(anchor).lower()
        path = urlparse(absolute).path.lower()

        for keyword in PRIVACY_LINK_KEYWORDS:
            if keyword in text:
                if any(word in text for word in _DOCUMENT_WORDS):
                    return absolute
                candidate = candidate or absolute
        for path_keyword in PRIVACY_URL_PATHS:
            if path_keyword in path:
                if "policy" in path_keyword or "statement" in path_keyword:
                    return absolute
                candidate = candidate or absolute
    if candidate:
        return candidate

    for link in context.select('link[rel="privacy-policy"]'):
        href = str(link.get("href") or "").strip()
        if href:
            return context.resolve(href)

    if _PRIVACY_WORD.search(context.body_text):
        if not any("privacy" in visible_text(anchor).lower() for anchor in anchors):
            return PRIVACY_ON_PAGE_LABEL
    return None
