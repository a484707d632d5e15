"""
Phone number extraction.
"""

from __future__ import annotations

import re

from prospect_audit.analysis.page_context import PageContext, visible_text

PHONE_PATTERN = re.compile(
    r"(?:(?:\+|00)\d{1,3}[-.\s]?)?"
    r"(?:\(?\d{2,5}\)?[-.\s]?)?"
    r"\d{2,4}[-.\s]?\d{2,4}[-.\s]?\d{0,4}"
    r"(?:\s?(?:ext|x|ext\.)\s?\d{1,5})?",
    re.IGNORECASE,
)
_TEL_HREF_NOISE = re.compile(r"[^\d+\-()\s.ext]", re.IGNORECASE)
_NON_DIGITS = re.compile(r"\D")

PHONE_CONTAINER_SELECTOR = '[class*="phone"], [class*="tel"], [id*="phone"], [id*="tel"]'
ACCEPTED_DIGIT_COUNTS = (10, 11)


def is_valid_phone(candidate: str) -> bool:
    """
    Accept a candidate iff it carries exactly 10 or 11 digits.
    """

    return len(_NON_DIGITS.sub("", candidate)) in ACCEPTED_DIGIT_COUNTS


class PhoneCollector:
    """
    Collects accepted numbers keyed by their exact trimmed surface form.

    Different renderings of one number ("555-123-4567", "(555) 123-4567")
    are kept as separate entries.
    """

    def __init__(self) -> None:
        self._numbers: dict[str, None] = {}

    def add(self, candidate: str) -> None:
        trimmed = candidate.strip()
        if trimmed and is_valid_phone(trimmed):
            self._numbers.setdefault(trimmed, None)

    def scan(self, text: str) -> None:
        if not text:
            return
        for match in PHONE_PATTERN.finditer(text):
            self.add(match.group(0))

    @property
    def numbers(self) -> tuple[str, ...]:
        return tuple(self._numbers)


def extract_phone_numbers(context: PageContext) -> tuple[str, ...]:
    """
    Scan body text, `tel:` links, anchor text and phone-ish containers.
    """

    collector = PhoneCollector()
    collector.scan(context.body_text)

    for anchor in context.anchors():
        href = str(anchor.get("href") or "").lower()
        if href.startswith("tel:"):
            collector.add(_TEL_HREF_NOISE.sub("", href[4:]))
        collector.scan(visible_text(anchor))

    for element in context.select(PHONE_CONTAINER_SELECTOR):
        collector.scan(visible_text(element))

    return collector.numbers
