"""
Markup-to-document parsing capability shared by a related-page batch.
"""

from __future__ import annotations

import logging

from prospect_audit.analysis.errors import ParseError
from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.page_context import PageContext

logger = logging.getLogger(__name__)


class DocumentParser:
    """
    Turns fetched markup into a `PageContext` without executing any script.

    The parser is a scoped resource: a batch opens it once, parses every
    fetched page through it and closes it on every exit path.
    """

    def __init__(self, *, features: str = "html.parser") -> None:
        self._features = features
        self._open = False
        self.documents_parsed = 0

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "DocumentParser":
        self._open = True
        log_event(logger, logging.DEBUG, "document_parser_opened", features=self._features)
        return self

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        log_event(
            logger,
            logging.DEBUG,
            "document_parser_closed",
            documents_parsed=self.documents_parsed,
        )

    def __enter__(self) -> "DocumentParser":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def parse(self, markup: str, url: str) -> PageContext:
        if not self._open:
            raise ParseError("Document parser is not open.")
        if not isinstance(markup, str):
            raise ParseError(f"Expected markup text for {url}, got {type(markup).__name__}.")
        try:
            context = PageContext.from_markup(markup, url, parser=self._features)
        except Exception as exc:
            raise ParseError(f"Could not parse markup for {url}: {exc}") from exc
        self.documents_parsed += 1
        return context
