"""
Error taxonomy for page analysis and related-page batches.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base exception for site analysis failures."""

    kind = "analysis"


class OriginMismatchError(AnalysisError):
    """Raised when a URL is outside the origin a batch is restricted to."""

    kind = "cross-origin"

    def __init__(self, url: str, allowed_origin: str) -> None:
        super().__init__(f"Cross-origin fetch skipped: {url} is not on {allowed_origin}")
        self.url = url
        self.allowed_origin = allowed_origin


class TransportError(AnalysisError):
    """Raised when a page cannot be fetched or answers with a non-2xx status."""

    kind = "transport"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(AnalysisError):
    """Raised when fetched markup cannot be turned into a document."""

    kind = "parse"


class DetectorError(AnalysisError):
    """Raised by a single matcher; never escapes detector evaluation."""

    kind = "detector"


class JobTimeoutError(AnalysisError):
    """Raised when one related-page job exceeds its time budget."""

    kind = "timeout"


class AggregationError(AnalysisError):
    """Raised when results are applied to a report in the wrong state."""

    kind = "aggregation"
