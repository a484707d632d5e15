"""
tests/test_fetcher.py

Pytest unit tests for the same-origin fetcher, using an in-memory session.
"""

from __future__ import annotations

import asyncio

import pytest
import requests

from prospect_audit.analysis.config.models import SiteAnalysisSettings
from prospect_audit.analysis.discovery import discover_related_pages
from prospect_audit.analysis.errors import OriginMismatchError, TransportError
from prospect_audit.analysis.fetcher import PageFetcher, fetch_static_context
from prospect_audit.analysis.rate_limiter import DomainRateLimiter


class _FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", url: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.url = url

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}", response=self)


class _FakeSession:
    def __init__(self, *responses: object) -> None:
        self._responses = list(responses)
        self.calls: list[tuple[str, dict[str, str]]] = []

    def get(self, url: str, headers=None, timeout=None, allow_redirects=True):
        self.calls.append((url, dict(headers or {})))
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _fetcher(session: _FakeSession, **overrides: object) -> PageFetcher:
    settings = SiteAnalysisSettings(backoff_initial_seconds=0.0, **overrides)
    return PageFetcher(settings=settings, session=session)


class TestFetchSameOrigin:
    def test_cross_origin_is_rejected_before_any_request(self) -> None:
        session = _FakeSession()
        with pytest.raises(OriginMismatchError):
            _fetcher(session).fetch_same_origin("https://other.com/contact", "https://example.com")
        assert session.calls == []

    def test_returns_text_and_sends_fixed_user_agent(self) -> None:
        session = _FakeSession(_FakeResponse(text="<html>ok</html>"))
        fetcher = _fetcher(session, user_agent="ProspectAudit-Test/1.0")

        text = fetcher.fetch_same_origin("https://example.com/contact", "https://example.com")

        assert text == "<html>ok</html>"
        assert session.calls[0][1]["User-Agent"] == "ProspectAudit-Test/1.0"

    def test_non_retryable_status_fails_immediately(self) -> None:
        session = _FakeSession(_FakeResponse(status_code=404))
        with pytest.raises(TransportError) as excinfo:
            _fetcher(session).fetch_same_origin("https://example.com/x", "https://example.com")

        assert excinfo.value.status_code == 404
        assert excinfo.value.kind == "transport"
        assert len(session.calls) == 1

    def test_retryable_status_is_retried(self) -> None:
        session = _FakeSession(_FakeResponse(status_code=503), _FakeResponse(text="second"))
        fetcher = _fetcher(session, max_retries=1)

        assert fetcher.fetch_same_origin("https://example.com/x", "https://example.com") == "second"
        assert len(session.calls) == 2

    def test_connection_errors_exhaust_retries(self) -> None:
        session = _FakeSession(requests.ConnectionError("down"), requests.ConnectionError("down"))
        with pytest.raises(TransportError):
            _fetcher(session, max_retries=1).fetch_same_origin(
                "https://example.com/x",
                "https://example.com",
            )
        assert len(session.calls) == 2


def test_fetch_static_context_builds_primary_page() -> None:
    session = _FakeSession(_FakeResponse(text='<html><body><form id="gform_1"></form></body></html>'))
    settings = SiteAnalysisSettings()

    context = fetch_static_context(
        "https://example.com/",
        settings=settings,
        fetcher=PageFetcher(settings=settings, session=session),
    )

    assert context.origin == "https://example.com"
    assert len(context.forms()) == 1


def test_fetch_static_context_follows_redirected_origin() -> None:
    markup = (
        '<html><body><a href="https://example.com/contact">Contact</a>'
        '<a href="/pricing">Pricing</a></body></html>'
    )
    session = _FakeSession(_FakeResponse(text=markup, url="https://example.com/"))
    settings = SiteAnalysisSettings()

    context = fetch_static_context(
        "http://example.com/",
        settings=settings,
        fetcher=PageFetcher(settings=settings, session=session),
    )

    assert session.calls[0][0] == "http://example.com/"
    assert context.url == "https://example.com/"
    assert context.origin == "https://example.com"
    assert discover_related_pages(context) == [
        "https://example.com/contact",
        "https://example.com/pricing",
    ]


def test_rate_limiter_spaces_requests_per_origin() -> None:
    limiter = DomainRateLimiter(rate_limit_per_second=20.0)

    async def run() -> tuple[float, float, float]:
        first = await limiter.wait("https://example.com/a")
        second = await limiter.wait("https://example.com/b")
        other = await limiter.wait("https://other.com/a")
        return first, second, other

    first, second, other = asyncio.run(run())

    assert first == 0.0
    assert 0.0 < second <= 0.05
    assert other == 0.0
