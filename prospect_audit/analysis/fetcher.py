"""
Same-origin page fetcher for related-page analysis.
"""

from __future__ import annotations

import logging
import time

import requests

from prospect_audit.analysis.config.models import SiteAnalysisSettings
from prospect_audit.analysis.errors import OriginMismatchError, ParseError, TransportError
from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.page_context import PageContext, url_origin

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class PageFetcher:
    """
    HTTP GET with a fixed client signature, restricted to one origin per call.
    """

    def __init__(
        self,
        *,
        settings: SiteAnalysisSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.request_headers = {
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
        }

    def fetch_same_origin(self, url: str, allowed_origin: str) -> str:
        """
        Return the page text, or raise before any request if origins differ.
        """

        return self.fetch_response(url, allowed_origin).text

    def fetch_response(self, url: str, allowed_origin: str) -> requests.Response:
        if not allowed_origin or url_origin(url) != allowed_origin:
            raise OriginMismatchError(url, allowed_origin)
        return self._request_with_retry(url)

    def _request_with_retry(self, url: str) -> requests.Response:
        last_error: Exception | None = None

        for attempt in range(self.settings.max_retries + 1):
            try:
                response = self.session.get(
                    url,
                    headers=self.request_headers,
                    timeout=self.settings.timeout_seconds,
                    allow_redirects=True,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc
                if isinstance(exc, requests.HTTPError):
                    status_code = exc.response.status_code if exc.response is not None else None
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise TransportError(
                            f"HTTP error! status: {status_code}",
                            status_code=status_code,
                        ) from exc
            except requests.RequestException as exc:
                raise TransportError(f"Request failed for {url}: {exc}") from exc

            if attempt >= self.settings.max_retries:
                break

            backoff_seconds = self.settings.backoff_initial_seconds * (
                self.settings.backoff_multiplier**attempt
            )
            log_event(
                logger,
                logging.INFO,
                "related_page_fetch_retry",
                page_url=url,
                attempt=attempt + 1,
                backoff_seconds=backoff_seconds,
                error=str(last_error),
            )
            time.sleep(backoff_seconds)

        status_code = None
        if isinstance(last_error, requests.HTTPError) and last_error.response is not None:
            status_code = last_error.response.status_code
        raise TransportError(
            f"Failed to fetch {url} after retries: {last_error}",
            status_code=status_code,
        ) from last_error


def fetch_static_context(
    url: str,
    *,
    settings: SiteAnalysisSettings,
    fetcher: PageFetcher | None = None,
) -> PageContext:
    """
    Build the primary PageContext from server-rendered markup.

    No scripts run, so detectors that read globals see nothing and fall back
    to markup evidence. The context carries the URL after redirects, so its
    origin matches the links the page actually serves.
    """

    origin = url_origin(url)
    if not origin:
        raise TransportError(f"Not an absolute URL: {url}")
    active_fetcher = fetcher or PageFetcher(settings=settings)
    response = active_fetcher.fetch_response(url, origin)
    final_url = response.url or url
    try:
        context = PageContext.from_markup(response.text, final_url, parser=settings.html_parser)
    except Exception as exc:
        raise ParseError(f"Could not parse markup for {final_url}: {exc}") from exc
    log_event(
        logger,
        logging.INFO,
        "static_context_fetched",
        page_url=final_url,
        requested_url=url,
    )
    return context
