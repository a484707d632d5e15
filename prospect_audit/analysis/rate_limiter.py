"""
Origin-aware pacing for related-page fetches.
"""

from __future__ import annotations

import asyncio
import time

from prospect_audit.analysis.page_context import url_origin


class DomainRateLimiter:
    """
    Enforces a minimum interval between requests to the same origin.
    """

    def __init__(self, *, rate_limit_per_second: float) -> None:
        self._min_interval = 1.0 / max(0.1, rate_limit_per_second)
        self._last_request_by_origin: dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def wait(self, url: str) -> float:
        """
        Sleep as needed before a request to `url`; returns seconds waited.
        """

        origin = url_origin(url)
        if not origin:
            return 0.0

        async with self._lock:
            now = time.monotonic()
            last_time = self._last_request_by_origin.get(origin)
            wait_seconds = 0.0
            if last_time is not None:
                wait_seconds = max(0.0, self._min_interval - (now - last_time))
            if wait_seconds > 0:
                await asyncio.sleep(wait_seconds)
            self._last_request_by_origin[origin] = time.monotonic()
            return wait_seconds
