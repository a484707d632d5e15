"""
Site analysis configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class OutreachContacts:
    """
    Addresses quoted in drafted next steps.
    """

    analytics_email: str = "analytics@example.com"
    cms_email: str = "webmaster@example.com"


@dataclass(frozen=True)
class SiteAnalysisSettings:
    """
    Runtime settings for related-page fetching and analysis.
    """

    user_agent: str = "ProspectAudit-WebsiteAnalyzer/1.1"
    timeout_seconds: float = 15.0
    job_timeout_seconds: float = 30.0
    max_retries: int = 1
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 2.0
    max_related_pages: int = 5
    html_parser: str = "html.parser"
    live_timeout_ms: int = 15_000
    contacts: OutreachContacts = field(default_factory=OutreachContacts)
