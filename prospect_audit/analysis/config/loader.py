"""
Environment config loader for site analysis.
"""

from __future__ import annotations

from functools import lru_cache

from prospect_audit.analysis.config.models import OutreachContacts, SiteAnalysisSettings
from prospect_audit.config import get_float_env, get_int_env, get_str_env

_SUPPORTED_PARSERS = {"html.parser", "lxml", "html5lib"}


@lru_cache(maxsize=1)
def get_site_analysis_settings() -> SiteAnalysisSettings:
    """
    Return cached site analysis settings from environment variables.
    """

    defaults = SiteAnalysisSettings()
    html_parser = get_str_env("SITE_ANALYSIS_HTML_PARSER", defaults.html_parser).lower()
    if html_parser not in _SUPPORTED_PARSERS:
        html_parser = defaults.html_parser

    return SiteAnalysisSettings(
        user_agent=get_str_env("SITE_ANALYSIS_USER_AGENT", defaults.user_agent),
        timeout_seconds=max(
            1.0,
            get_float_env("SITE_ANALYSIS_TIMEOUT_SECONDS", defaults.timeout_seconds),
        ),
        job_timeout_seconds=max(
            1.0,
            get_float_env("SITE_ANALYSIS_JOB_TIMEOUT_SECONDS", defaults.job_timeout_seconds),
        ),
        max_retries=max(
            0,
            get_int_env("SITE_ANALYSIS_MAX_RETRIES", defaults.max_retries),
        ),
        backoff_initial_seconds=max(
            0.0,
            get_float_env(
                "SITE_ANALYSIS_BACKOFF_INITIAL_SECONDS",
                defaults.backoff_initial_seconds,
            ),
        ),
        backoff_multiplier=max(
            1.0,
            get_float_env("SITE_ANALYSIS_BACKOFF_MULTIPLIER", defaults.backoff_multiplier),
        ),
        rate_limit_per_second=max(
            0.1,
            get_float_env("SITE_ANALYSIS_RATE_LIMIT_PER_SECOND", defaults.rate_limit_per_second),
        ),
        max_related_pages=max(
            0,
            get_int_env("SITE_ANALYSIS_MAX_RELATED_PAGES", defaults.max_related_pages),
        ),
        html_parser=html_parser,
        live_timeout_ms=max(
            1000,
            get_int_env("SITE_ANALYSIS_LIVE_TIMEOUT_MS", defaults.live_timeout_ms),
        ),
        contacts=OutreachContacts(
            analytics_email=get_str_env(
                "OUTREACH_ANALYTICS_EMAIL",
                defaults.contacts.analytics_email,
            ),
            cms_email=get_str_env("OUTREACH_CMS_EMAIL", defaults.contacts.cms_email),
        ),
    )
