"""
Config helpers for site analysis.
"""

from prospect_audit.analysis.config.loader import get_site_analysis_settings
from prospect_audit.analysis.config.models import OutreachContacts, SiteAnalysisSettings

__all__ = [
    "OutreachContacts",
    "SiteAnalysisSettings",
    "get_site_analysis_settings",
]
