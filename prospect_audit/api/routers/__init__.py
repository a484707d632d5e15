"""
prospect_audit/api/routers package marker.
"""

from prospect_audit.api.routers.site_analysis import router as site_analysis_router

__all__ = ["site_analysis_router"]
