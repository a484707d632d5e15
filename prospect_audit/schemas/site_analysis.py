"""
prospect_audit/schemas/site_analysis.py

Request and response schemas for site analysis.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SiteAnalysisRequest(BaseModel):
    """
    API request model for one site analysis run.
    """

    url: str = Field(..., min_length=1, description="Absolute http(s) URL of the primary page")
    mode: Literal["static", "live"] = "static"


class RelatedPageJobResponse(BaseModel):
    url: str
    state: str
    error: str | None = None
    error_kind: str | None = None


class SiteAnalysisResponse(BaseModel):
    """
    API response model for an aggregated site analysis Report.
    """

    url: str
    tag_manager_id: str | None = None
    analytics_id: str | None = None
    ads_conversion_ids: list[str] = Field(default_factory=list)
    bing_tag_id: str | None = None
    call_tracking_services: list[str] = Field(default_factory=list)
    chat_platforms: list[str] = Field(default_factory=list)
    cms_platform: str | None = None
    privacy_policy_location: str | None = None
    form_signatures: list[str] = Field(default_factory=list)
    phone_numbers: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    related_pages: list[RelatedPageJobResponse] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    report_text: str
    report_html: str
