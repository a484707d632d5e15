"""
prospect_audit/api/routers/site_analysis.py

Site analysis endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from prospect_audit.analysis.errors import AnalysisError
from prospect_audit.schemas.site_analysis import SiteAnalysisRequest, SiteAnalysisResponse
from prospect_audit.services.site_analysis_service import (
    SiteAnalysisService,
    build_site_analysis_response,
    get_site_analysis_service,
)

router = APIRouter(tags=["site-analysis"])


@router.post("/site-analysis", response_model=SiteAnalysisResponse)
def analyze_site(
    payload: SiteAnalysisRequest,
    analysis_service: SiteAnalysisService = Depends(get_site_analysis_service),
) -> SiteAnalysisResponse:
    """
    Analyze one page and its related same-origin pages.
    """

    try:
        analysis = analysis_service.analyze(url=payload.url, mode=payload.mode)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except AnalysisError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Error on current page ({payload.url}): {exc}",
        ) from exc

    return build_site_analysis_response(analysis)
