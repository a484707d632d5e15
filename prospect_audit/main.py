from __future__ import annotations

from fastapi import FastAPI
from pydantic import BaseModel

from prospect_audit.config import configure_logging


class HealthResponse(BaseModel):
    status: str
    service: str


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    configure_logging()

    application = FastAPI(
        title="Prospect Audit API",
        version="1.1.0",
    )

    from prospect_audit.api.routers import site_analysis_router

    application.include_router(site_analysis_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(status="ok", service="prospect-audit")

    return application


app = create_app()
