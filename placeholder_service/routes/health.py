"""Health-check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from placeholder_service.schemas import HealthResponse

router = APIRouter()


@router.get("/v1/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Return service health status."""
    return HealthResponse(status="ok")
