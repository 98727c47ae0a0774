"""Health check API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.dependencies import get_signing_store
from app.services.signing.store import SigningStore

router = APIRouter()


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Health check status")
    version: str = Field(..., description="Running application version")
    service: str = Field(..., description="Service name")
    backend: str = Field(..., description="Active signing store backend")


@router.get(
    "/",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Check if the service and its signing store are healthy",
    operation_id="get_service_health_status",
)
async def health_check(
    store: Annotated[SigningStore, Depends(get_signing_store)],
) -> HealthCheckResponse:
    """Health check endpoint."""
    store_health = await store.health_check()

    return HealthCheckResponse(
        status="healthy" if store_health["status"] == "healthy" else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        backend=store.backend,
    )
