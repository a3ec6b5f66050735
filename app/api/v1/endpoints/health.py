"""Health check API endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.database import db_client
from app.services.realtime.dispatch_events import dispatch_hub
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Health check status")
    version: str = Field(..., description="Running application version")
    service: str = Field(..., description="Service name")
    database: str = Field(..., description="Database connectivity")
    realtime_connections: int = Field(0, description="Open dispatch board sockets")


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Health check endpoint",
    description="Check if the service is running and the database is reachable",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    db_health = await db_client.health_check()
    healthy = db_health.get("status") == "healthy"
    if not healthy:
        LOGGER.warning("Health check degraded", extra={"database": db_health})

    return HealthCheckResponse(
        status="healthy" if healthy else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        database=db_health.get("status", "unknown"),
        realtime_connections=dispatch_hub.connection_count(),
    )
