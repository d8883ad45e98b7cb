"""Health check endpoints."""

import structlog
from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.dependencies import DatabaseSession
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.appointments import ACTIVE_STATUSES

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health of the appointment store, with the number of slots currently held."""

    database: str
    appointment_timezone: str
    active_appointments: int | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Report that the process is serving requests."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Appointment store health",
)
async def detailed_health_check(db: DatabaseSession) -> DetailedHealthResponse:
    """
    Query the appointment store and count appointments holding a slot.

    A failing query marks the database unhealthy and the service degraded;
    the endpoint itself still answers 200.
    """
    active_appointments: int | None
    try:
        active_appointments = await AppointmentRepository(db).count_by_status_in(ACTIVE_STATUSES)
    except SQLAlchemyError as e:
        logger.warning("appointment_store_unreachable", error=str(e))
        active_appointments = None

    db_healthy = active_appointments is not None

    return DetailedHealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        appointment_timezone=settings.appointment_timezone,
        active_appointments=active_appointments,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    return {"message": "pong"}
