"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.repositories.appointment_repository import AppointmentRepository
from app.services.appointment_service import AppointmentService


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AppointmentService:
    """
    Build the appointment service for the current request.

    Args:
        db: Database session

    Returns:
        Service bound to a repository over the request session
    """
    return AppointmentService(AppointmentRepository(db))


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
