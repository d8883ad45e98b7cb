"""Appointment endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AppointmentServiceDep
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
)

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Create a new appointment in requested status.

    Args:
        data: Appointment creation data
        service: Appointment service

    Returns:
        Created appointment
    """
    return await service.create_appointment(data)


@router.get(
    "/",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(service: AppointmentServiceDep) -> list[AppointmentResponse]:
    """List all appointments."""
    return await service.list_appointments()


@router.get(
    "/search",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Search appointments",
)
async def search_appointments(
    service: AppointmentServiceDep,
    status_filter: list[AppointmentStatus] | None = Query(None, alias="status"),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments with status and date filtering.

    Args:
        service: Appointment service
        status_filter: Filter by one or more statuses
        from_date: Earliest scheduled time
        to_date: Latest scheduled time
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        statuses=status_filter,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return await service.search_appointments(filters)


@router.get(
    "/number/{appointment_number}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by reservation number",
)
async def get_appointment_by_number(
    appointment_number: str,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Get a specific appointment by its reservation number."""
    return await service.get_appointment_by_number(appointment_number)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Args:
        appointment_id: Appointment ID
        service: Appointment service

    Returns:
        Appointment details
    """
    return await service.get_appointment(appointment_id)


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Cancel an active appointment.

    Args:
        appointment_id: Appointment ID
        service: Appointment service

    Returns:
        Canceled appointment
    """
    return await service.cancel_appointment(appointment_id)
