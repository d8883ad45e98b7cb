"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

    @property
    def is_active(self) -> bool:
        """Whether the appointment still holds its time slot."""
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are permitted."""
        return self in TERMINAL_STATUSES


ACTIVE_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.REQUESTED, AppointmentStatus.CONFIRMED}
)

TERMINAL_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.CANCELED, AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW}
)


class AppointmentCreate(BaseModel):
    """
    Schema for creating a new appointment.

    Fields are deliberately loose here; the lifecycle service owns the
    business validation and its error messages.
    """

    patient_name: str | None = Field(None, max_length=200)
    appointment_time: str | None = Field(None, max_length=64)
    doctor_id: UUID | None = None
    party_size: int | None = None


class Appointment(BaseModel):
    """Stored appointment record."""

    id: UUID | None = None
    appointment_number: str
    patient_name: str
    appointment_at: datetime
    doctor_id: UUID | None = None
    party_size: int
    status: AppointmentStatus
    cancel_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    appointment_number: str
    patient_name: str
    appointment_at: datetime
    doctor_id: UUID | None
    party_size: int
    status: AppointmentStatus
    cancel_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    statuses: list[AppointmentStatus] | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
