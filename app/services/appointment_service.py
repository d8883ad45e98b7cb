"""Appointment service for business logic."""

from collections.abc import Callable
from datetime import UTC, date, datetime, tzinfo
from uuid import UUID, uuid4

import structlog

from app.config import settings
from app.core.exceptions import (
    ConflictException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from app.repositories.appointment_repository import SLOT_TAKEN_MESSAGE, AppointmentRepository
from app.schemas.appointments import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
)

logger = structlog.get_logger()


def utcnow() -> datetime:
    """Return the current instant in UTC."""
    return datetime.now(UTC)


def parse_appointment_time(value: str, default_tz: tzinfo = UTC) -> datetime:
    """
    Parse an ISO-8601 date-time into an aware UTC datetime.

    Args:
        value: Date-time text, with or without an offset
        default_tz: Zone applied to values without an offset

    Returns:
        Parsed timestamp normalized to UTC

    Raises:
        ValidationException: If the text is not a full ISO-8601 date-time
    """
    text = value.strip()

    # A bare date parses as midnight, which is not an unambiguous slot
    try:
        date.fromisoformat(text)
    except ValueError:
        pass
    else:
        raise ValidationException("invalid time format, use ISO-8601 date-time")

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationException("invalid time format, use ISO-8601 date-time") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed.astimezone(UTC)


def generate_appointment_number(prefix: str = "RSV") -> str:
    """Generate a human-facing reservation code such as ``RSV-1A2B3C4D5E6F``."""
    return f"{prefix}-{uuid4().hex[:12].upper()}"


class AppointmentService:
    """Service enforcing the appointment lifecycle rules."""

    def __init__(
        self,
        repository: AppointmentRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize service with a record store and a clock."""
        self.repository = repository
        self.clock = clock
        self.timezone = settings.appointment_tzinfo

    @staticmethod
    def _to_response(appointment: Appointment) -> AppointmentResponse:
        return AppointmentResponse.model_validate(appointment.model_dump())

    @staticmethod
    def _validate_create_request(data: AppointmentCreate | None) -> AppointmentCreate:
        if data is None:
            raise ValidationException("appointment request is required")

        if data.patient_name is None or not data.patient_name.strip():
            raise ValidationException("patient name is required")

        if data.appointment_time is None or not data.appointment_time.strip():
            raise ValidationException("appointment time is required")

        if data.party_size is None or data.party_size < 1:
            raise ValidationException("party size must be at least 1")

        return data

    async def create_appointment(self, data: AppointmentCreate | None) -> AppointmentResponse:
        """
        Create a new appointment in REQUESTED status.

        Args:
            data: Appointment creation data

        Returns:
            Created appointment

        Raises:
            ValidationException: If the request is incomplete, malformed or in the past
            ConflictException: If an active appointment already holds the slot
        """
        data = self._validate_create_request(data)

        appointment_at = parse_appointment_time(data.appointment_time, self.timezone)

        now = self.clock()
        if appointment_at <= now:
            raise ValidationException("appointment time must be in the future")

        if await self.repository.exists_active_at(appointment_at, ACTIVE_STATUSES):
            logger.info("appointment_create_conflict", appointment_at=appointment_at.isoformat())
            raise ConflictException(SLOT_TAKEN_MESSAGE)

        appointment = Appointment(
            appointment_number=generate_appointment_number(settings.appointment_number_prefix),
            patient_name=(data.patient_name or "").strip(),
            appointment_at=appointment_at,
            doctor_id=data.doctor_id,
            party_size=data.party_size,
            status=AppointmentStatus.REQUESTED,
            cancel_reason=None,
            created_at=now,
            updated_at=now,
        )

        saved = await self.repository.save(appointment)

        logger.info(
            "appointment_created",
            appointment_id=str(saved.id),
            appointment_number=saved.appointment_number,
            appointment_at=saved.appointment_at.isoformat(),
        )
        return self._to_response(saved)

    async def _require(self, appointment_id: UUID) -> Appointment:
        appointment = await self.repository.find_by_id(appointment_id)
        if appointment is None:
            raise NotFoundException(f"Appointment not found: id={appointment_id}")
        return appointment

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        return self._to_response(await self._require(appointment_id))

    async def get_appointment_by_number(self, appointment_number: str) -> AppointmentResponse:
        """
        Get appointment by its reservation code.

        Raises:
            NotFoundException: If appointment not found
        """
        appointment = await self.repository.find_by_appointment_number(appointment_number)
        if appointment is None:
            raise NotFoundException(f"Appointment not found: number={appointment_number}")
        return self._to_response(appointment)

    async def list_appointments(self) -> list[AppointmentResponse]:
        """List every appointment in insertion order."""
        return [self._to_response(item) for item in await self.repository.find_all()]

    async def search_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with status/date filtering and pagination.

        Raises:
            ValidationException: If the date range is inverted
        """
        from_date = filters.from_date
        to_date = filters.to_date
        if from_date and from_date.tzinfo is None:
            from_date = from_date.replace(tzinfo=self.timezone)
        if to_date and to_date.tzinfo is None:
            to_date = to_date.replace(tzinfo=self.timezone)

        if from_date and to_date and from_date > to_date:
            raise ValidationException("from_date must not be after to_date")

        items, total = await self.repository.search(
            filters.model_copy(update={"from_date": from_date, "to_date": to_date})
        )

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[self._to_response(item) for item in items],
        )

    @staticmethod
    def _ensure_cancelable(appointment: Appointment) -> None:
        current_status = appointment.status

        if current_status.is_terminal:
            logger.info(
                "appointment_cancel_rejected",
                appointment_id=str(appointment.id),
                status=current_status.value,
            )
            raise InvalidStateException(
                f"appointment already finalized, cannot cancel: status={current_status.value}"
            )

        if not current_status.is_active:
            raise InvalidStateException(
                f"cannot cancel from current state: status={current_status.value}"
            )

    async def cancel_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Cancel an active appointment.

        The write only applies while the stored status is still active, so a
        transition committed by another writer after the read is not overwritten.

        Args:
            appointment_id: Appointment ID

        Returns:
            Canceled appointment

        Raises:
            NotFoundException: If appointment not found
            InvalidStateException: If the appointment is finalized or otherwise not active
        """
        appointment = await self._require(appointment_id)
        self._ensure_cancelable(appointment)

        canceled = appointment.model_copy(
            update={
                "status": AppointmentStatus.CANCELED,
                "cancel_reason": settings.default_cancel_reason,
                "updated_at": self.clock(),
            }
        )

        saved = await self.repository.update_if_status_in(canceled, ACTIVE_STATUSES)
        if saved is None:
            # Status changed between the read and the write
            current = await self._require(appointment_id)
            logger.info(
                "appointment_cancel_lost_race",
                appointment_id=str(appointment_id),
                status=current.status.value,
            )
            self._ensure_cancelable(current)
            raise InvalidStateException(
                f"cannot cancel from current state: status={current.status.value}"
            )

        logger.info(
            "appointment_canceled",
            appointment_id=str(saved.id),
            appointment_number=saved.appointment_number,
        )
        return self._to_response(saved)
