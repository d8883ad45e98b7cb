"""Appointment repository - database operations for appointments."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, exists, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.appointments import appointments
from app.schemas.appointments import Appointment, AppointmentFilters, AppointmentStatus

logger = structlog.get_logger()

SLOT_TAKEN_MESSAGE = "active appointment already exists at this time"

_TIMESTAMP_FIELDS = ("appointment_at", "created_at", "updated_at")


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to an aware UTC value."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _status_values(statuses: Iterable[AppointmentStatus]) -> list[str]:
    return sorted(status.value for status in statuses)


class AppointmentRepository:
    """Repository for appointment database operations."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    @staticmethod
    def _to_appointment(row: Any) -> Appointment:
        data = dict(row._mapping)
        # SQLite hands back naive values; everything is stored as UTC
        for field in _TIMESTAMP_FIELDS:
            data[field] = as_utc(data[field])
        return Appointment.model_validate(data)

    async def _fetch_all(self, *conditions: Any) -> list[Appointment]:
        stmt = select(appointments)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(appointments.c.appointment_at.asc(), appointments.c.created_at.asc())

        result = await self.db.execute(stmt)
        return [self._to_appointment(row) for row in result.fetchall()]

    async def find_by_id(self, appointment_id: UUID) -> Appointment | None:
        """Get an appointment by its identifier."""
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return self._to_appointment(row) if row else None

    async def find_by_appointment_number(self, appointment_number: str) -> Appointment | None:
        """Get an appointment by its public reservation code."""
        stmt = select(appointments).where(appointments.c.appointment_number == appointment_number)
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return self._to_appointment(row) if row else None

    async def exists_active_at(
        self,
        appointment_at: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> bool:
        """Check whether an appointment in one of ``statuses`` holds the exact slot."""
        stmt = select(
            exists().where(
                and_(
                    appointments.c.appointment_at == as_utc(appointment_at),
                    appointments.c.status.in_(_status_values(statuses)),
                )
            )
        )
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    @staticmethod
    def _write_values(appointment: Appointment) -> dict[str, Any]:
        values = appointment.model_dump(exclude={"id"})
        values["status"] = appointment.status.value
        for field in _TIMESTAMP_FIELDS:
            values[field] = as_utc(values[field])
        return values

    async def _execute_write(self, stmt: Any, values: dict[str, Any]) -> Any:
        """Run an insert/update with RETURNING, commit, and map uniqueness violations."""
        try:
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            error_msg = str(e.orig) if e.orig is not None else str(e)
            if "appointment_number" in error_msg:
                raise ConflictException("appointment number already in use") from e
            if "uq_appointments_active_slot" in error_msg or "appointment_at" in error_msg:
                logger.warning(
                    "appointment_slot_conflict_on_commit",
                    appointment_at=values["appointment_at"].isoformat(),
                )
                raise ConflictException(SLOT_TAKEN_MESSAGE) from e
            raise
        return row

    async def save(self, appointment: Appointment) -> Appointment:
        """
        Insert or update an appointment and commit.

        Args:
            appointment: Record to persist; inserted when it has no id yet

        Returns:
            The stored record, including the assigned id

        Raises:
            ConflictException: If a uniqueness rule is violated at commit time
            NotFoundException: If an update targets a missing record
        """
        values = self._write_values(appointment)

        if appointment.id is None:
            stmt = insert(appointments).values(**values).returning(appointments)
        else:
            stmt = (
                update(appointments)
                .where(appointments.c.id == appointment.id)
                .values(**values)
                .returning(appointments)
            )

        row = await self._execute_write(stmt, values)
        if not row:
            raise NotFoundException(f"Appointment not found: id={appointment.id}")

        return self._to_appointment(row)

    async def update_if_status_in(
        self,
        appointment: Appointment,
        statuses: Iterable[AppointmentStatus],
    ) -> Appointment | None:
        """
        Overwrite a stored appointment only while its stored status is in ``statuses``.

        The status guard is part of the UPDATE itself, so a transition made by
        another writer after the caller's read is never overwritten.

        Returns:
            The updated record, or None if the record is missing or its
            stored status no longer matches
        """
        values = self._write_values(appointment)
        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment.id,
                    appointments.c.status.in_(_status_values(statuses)),
                )
            )
            .values(**values)
            .returning(appointments)
        )

        row = await self._execute_write(stmt, values)
        return self._to_appointment(row) if row else None

    async def count_by_status_in(self, statuses: Iterable[AppointmentStatus]) -> int:
        """Count appointments whose status is in ``statuses``."""
        stmt = (
            select(func.count())
            .select_from(appointments)
            .where(appointments.c.status.in_(_status_values(statuses)))
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def find_all(self) -> list[Appointment]:
        """Get all appointments in insertion order."""
        stmt = select(appointments).order_by(appointments.c.created_at.asc())
        result = await self.db.execute(stmt)
        return [self._to_appointment(row) for row in result.fetchall()]

    async def find_all_between(self, start: datetime, end: datetime) -> list[Appointment]:
        """Get appointments scheduled within ``[start, end]``."""
        return await self._fetch_all(
            appointments.c.appointment_at.between(as_utc(start), as_utc(end)),
        )

    async def find_all_by_status(self, status: AppointmentStatus) -> list[Appointment]:
        """Get appointments in a single status."""
        return await self._fetch_all(appointments.c.status == status.value)

    async def find_all_between_and_status_in(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> list[Appointment]:
        """Get appointments within a range whose status is in ``statuses``."""
        return await self._fetch_all(
            appointments.c.appointment_at.between(as_utc(start), as_utc(end)),
            appointments.c.status.in_(_status_values(statuses)),
        )

    async def find_page_by_status_in(
        self,
        statuses: Iterable[AppointmentStatus],
        page: int,
        page_size: int,
    ) -> tuple[list[Appointment], int]:
        """Get one page of appointments whose status is in ``statuses``."""
        filters = AppointmentFilters(statuses=list(statuses), page=page, page_size=page_size)
        return await self.search(filters)

    async def search(self, filters: AppointmentFilters) -> tuple[list[Appointment], int]:
        """
        Filter and paginate appointments.

        Args:
            filters: Status, date range and pagination parameters

        Returns:
            Tuple of (page items, total matching count)
        """
        # Build where conditions
        conditions = []

        if filters.statuses is not None:
            conditions.append(appointments.c.status.in_(_status_values(filters.statuses)))

        if filters.from_date:
            conditions.append(appointments.c.appointment_at >= as_utc(filters.from_date))

        if filters.to_date:
            conditions.append(appointments.c.appointment_at <= as_utc(filters.to_date))

        # Count total
        count_stmt = select(func.count()).select_from(appointments)
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        # Get paginated results
        offset = (filters.page - 1) * filters.page_size

        stmt = select(appointments)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = (
            stmt.order_by(appointments.c.appointment_at.asc(), appointments.c.created_at.asc())
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = [self._to_appointment(row) for row in result.fetchall()]

        return items, total
