"""Tests for the appointment lifecycle rules."""

import re
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.config import settings
from app.core.exceptions import (
    ConflictException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.appointments import (
    ACTIVE_STATUSES,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentStatus,
)
from app.services.appointment_service import AppointmentService, parse_appointment_time

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)
TOMORROW = NOW + timedelta(days=1)


@pytest.fixture
def store() -> AsyncMock:
    """Record store double that assigns ids on save."""
    repo = AsyncMock(spec=AppointmentRepository)
    repo.exists_active_at.return_value = False

    async def _save(appointment):
        return appointment.model_copy(update={"id": appointment.id or uuid4()})

    repo.save.side_effect = _save

    async def _update_if_status_in(appointment, statuses):
        return appointment

    repo.update_if_status_in.side_effect = _update_if_status_in
    return repo


@pytest.fixture
def service(store: AsyncMock) -> AppointmentService:
    return AppointmentService(store, clock=lambda: NOW)


def _request(**overrides) -> AppointmentCreate:
    values = {
        "patient_name": "Kim",
        "appointment_time": TOMORROW.isoformat(),
        "party_size": 2,
    }
    values.update(overrides)
    return AppointmentCreate(**values)


@pytest.mark.asyncio
async def test_create_appointment_saves_as_requested(service, store) -> None:
    response = await service.create_appointment(_request())

    assert response.status == AppointmentStatus.REQUESTED
    assert response.patient_name == "Kim"
    assert response.party_size == 2
    assert response.appointment_at == TOMORROW
    assert response.cancel_reason is None
    assert response.created_at == NOW
    assert response.updated_at == NOW
    assert re.fullmatch(r"RSV-[0-9A-F]{12}", response.appointment_number)
    store.exists_active_at.assert_awaited_once_with(TOMORROW, ACTIVE_STATUSES)
    store.save.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_appointment_generates_unique_numbers(service) -> None:
    first = await service.create_appointment(_request())
    second = await service.create_appointment(
        _request(appointment_time=(TOMORROW + timedelta(hours=1)).isoformat())
    )

    assert first.appointment_number != second.appointment_number
    assert first.id != second.id


@pytest.mark.asyncio
async def test_create_appointment_trims_patient_name(service) -> None:
    response = await service.create_appointment(_request(patient_name="  Kim  "))

    assert response.patient_name == "Kim"


@pytest.mark.asyncio
async def test_create_appointment_threads_doctor_id(service) -> None:
    doctor_id = uuid4()

    response = await service.create_appointment(_request(doctor_id=doctor_id))

    assert response.doctor_id == doctor_id


@pytest.mark.asyncio
async def test_create_appointment_fails_for_past_time(service, store) -> None:
    yesterday = NOW - timedelta(days=1)

    with pytest.raises(ValidationException) as exc_info:
        await service.create_appointment(_request(appointment_time=yesterday.isoformat()))

    assert "time" in exc_info.value.message
    store.exists_active_at.assert_not_awaited()
    store.save.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_appointment_fails_for_current_instant(service, store) -> None:
    with pytest.raises(ValidationException, match="must be in the future"):
        await service.create_appointment(_request(appointment_time=NOW.isoformat()))

    store.save.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_appointment_fails_when_slot_is_taken(service, store) -> None:
    store.exists_active_at.return_value = True

    with pytest.raises(ConflictException) as exc_info:
        await service.create_appointment(_request())

    assert exc_info.value.message == "active appointment already exists at this time"
    store.save.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("party_size", [0, -3, None])
async def test_create_appointment_rejects_invalid_party_size(service, store, party_size) -> None:
    with pytest.raises(ValidationException) as exc_info:
        await service.create_appointment(_request(party_size=party_size))

    assert exc_info.value.message == "party size must be at least 1"
    store.exists_active_at.assert_not_awaited()
    store.save.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("request_data", "message"),
    [
        (None, "appointment request is required"),
        ({"patient_name": "   ", "party_size": 0}, "patient name is required"),
        ({"patient_name": None}, "patient name is required"),
        ({"appointment_time": " ", "party_size": 0}, "appointment time is required"),
        ({"appointment_time": None}, "appointment time is required"),
    ],
)
async def test_create_appointment_validation_order(service, store, request_data, message) -> None:
    data = None if request_data is None else _request(**request_data)

    with pytest.raises(ValidationException) as exc_info:
        await service.create_appointment(data)

    assert exc_info.value.message == message
    store.exists_active_at.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("appointment_time", ["tomorrow", "2026-13-01T10:00", "2026-10-19"])
async def test_create_appointment_rejects_unparseable_time(service, appointment_time) -> None:
    with pytest.raises(ValidationException, match="invalid time format"):
        await service.create_appointment(_request(appointment_time=appointment_time))


def test_parse_appointment_time_normalizes_offsets() -> None:
    parsed = parse_appointment_time("2026-10-19T18:30:00+09:00")

    assert parsed == datetime(2026, 10, 19, 9, 30, tzinfo=UTC)
    assert parsed.tzinfo is UTC


def test_parse_appointment_time_treats_naive_values_as_default_zone() -> None:
    parsed = parse_appointment_time(" 2026-10-19T10:00 ")

    assert parsed == datetime(2026, 10, 19, 10, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_get_appointment_not_found(service, store) -> None:
    store.find_by_id.return_value = None

    with pytest.raises(NotFoundException):
        await service.get_appointment(uuid4())


@pytest.mark.asyncio
async def test_get_appointment_by_number_not_found(service, store) -> None:
    store.find_by_appointment_number.return_value = None

    with pytest.raises(NotFoundException, match="RSV-MISSING"):
        await service.get_appointment_by_number("RSV-MISSING")


@pytest.mark.asyncio
async def test_list_appointments_returns_store_contents(service, store, make_appointment) -> None:
    records = [make_appointment(id=uuid4()), make_appointment(id=uuid4())]
    store.find_all.return_value = records

    responses = await service.list_appointments()

    assert [item.id for item in responses] == [record.id for record in records]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", sorted(ACTIVE_STATUSES, key=lambda s: s.value))
async def test_cancel_appointment_from_active_status(service, store, make_appointment, status) -> None:
    appointment = make_appointment(
        id=uuid4(),
        status=status,
        created_at=NOW - timedelta(hours=2),
        updated_at=NOW - timedelta(hours=1),
    )
    store.find_by_id.return_value = appointment

    response = await service.cancel_appointment(appointment.id)

    assert response.status == AppointmentStatus.CANCELED
    assert response.cancel_reason == settings.default_cancel_reason
    assert response.updated_at == NOW
    assert response.updated_at > appointment.updated_at
    store.update_if_status_in.assert_awaited_once()
    saved, statuses = store.update_if_status_in.await_args.args
    assert saved.status == AppointmentStatus.CANCELED
    assert statuses == ACTIVE_STATUSES
    store.save.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status",
    [AppointmentStatus.CANCELED, AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW],
)
async def test_cancel_appointment_fails_when_finalized(service, store, make_appointment, status) -> None:
    appointment = make_appointment(id=uuid4(), status=status)
    store.find_by_id.return_value = appointment

    with pytest.raises(InvalidStateException) as exc_info:
        await service.cancel_appointment(appointment.id)

    assert "cannot cancel" in exc_info.value.message
    assert status.value in exc_info.value.message
    store.update_if_status_in.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_appointment_not_found(service, store) -> None:
    store.find_by_id.return_value = None

    with pytest.raises(NotFoundException):
        await service.cancel_appointment(uuid4())

    store.update_if_status_in.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_appointment_rejected_when_finalized_after_read(
    service, store, make_appointment
) -> None:
    appointment = make_appointment(id=uuid4())
    store.find_by_id.side_effect = [
        appointment,
        appointment.model_copy(update={"status": AppointmentStatus.COMPLETED}),
    ]
    store.update_if_status_in.side_effect = None
    store.update_if_status_in.return_value = None

    with pytest.raises(InvalidStateException, match="status=completed"):
        await service.cancel_appointment(appointment.id)

    assert store.find_by_id.await_count == 2


@pytest.mark.asyncio
async def test_search_appointments_rejects_inverted_range(service, store) -> None:
    filters = AppointmentFilters(from_date=TOMORROW, to_date=NOW)

    with pytest.raises(ValidationException):
        await service.search_appointments(filters)

    store.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_appointments_wraps_page(service, store, make_appointment) -> None:
    store.search.return_value = ([make_appointment(id=uuid4())], 7)

    response = await service.search_appointments(AppointmentFilters(page=2, page_size=1))

    assert response.total == 7
    assert response.page == 2
    assert response.page_size == 1
    assert len(response.items) == 1
