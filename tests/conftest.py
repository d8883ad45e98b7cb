import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Settings are read at import time; point them at SQLite before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "console")

from app.config import settings  # noqa: E402
from app.database import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import metadata  # noqa: E402
from app.repositories.appointment_repository import AppointmentRepository  # noqa: E402
from app.schemas.appointments import Appointment, AppointmentStatus  # noqa: E402
from app.services.appointment_service import generate_appointment_number  # noqa: E402

# In-memory database shared by every connection of a test engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database with the appointments schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,  # Set to True for SQL debugging
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def repository(db_session: AsyncSession) -> AppointmentRepository:
    """Repository bound to the test session."""
    return AppointmentRepository(db_session)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def appointments_url() -> str:
    return f"{settings.api_v1_prefix}/appointments"


@pytest.fixture
def sample_appointment_data() -> dict:
    """Sample create payload scheduled for tomorrow."""
    tomorrow = (datetime.now(UTC) + timedelta(days=1)).replace(microsecond=0)
    return {
        "patient_name": "Kim",
        "appointment_time": tomorrow.isoformat(),
        "party_size": 2,
    }


@pytest.fixture
def make_appointment() -> Callable[..., Appointment]:
    """Factory for unsaved appointment records."""

    def _make(**overrides: Any) -> Appointment:
        now = datetime.now(UTC).replace(microsecond=0)
        values: dict[str, Any] = {
            "appointment_number": generate_appointment_number(),
            "patient_name": "Test Patient",
            "appointment_at": now + timedelta(days=1),
            "party_size": 2,
            "status": AppointmentStatus.REQUESTED,
            "cancel_reason": None,
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        if values["status"] == AppointmentStatus.CANCELED and values["cancel_reason"] is None:
            values["cancel_reason"] = settings.default_cancel_reason
        return Appointment(**values)

    return _make
