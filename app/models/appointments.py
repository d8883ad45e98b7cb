"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    Uuid,
    VARCHAR,
    text,
)

# Metadata for all tables
metadata = MetaData()

# Statuses that occupy a time slot; kept in sync with ACTIVE_STATUSES
ACTIVE_SLOT_PREDICATE = "status IN ('requested', 'confirmed')"

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Human-facing reservation code
    Column("appointment_number", VARCHAR(32), nullable=False, unique=True),
    # Booking details
    Column("patient_name", Text, nullable=False),
    Column("appointment_at", DateTime(timezone=True), nullable=False),
    Column("doctor_id", Uuid, nullable=True),
    Column("party_size", Integer, nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default="requested"),
    Column("cancel_reason", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    # Constraints
    CheckConstraint(
        "status IN ('requested', 'confirmed', 'canceled', 'completed', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint("party_size >= 1", name="appointments_party_size_check"),
    CheckConstraint(
        "(status = 'canceled') = (cancel_reason IS NOT NULL)",
        name="appointments_cancel_reason_check",
    ),
    Index("ix_appointments_status", "status"),
    Index("ix_appointments_appointment_at", "appointment_at"),
    # One active appointment per slot, enforced at commit time
    Index(
        "uq_appointments_active_slot",
        "appointment_at",
        unique=True,
        postgresql_where=text(ACTIVE_SLOT_PREDICATE),
        sqlite_where=text(ACTIVE_SLOT_PREDICATE),
    ),
)
