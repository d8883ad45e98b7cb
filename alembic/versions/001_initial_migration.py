"""Initial migration - create appointments table.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_SLOT_PREDICATE = "status IN ('requested', 'confirmed')"


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("appointment_number", sa.VARCHAR(length=32), nullable=False),
        sa.Column("patient_name", sa.Text(), nullable=False),
        sa.Column("appointment_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("doctor_id", sa.Uuid(), nullable=True),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.Text(), server_default="requested", nullable=False),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('requested', 'confirmed', 'canceled', 'completed', 'no_show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint("party_size >= 1", name="appointments_party_size_check"),
        sa.CheckConstraint(
            "(status = 'canceled') = (cancel_reason IS NOT NULL)",
            name="appointments_cancel_reason_check",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_number"),
    )

    # Create indexes
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index("ix_appointments_appointment_at", "appointments", ["appointment_at"])

    # One active appointment per slot
    op.create_index(
        "uq_appointments_active_slot",
        "appointments",
        ["appointment_at"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_SLOT_PREDICATE),
        sqlite_where=sa.text(ACTIVE_SLOT_PREDICATE),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("uq_appointments_active_slot", table_name="appointments")
    op.drop_index("ix_appointments_appointment_at", table_name="appointments")
    op.drop_index("ix_appointments_status", table_name="appointments")

    op.drop_table("appointments")
