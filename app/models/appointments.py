"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Column,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    # Ownership / references
    Column("patient_id", UUID(as_uuid=True), nullable=False),
    Column("practitioner_id", UUID(as_uuid=True), nullable=False),
    # Calendar
    Column("start_at", TIMESTAMP(timezone=True), nullable=False),
    Column("end_at", TIMESTAMP(timezone=True), nullable=False),
    Column("duration_minutes", Integer, nullable=False),
    # Appointment details
    Column("treatment_type", Text, nullable=False),
    Column("notes", Text, nullable=True),
    # Status management
    Column("status", Text, nullable=False, server_default="scheduled"),
    # Audit fields
    Column("created_by", UUID(as_uuid=True), nullable=True),
    Column("updated_by", UUID(as_uuid=True), nullable=True),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "duration_minutes BETWEEN 15 AND 480",
        name="appointments_duration_check",
    ),
    CheckConstraint("end_at > start_at", name="appointments_end_after_start_check"),
    CheckConstraint(
        "end_at - start_at = duration_minutes * INTERVAL '1 minute'",
        name="appointments_end_matches_duration_check",
    ),
    Index("ix_appointments_practitioner_start", "practitioner_id", "start_at"),
    Index("ix_appointments_patient_start", "patient_id", "start_at"),
    Index("ix_appointments_status", "status"),
)

# Active bookings of one practitioner may never overlap
NO_OVERLAP_CONSTRAINT = "appointments_no_active_overlap"

event.listen(
    appointments,
    "before_create",
    DDL('CREATE EXTENSION IF NOT EXISTS "btree_gist"').execute_if(dialect="postgresql"),
)
event.listen(
    appointments,
    "after_create",
    DDL(
        f"ALTER TABLE appointments ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist ("
        "practitioner_id WITH =, "
        "tstzrange(start_at, end_at, '[)') WITH &&"
        ") WHERE (status IN ('scheduled', 'confirmed'))"
    ).execute_if(dialect="postgresql"),
)
