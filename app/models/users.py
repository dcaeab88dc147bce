"""Clinic staff user model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    # Credentials
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("hashed_password", Text, nullable=False),
    # Profile info
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("phone", String(20)),
    Column("license_number", String(100)),
    # Authorization
    Column("role", Text, nullable=False, server_default=text("'receptionist'"), index=True),
    Column("permissions", JSON, nullable=False, server_default=text("'[]'")),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("last_login_at", DateTime(timezone=True)),
    CheckConstraint(
        "role IN ('dentist', 'assistant', 'receptionist', 'admin')",
        name="users_role_check",
    ),
)
