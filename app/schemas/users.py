"""Staff user schemas."""

from enum import Enum

from pydantic import BaseModel, EmailStr, Field


class StaffRole(str, Enum):
    """Clinic staff roles."""

    DENTIST = "dentist"
    ASSISTANT = "assistant"
    RECEPTIONIST = "receptionist"
    ADMIN = "admin"


class Permission(str, Enum):
    """Permission strings checked by the API layer."""

    APPOINTMENTS_CREATE = "appointments.create"
    APPOINTMENTS_READ = "appointments.read"
    APPOINTMENTS_UPDATE = "appointments.update"
    APPOINTMENTS_DELETE = "appointments.delete"


class UserCreate(BaseModel):
    """Schema for creating a staff user."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: StaffRole = StaffRole.RECEPTIONIST
    permissions: list[Permission] = []
    phone: str | None = Field(None, max_length=20)
    license_number: str | None = Field(None, max_length=100)
