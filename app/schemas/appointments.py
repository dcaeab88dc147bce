"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.scheduling.models import (
    MAX_APPOINTMENT_MINUTES,
    MAX_SLOT_MINUTES,
    MIN_APPOINTMENT_MINUTES,
    MIN_SLOT_MINUTES,
    AppointmentStatus,
)

__all__ = [
    "AppointmentCreate",
    "AppointmentDetailsUpdate",
    "AppointmentFilters",
    "AppointmentListResponse",
    "AppointmentReschedule",
    "AppointmentResponse",
    "AppointmentStatus",
    "AppointmentStatusUpdate",
    "AvailableSlotsResponse",
    "SlotResponse",
]


class AppointmentCreate(BaseModel):
    """Schema for proposing a new appointment."""

    practitioner_id: UUID
    patient_id: UUID
    start_at: datetime
    duration_minutes: int = Field(..., ge=MIN_APPOINTMENT_MINUTES, le=MAX_APPOINTMENT_MINUTES)
    treatment_type: str = Field(..., min_length=1, max_length=200)
    notes: str | None = Field(None, max_length=1000)

    @field_validator("treatment_type")
    @classmethod
    def validate_treatment_type(cls, v: str) -> str:
        """Reject blank treatment labels."""
        if not v.strip():
            raise ValueError("Treatment type is required")
        return v.strip()


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment to a new interval."""

    start_at: datetime | None = None
    duration_minutes: int | None = Field(
        None, ge=MIN_APPOINTMENT_MINUTES, le=MAX_APPOINTMENT_MINUTES
    )

    @model_validator(mode="after")
    def validate_has_change(self) -> "AppointmentReschedule":
        """Require at least one of the scheduling fields."""
        if self.start_at is None and self.duration_minutes is None:
            raise ValueError("Provide start_at, duration_minutes or both")
        return self


class AppointmentDetailsUpdate(BaseModel):
    """Schema for updating fields that do not affect the calendar."""

    treatment_type: str | None = Field(None, min_length=1, max_length=200)
    notes: str | None = Field(None, max_length=1000)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    practitioner_id: UUID
    patient_id: UUID
    start_at: datetime
    end_at: datetime
    duration_minutes: int
    status: AppointmentStatus
    treatment_type: str
    notes: str | None = None
    created_by: UUID | None = None
    updated_by: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    pages: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    patient_id: UUID | None = None
    practitioner_id: UUID | None = None
    status: AppointmentStatus | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)
    sort_by: Literal["start_at", "created_at", "status"] = "start_at"
    sort_order: Literal["asc", "desc"] = "asc"


class SlotResponse(BaseModel):
    """A bookable time slot."""

    start_at: datetime
    end_at: datetime
    display_time: str = Field(..., description="Clinic-local start time, HH:MM")


class AvailableSlotsResponse(BaseModel):
    """Available slots of a practitioner on one day."""

    practitioner_id: UUID
    date: date
    duration_minutes: int = Field(..., ge=MIN_SLOT_MINUTES, le=MAX_SLOT_MINUTES)
    total_slots: int
    slots: list[SlotResponse]
