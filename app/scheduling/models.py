"""Scheduling domain types."""

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from app.core.exceptions import ValidationException
from app.scheduling.intervals import Interval

# Clinic policy bounds
MIN_APPOINTMENT_MINUTES = 15
MAX_APPOINTMENT_MINUTES = 480
MIN_SLOT_MINUTES = 15
MAX_SLOT_MINUTES = 120


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that occupy the practitioner's calendar
ACTIVE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})


def validate_duration(
    minutes: int,
    minimum: int = MIN_APPOINTMENT_MINUTES,
    maximum: int = MAX_APPOINTMENT_MINUTES,
    label: str = "Duration",
) -> int:
    """
    Validate a duration in whole minutes against policy bounds.

    Raises:
        ValidationException: If the value is not an integer in range
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationException(f"{label} must be a whole number of minutes")
    if minutes < minimum or minutes > maximum:
        raise ValidationException(
            f"{label} must be between {minimum} and {maximum} minutes, got {minutes}"
        )
    return minutes


@dataclass(frozen=True)
class Appointment:
    """A booked appointment as seen by the scheduling core."""

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

    def __post_init__(self) -> None:
        if self.end_at <= self.start_at:
            raise ValidationException("Appointment end must be after its start")
        if self.end_at - self.start_at != timedelta(minutes=self.duration_minutes):
            raise ValidationException(
                "Appointment end must equal start plus duration "
                f"({self.start_at.isoformat()} + {self.duration_minutes} min "
                f"!= {self.end_at.isoformat()})"
            )
        if not self.treatment_type or not self.treatment_type.strip():
            raise ValidationException("Treatment type is required")

    @property
    def interval(self) -> Interval:
        return Interval(self.start_at, self.end_at)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def with_changes(self, **changes: Any) -> "Appointment":
        """Return a copy with ``changes`` applied and invariants re-checked."""
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Appointment":
        """Build an appointment from a database row mapping."""
        return cls(
            id=row["id"],
            practitioner_id=row["practitioner_id"],
            patient_id=row["patient_id"],
            start_at=row["start_at"],
            end_at=row["end_at"],
            duration_minutes=row["duration_minutes"],
            status=AppointmentStatus(row["status"]),
            treatment_type=row["treatment_type"],
            notes=row.get("notes"),
            created_by=row.get("created_by"),
            updated_by=row.get("updated_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
