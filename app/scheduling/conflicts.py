"""Conflict detection for proposed and rescheduled appointments."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from app.scheduling.intervals import Interval
from app.scheduling.models import Appointment, validate_duration
from app.scheduling.ports import AppointmentStore


@dataclass(frozen=True)
class ConflictResult:
    """Outcome of a conflict check: accepted, or rejected by a colliding booking."""

    conflicting_appointment_id: UUID | None = None

    @property
    def accepted(self) -> bool:
        return self.conflicting_appointment_id is None


ACCEPTED = ConflictResult()


def find_conflict(
    proposed: Interval,
    candidates: list[Appointment],
    exclude_appointment_id: UUID | None = None,
) -> Appointment | None:
    """Get the earliest active candidate overlapping ``proposed``, if any."""
    for appointment in sorted(candidates, key=lambda a: a.start_at):
        if appointment.id == exclude_appointment_id or not appointment.is_active:
            continue
        if proposed.overlaps(appointment.interval):
            return appointment
    return None


class ConflictChecker:
    """Decides whether an interval may be booked on a practitioner's calendar."""

    def __init__(self, store: AppointmentStore):
        """Initialize checker with the appointment store."""
        self.store = store

    async def check(
        self,
        practitioner_id: UUID,
        start_at: datetime,
        duration_minutes: int,
        exclude_appointment_id: UUID | None = None,
    ) -> ConflictResult:
        """
        Check a proposed booking against the practitioner's active appointments.

        Args:
            practitioner_id: Practitioner whose calendar is checked
            start_at: Proposed start
            duration_minutes: Proposed duration
            exclude_appointment_id: Appointment to ignore (the one being rescheduled)

        Returns:
            ACCEPTED, or a result naming the colliding appointment

        Raises:
            ValidationException: If the duration is out of bounds
        """
        validate_duration(duration_minutes)
        proposed = Interval.from_duration(start_at, duration_minutes)

        candidates = await self.store.find_active_by_practitioner_and_window(
            practitioner_id, proposed.start, proposed.end
        )
        conflict = find_conflict(proposed, candidates, exclude_appointment_id)

        if conflict is None:
            return ACCEPTED
        return ConflictResult(conflicting_appointment_id=conflict.id)
