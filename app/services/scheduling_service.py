"""Scheduling service: the operations the API layer runs against appointments."""

from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from app.core.exceptions import (
    BadRequestException,
    NotFoundException,
    SchedulingConflictException,
    ValidationException,
)
from app.scheduling.conflicts import ConflictChecker
from app.scheduling.intervals import Interval
from app.scheduling.models import (
    ACTIVE_STATUSES,
    MAX_SLOT_MINUTES,
    MIN_SLOT_MINUTES,
    Appointment,
    AppointmentStatus,
    validate_duration,
)
from app.scheduling.ports import AppointmentStore, ClinicDirectory, PractitionerLocks
from app.scheduling.slots import SlotGenerator, WorkingHours
from app.scheduling.state_machine import APPOINTMENT_LIFECYCLE


class SchedulingService:
    """
    Orchestrates conflict checking, slot generation and status changes.

    Every check-then-write sequence runs while holding the practitioner's
    lock, so two requests racing for the same calendar are serialized.
    Authorization is expected to be resolved by the caller.
    """

    def __init__(
        self,
        store: AppointmentStore,
        directory: ClinicDirectory,
        locks: PractitionerLocks,
        working_hours: WorkingHours | None = None,
        default_slot_minutes: int = 30,
    ):
        """Initialize service with its collaborators."""
        self.store = store
        self.directory = directory
        self.locks = locks
        self.working_hours = working_hours or WorkingHours()
        self.default_slot_minutes = default_slot_minutes
        self.conflicts = ConflictChecker(store)
        self.slots = SlotGenerator(store, self.working_hours)
        self.lifecycle = APPOINTMENT_LIFECYCLE

    def _localize(self, value: datetime) -> datetime:
        """Interpret naive datetimes in the clinic time zone."""
        if value.tzinfo is None:
            return value.replace(tzinfo=self.working_hours.tzinfo)
        return value

    async def _ensure_available(
        self,
        practitioner_id: UUID,
        start_at: datetime,
        duration_minutes: int,
        exclude_appointment_id: UUID | None = None,
    ) -> None:
        result = await self.conflicts.check(
            practitioner_id,
            start_at,
            duration_minutes,
            exclude_appointment_id=exclude_appointment_id,
        )
        if not result.accepted:
            raise SchedulingConflictException(result.conflicting_appointment_id)

    async def get_appointment(self, appointment_id: UUID) -> Appointment:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        appointment = await self.store.find_by_id(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        return appointment

    async def propose_appointment(
        self,
        practitioner_id: UUID,
        patient_id: UUID,
        start_at: datetime,
        duration_minutes: int,
        treatment_type: str,
        notes: str | None = None,
        created_by: UUID | None = None,
    ) -> Appointment:
        """
        Book a new appointment in ``scheduled`` status.

        Args:
            practitioner_id: Practitioner to book
            patient_id: Patient being booked
            start_at: Start of the appointment
            duration_minutes: Length, 15 to 480 minutes
            treatment_type: Planned treatment label
            notes: Optional free text
            created_by: Acting staff member

        Returns:
            Created appointment

        Raises:
            ValidationException: If the input is malformed
            NotFoundException: If the practitioner or patient does not exist
            SchedulingConflictException: If the slot is already taken
        """
        validate_duration(duration_minutes)
        start_at = self._localize(start_at)
        appointment = Appointment(
            id=uuid4(),
            practitioner_id=practitioner_id,
            patient_id=patient_id,
            start_at=start_at,
            end_at=start_at + timedelta(minutes=duration_minutes),
            duration_minutes=duration_minutes,
            status=AppointmentStatus.SCHEDULED,
            treatment_type=(treatment_type or "").strip(),
            notes=notes,
            created_by=created_by,
            updated_by=created_by,
        )

        if not await self.directory.practitioner_exists(practitioner_id):
            raise NotFoundException("Practitioner not found or inactive")
        if not await self.directory.patient_exists(patient_id):
            raise NotFoundException("Patient not found")

        async with self.locks.hold(practitioner_id):
            await self._ensure_available(practitioner_id, start_at, duration_minutes)
            return await self.store.insert(appointment)

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        start_at: datetime | None = None,
        duration_minutes: int | None = None,
        updated_by: UUID | None = None,
    ) -> Appointment:
        """
        Move an active appointment to a new interval.

        Fields left as None keep their current value. The appointment's own
        current booking never counts as a conflict.

        Raises:
            ValidationException: If the new duration is out of bounds
            NotFoundException: If appointment not found
            BadRequestException: If the appointment is no longer active
            SchedulingConflictException: If the new interval is taken
        """
        if duration_minutes is not None:
            validate_duration(duration_minutes)

        appointment = await self.get_appointment(appointment_id)

        async with self.locks.hold(appointment.practitioner_id):
            appointment = await self.get_appointment(appointment_id)
            if not appointment.is_active:
                raise BadRequestException(
                    f"Only scheduled or confirmed appointments can be rescheduled, "
                    f"this one is {appointment.status.value}"
                )

            new_start = self._localize(start_at) if start_at is not None else appointment.start_at
            new_duration = (
                duration_minutes if duration_minutes is not None else appointment.duration_minutes
            )
            target = Interval.from_duration(new_start, new_duration)

            await self._ensure_available(
                appointment.practitioner_id,
                target.start,
                new_duration,
                exclude_appointment_id=appointment.id,
            )
            return await self.store.update(
                appointment_id,
                {
                    "start_at": target.start,
                    "end_at": target.end,
                    "duration_minutes": new_duration,
                    "updated_by": updated_by,
                },
            )

    async def update_details(
        self,
        appointment_id: UUID,
        treatment_type: str | None = None,
        notes: str | None = None,
        updated_by: UUID | None = None,
    ) -> Appointment:
        """Update fields that do not affect the calendar."""
        fields: dict[str, Any] = {}
        if treatment_type is not None:
            if not treatment_type.strip():
                raise ValidationException("Treatment type is required")
            fields["treatment_type"] = treatment_type.strip()
        if notes is not None:
            fields["notes"] = notes

        appointment = await self.get_appointment(appointment_id)
        if not fields:
            return appointment

        fields["updated_by"] = updated_by
        return await self.store.update(appointment_id, fields)

    async def list_available_slots(
        self,
        practitioner_id: UUID,
        day: date,
        duration_minutes: int | None = None,
    ) -> list[Interval]:
        """
        List bookable slots for a practitioner on a clinic-local day.

        Raises:
            ValidationException: If the slot duration is out of bounds
            NotFoundException: If the practitioner does not exist
        """
        slot_minutes = (
            duration_minutes if duration_minutes is not None else self.default_slot_minutes
        )
        validate_duration(
            slot_minutes,
            minimum=MIN_SLOT_MINUTES,
            maximum=MAX_SLOT_MINUTES,
            label="Slot duration",
        )
        if not await self.directory.practitioner_exists(practitioner_id):
            raise NotFoundException("Practitioner not found or inactive")

        return await self.slots.available_slots(practitioner_id, day, slot_minutes)

    async def transition_status(
        self,
        appointment_id: UUID,
        requested: AppointmentStatus | str,
        updated_by: UUID | None = None,
        notes: str | None = None,
    ) -> Appointment:
        """
        Move an appointment along its status lifecycle.

        Re-opening a cancelled or no-show appointment makes it occupy the
        calendar again, so the conflict check is re-run in that case.

        Raises:
            ValidationException: If the requested status is unknown
            NotFoundException: If appointment not found
            InvalidTransitionException: If the change is not allowed
            SchedulingConflictException: If a re-opened slot was taken meanwhile
        """
        try:
            requested = AppointmentStatus(requested)
        except ValueError as e:
            raise ValidationException(f"Unknown appointment status: {requested}") from e

        appointment = await self.get_appointment(appointment_id)
        self.lifecycle.ensure_transition(appointment.status, requested)

        async with self.locks.hold(appointment.practitioner_id):
            appointment = await self.get_appointment(appointment_id)
            self.lifecycle.ensure_transition(appointment.status, requested)

            if requested in ACTIVE_STATUSES and not appointment.is_active:
                await self._ensure_available(
                    appointment.practitioner_id,
                    appointment.start_at,
                    appointment.duration_minutes,
                    exclude_appointment_id=appointment.id,
                )

            fields: dict[str, Any] = {"status": requested, "updated_by": updated_by}
            if notes:
                fields["notes"] = notes
            return await self.store.update(appointment_id, fields)

    async def delete_appointment(self, appointment_id: UUID) -> None:
        """
        Physically delete an appointment that is still only scheduled.

        Raises:
            NotFoundException: If appointment not found
            BadRequestException: If the appointment has progressed past scheduled
        """
        appointment = await self.get_appointment(appointment_id)

        async with self.locks.hold(appointment.practitioner_id):
            appointment = await self.get_appointment(appointment_id)
            if appointment.status != AppointmentStatus.SCHEDULED:
                raise BadRequestException("Only scheduled appointments can be deleted")
            await self.store.delete(appointment_id)
