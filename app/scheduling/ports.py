"""Collaborator interfaces consumed by the scheduling core."""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from app.scheduling.models import Appointment


class AppointmentStore(Protocol):
    """Persistence for appointment records."""

    async def find_active_by_practitioner_and_window(
        self,
        practitioner_id: UUID,
        window_start: datetime,
        window_end: datetime,
    ) -> list[Appointment]:
        """
        Get active appointments of a practitioner that overlap a window.

        Results are ordered by start time, earliest first.
        """
        ...

    async def find_by_id(self, appointment_id: UUID) -> Appointment | None:
        """Get an appointment by ID, or None when it does not exist."""
        ...

    async def insert(self, appointment: Appointment) -> Appointment:
        """Persist a new appointment atomically."""
        ...

    async def update(self, appointment_id: UUID, fields: dict[str, Any]) -> Appointment:
        """
        Apply ``fields`` to an appointment atomically.

        Raises:
            NotFoundException: If the appointment does not exist
        """
        ...

    async def delete(self, appointment_id: UUID) -> None:
        """Physically remove an appointment."""
        ...


class ClinicDirectory(Protocol):
    """Lookups for records owned by other parts of the clinic system."""

    async def practitioner_exists(self, practitioner_id: UUID) -> bool: ...

    async def patient_exists(self, patient_id: UUID) -> bool: ...


class PractitionerLocks(Protocol):
    """Serialization point for check-then-write sequences per practitioner."""

    def hold(self, practitioner_id: UUID) -> AbstractAsyncContextManager[None]:
        """Hold the practitioner's scheduling lock for the duration of the block."""
        ...
