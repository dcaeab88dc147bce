"""Appointment scheduling core: intervals, conflicts, slots and status lifecycle."""

from app.scheduling.conflicts import ACCEPTED, ConflictChecker, ConflictResult
from app.scheduling.intervals import Interval, overlaps
from app.scheduling.locks import InMemoryPractitionerLocks, RedisPractitionerLocks
from app.scheduling.models import ACTIVE_STATUSES, Appointment, AppointmentStatus
from app.scheduling.slots import SlotGenerator, WorkingHours, generate_slots
from app.scheduling.state_machine import (
    APPOINTMENT_LIFECYCLE,
    INVOICE_LIFECYCLE,
    InvoiceStatus,
    StateMachine,
)

__all__ = [
    "ACCEPTED",
    "ACTIVE_STATUSES",
    "APPOINTMENT_LIFECYCLE",
    "Appointment",
    "AppointmentStatus",
    "INVOICE_LIFECYCLE",
    "ConflictChecker",
    "ConflictResult",
    "InMemoryPractitionerLocks",
    "Interval",
    "InvoiceStatus",
    "RedisPractitionerLocks",
    "SlotGenerator",
    "StateMachine",
    "WorkingHours",
    "generate_slots",
    "overlaps",
]
