"""Finite state machines for entity status lifecycles."""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Generic, TypeVar

from app.core.exceptions import InvalidTransitionException
from app.scheduling.models import AppointmentStatus

S = TypeVar("S", bound=Enum)


class StateMachine(Generic[S]):
    """
    Status lifecycle defined by a table of directed edges.

    A state missing from the table, or mapped to no targets, is terminal.
    """

    def __init__(self, entity: str, edges: Mapping[S, Iterable[S]]):
        """Initialize with an entity name (used in errors) and an edge table."""
        self.entity = entity
        self._edges: dict[S, frozenset[S]] = {
            state: frozenset(targets) for state, targets in edges.items()
        }

    def can_transition(self, current: S, requested: S) -> bool:
        """Check whether ``current -> requested`` is an edge of the table."""
        return requested in self._edges.get(current, frozenset())

    def allowed_from(self, current: S) -> frozenset[S]:
        """Get the states reachable in one step from ``current``."""
        return self._edges.get(current, frozenset())

    def is_terminal(self, state: S) -> bool:
        return not self.allowed_from(state)

    def ensure_transition(self, current: S, requested: S) -> None:
        """
        Validate a requested status change.

        Raises:
            InvalidTransitionException: If the edge does not exist
        """
        if not self.can_transition(current, requested):
            raise InvalidTransitionException(
                current=current.value,
                requested=requested.value,
                entity=self.entity,
            )


APPOINTMENT_LIFECYCLE: StateMachine[AppointmentStatus] = StateMachine(
    "appointment",
    {
        AppointmentStatus.SCHEDULED: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
        AppointmentStatus.CONFIRMED: {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        },
        AppointmentStatus.COMPLETED: set(),
        # Re-open edges
        AppointmentStatus.CANCELLED: {AppointmentStatus.SCHEDULED},
        AppointmentStatus.NO_SHOW: {AppointmentStatus.SCHEDULED},
    },
)


class InvoiceStatus(str, Enum):
    """Invoice status enumeration."""

    DRAFT = "draft"
    SENT = "sent"
    PARTIAL = "partial"
    OVERDUE = "overdue"
    PAID = "paid"
    CANCELLED = "cancelled"


INVOICE_LIFECYCLE: StateMachine[InvoiceStatus] = StateMachine(
    "invoice",
    {
        InvoiceStatus.DRAFT: {InvoiceStatus.SENT, InvoiceStatus.CANCELLED},
        InvoiceStatus.SENT: {InvoiceStatus.PAID, InvoiceStatus.PARTIAL, InvoiceStatus.CANCELLED},
        InvoiceStatus.PARTIAL: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
        InvoiceStatus.OVERDUE: {
            InvoiceStatus.PAID,
            InvoiceStatus.PARTIAL,
            InvoiceStatus.CANCELLED,
        },
        InvoiceStatus.PAID: set(),
        InvoiceStatus.CANCELLED: set(),
    },
)
