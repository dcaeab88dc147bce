"""Fixed-grid available slot generation."""

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from app.core.exceptions import ValidationException
from app.scheduling.intervals import Interval
from app.scheduling.models import MAX_SLOT_MINUTES, MIN_SLOT_MINUTES, validate_duration
from app.scheduling.ports import AppointmentStore


@dataclass(frozen=True)
class WorkingHours:
    """Daily open/close bounds of the clinic, in clinic-local wall time."""

    opens_at: time = time(8, 0)
    closes_at: time = time(18, 0)
    timezone: str = "UTC"

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def window_for(self, day: date) -> tuple[datetime, datetime]:
        """Get the UTC bounds of the working window on a clinic-local day."""
        tz = self.tzinfo
        opens = datetime.combine(day, self.opens_at, tzinfo=tz).astimezone(UTC)
        closes = datetime.combine(day, self.closes_at, tzinfo=tz).astimezone(UTC)
        return opens, closes

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """Get the UTC bounds of a whole clinic-local calendar day."""
        tz = self.tzinfo
        start = datetime.combine(day, time.min, tzinfo=tz).astimezone(UTC)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz).astimezone(UTC)
        return start, end


def generate_slots(
    opens: datetime,
    closes: datetime,
    slot_minutes: int,
    busy: list[Interval],
) -> list[Interval]:
    """
    Walk the window on a fixed grid and keep the slots that are free.

    The grid is anchored at ``opens`` and advances by ``slot_minutes``
    whether or not the previous slot was free. A trailing partial slot that
    would run past ``closes`` is dropped.
    """
    if slot_minutes <= 0:
        raise ValidationException("Slot duration must be positive")

    step = timedelta(minutes=slot_minutes)
    slots: list[Interval] = []
    cursor = opens
    while cursor + step <= closes:
        candidate = Interval(cursor, cursor + step)
        # Every busy interval is checked; bookings are not grid-aligned
        if not any(candidate.overlaps(interval) for interval in busy):
            slots.append(candidate)
        cursor += step
    return slots


class SlotGenerator:
    """Computes bookable slots for a practitioner on a given day."""

    def __init__(self, store: AppointmentStore, working_hours: WorkingHours | None = None):
        """Initialize generator with the appointment store and clinic hours."""
        self.store = store
        self.working_hours = working_hours or WorkingHours()

    async def available_slots(
        self,
        practitioner_id: UUID,
        day: date,
        slot_minutes: int,
    ) -> list[Interval]:
        """
        List free slots on ``day``, earliest first.

        Raises:
            ValidationException: If the slot duration is out of bounds
        """
        validate_duration(
            slot_minutes,
            minimum=MIN_SLOT_MINUTES,
            maximum=MAX_SLOT_MINUTES,
            label="Slot duration",
        )
        opens, closes = self.working_hours.window_for(day)
        if closes <= opens:
            return []

        appointments = await self.store.find_active_by_practitioner_and_window(
            practitioner_id, opens, closes
        )
        busy = [
            appointment.interval
            for appointment in sorted(appointments, key=lambda a: a.start_at)
            if appointment.is_active
        ]
        return generate_slots(opens, closes, slot_minutes, busy)
