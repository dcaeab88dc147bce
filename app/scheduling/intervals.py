"""Half-open time intervals and the overlap predicate used for scheduling."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from app.core.exceptions import ValidationException


@dataclass(frozen=True, slots=True)
class Interval:
    """A half-open time span ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValidationException("Interval end must be after its start")

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> "Interval":
        """Build an interval that starts at ``start`` and lasts ``minutes``."""
        return cls(start=start, end=start + timedelta(minutes=minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)


def overlaps(a: Interval, b: Interval) -> bool:
    """
    Check whether two intervals share any instant.

    Touching endpoints (``a.end == b.start``) do not overlap, so
    back-to-back bookings are allowed.
    """
    return a.start < b.end and a.end > b.start
