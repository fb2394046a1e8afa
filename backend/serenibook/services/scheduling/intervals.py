# backend/serenibook/services/scheduling/intervals.py
"""
Interval model: the half-open range [start, end) every conflict check works on.

Intervals are derived from bookings and group sessions, never stored.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ...models.enums import BookingKind, BookingStatus, SessionStatus


class IntervalKind(str, Enum):
    APPOINTMENT = "appointment"
    GROUP_SESSION = "group-session"
    BLOCKED_TIME = "blocked-time"


@dataclass(frozen=True)
class Interval:
    professional_id: int
    start: datetime
    end: datetime
    kind: IntervalKind = IntervalKind.APPOINTMENT
    is_live: bool = True
    source_id: Optional[int] = None

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Interval end {self.end} must be after start {self.start}")

    def overlaps(self, other: "Interval") -> bool:
        """Standard half-open overlap; touching ranges do not overlap."""
        return self.start < other.end and other.start < self.end

    def conflicts_with(self, other: "Interval") -> bool:
        return (
            self.is_live
            and other.is_live
            and self.professional_id == other.professional_id
            and self.overlaps(other)
        )


def booking_interval(booking) -> Interval:
    """Interval of a Bookings row (end_time is already buffer-inclusive)."""
    kind = (
        IntervalKind.BLOCKED_TIME
        if booking.kind == BookingKind.BLOCKED.value
        else IntervalKind.APPOINTMENT
    )
    return Interval(
        professional_id=booking.professional_id,
        start=booking.start_time,
        end=booking.end_time,
        kind=kind,
        is_live=booking.status != BookingStatus.CANCELLED.value,
        source_id=booking.id,
    )


def session_interval(session, professional_id: int) -> Interval:
    """Interval of a GroupSessions row; the owner comes from its group class."""
    return Interval(
        professional_id=professional_id,
        start=session.start_time,
        end=session.end_time,
        kind=IntervalKind.GROUP_SESSION,
        is_live=session.status != SessionStatus.CANCELLED.value,
        source_id=session.id,
    )
