# backend/serenibook/services/scheduling/conflicts.py
"""
Conflict detector.

One predicate for every path that writes a time range:
✓ new individual bookings
✓ rescheduled bookings (the record's own previous self excluded)
✓ new / rescheduled group sessions
✓ blocked time
✓ recurrence occurrences

Two intervals conflict iff both are live, share a professional and
a.start < b.end and b.start < a.end. "Contains", "is contained",
"overlaps start" and "overlaps end" are all that one inequality.

Callers must run check + write inside the professional's critical
section (see locks.professional_lock) for the result to stay true.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from .errors import ConflictError
from .intervals import Interval, booking_interval, session_interval

logger = logging.getLogger(__name__)


def find_conflicts(candidate: Interval, existing: Iterable[Interval]) -> list[Interval]:
    """All live intervals of the candidate's professional overlapping it, in input order."""
    return [other for other in existing if candidate.conflicts_with(other)]


def find_conflict(candidate: Interval, existing: Iterable[Interval]) -> Optional[Interval]:
    """First conflicting interval, or None."""
    for other in existing:
        if candidate.conflicts_with(other):
            return other
    return None


def has_conflict(candidate: Interval, existing: Iterable[Interval]) -> bool:
    """Whether the candidate overlaps a live interval of its professional."""
    return find_conflict(candidate, existing) is not None


def ensure_no_conflict(candidate: Interval, existing: Iterable[Interval]) -> None:
    """Raise ConflictError naming the first conflicting interval."""
    conflict = find_conflict(candidate, existing)
    if conflict is not None:
        logger.warning(
            f"Conflict for professional={candidate.professional_id} "
            f"{candidate.start.isoformat()}–{candidate.end.isoformat()}: "
            f"{conflict.kind.value} id={conflict.source_id}"
        )
        raise ConflictError(conflict.source_id, conflict.kind.value)


# ── Storage collaborator ─────────────────────────────────────────────────


def load_live_intervals(
    db: Session,
    professional_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
    exclude_session_id: Optional[int] = None,
) -> list[Interval]:
    """
    Live intervals of a professional that overlap [start, end).

    Bookings (appointments + blocked time) and group sessions, cancelled ones
    excluded. Results are ordered by start time so the first conflict reported
    is the earliest one.
    """
    from ...models.generated import Bookings, GroupClasses, GroupSessions
    from ...models.enums import BookingStatus, SessionStatus

    booking_query = db.query(Bookings).filter(
        Bookings.professional_id == professional_id,
        Bookings.status != BookingStatus.CANCELLED.value,
        Bookings.start_time < end,
        Bookings.end_time > start,
    )
    if exclude_booking_id is not None:
        booking_query = booking_query.filter(Bookings.id != exclude_booking_id)

    session_query = (
        db.query(GroupSessions)
        .join(GroupClasses, GroupSessions.group_class_id == GroupClasses.id)
        .filter(
            GroupClasses.professional_id == professional_id,
            GroupSessions.status != SessionStatus.CANCELLED.value,
            GroupSessions.start_time < end,
            GroupSessions.end_time > start,
        )
    )
    if exclude_session_id is not None:
        session_query = session_query.filter(GroupSessions.id != exclude_session_id)

    intervals = [booking_interval(b) for b in booking_query.all()]
    intervals.extend(session_interval(s, professional_id) for s in session_query.all())
    intervals.sort(key=lambda i: (i.start, i.end, i.kind.value, i.source_id or 0))
    return intervals


def check_time_conflict(
    db: Session,
    candidate: Interval,
    exclude_booking_id: Optional[int] = None,
    exclude_session_id: Optional[int] = None,
) -> None:
    """Load the professional's live intervals around the candidate and raise on overlap."""
    existing = load_live_intervals(
        db,
        candidate.professional_id,
        candidate.start,
        candidate.end,
        exclude_booking_id=exclude_booking_id,
        exclude_session_id=exclude_session_id,
    )
    ensure_no_conflict(candidate, existing)
