# backend/serenibook/services/scheduling/capacity.py
"""
Capacity manager for capacity-bearing records.

Two record types carry current/max participants:
- legacy group-class bookings (Bookings.is_group_class, max on the row)
- group sessions (GroupSessions, max on the parent GroupClasses row)

Invariant after every call: 0 <= current <= max.

In-memory variants (try_reserve / release) work on any object exposing
current_participants / max_participants. Persistent variants issue one
conditional UPDATE in the caller's transaction, so the counter commits
or rolls back together with the status write it accompanies.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ...models.enums import BookingStatus, RegistrationStatus, SessionStatus
from ...models.generated import Bookings, GroupSessions
from .errors import CapacityError, CapacityExceededError, NotFoundError, SchedulingError

logger = logging.getLogger(__name__)


def seats_left(record) -> int:
    return record.max_participants - record.current_participants


def try_reserve(record) -> None:
    """Take one seat. Raises CapacityExceededError on a full record (counter untouched)."""
    if record.current_participants >= record.max_participants:
        raise CapacityExceededError(getattr(record, "id", None), record.max_participants)
    record.current_participants += 1


def release(record) -> None:
    """Give one seat back. Raises CapacityError on an empty record (counter untouched)."""
    if record.current_participants <= 0:
        raise CapacityError(
            "No participant to release",
            record_id=getattr(record, "id", None),
        )
    record.current_participants -= 1


# ── Persistent variants ──────────────────────────────────────────────────
#
# The status guard sits in the same UPDATE as the counter guard, so a seat
# is never taken on a record another transaction has just cancelled.

ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


def reserve_booking_seat(db: Session, booking_id: int) -> None:
    """Conditional increment of a live group-class booking's counter."""
    result = db.execute(
        update(Bookings)
        .where(
            Bookings.id == booking_id,
            Bookings.status.in_(ACTIVE_BOOKING_STATUSES),
            Bookings.current_participants < Bookings.max_participants,
        )
        .values(current_participants=Bookings.current_participants + 1)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        row = db.execute(
            select(Bookings.status, Bookings.max_participants).where(Bookings.id == booking_id)
        ).first()
        if row is None:
            raise NotFoundError("Booking", booking_id)
        if row.status not in ACTIVE_BOOKING_STATUSES:
            raise SchedulingError(f"Cannot add participants to a {row.status} group class")
        logger.warning(f"Booking {booking_id} is full ({row.max_participants})")
        raise CapacityExceededError(booking_id, row.max_participants)


def release_booking_seat(db: Session, booking_id: int) -> None:
    """Conditional decrement of a group-class booking's counter."""
    result = db.execute(
        update(Bookings)
        .where(
            Bookings.id == booking_id,
            Bookings.current_participants > 0,
        )
        .values(current_participants=Bookings.current_participants - 1)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        if db.get(Bookings, booking_id) is None:
            raise NotFoundError("Booking", booking_id)
        raise CapacityError("No participant to release", record_id=booking_id)


def reserve_session_seat(db: Session, session_id: int) -> None:
    """Conditional increment of a scheduled group session's counter, bounded by its class capacity."""
    session = db.get(GroupSessions, session_id)
    if session is None:
        raise NotFoundError("Group session", session_id)
    max_participants = session.max_participants

    result = db.execute(
        update(GroupSessions)
        .where(
            GroupSessions.id == session_id,
            GroupSessions.status == SessionStatus.SCHEDULED.value,
            GroupSessions.current_participants < max_participants,
        )
        .values(current_participants=GroupSessions.current_participants + 1)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        current_status = db.execute(
            select(GroupSessions.status).where(GroupSessions.id == session_id)
        ).scalar_one()
        if current_status != SessionStatus.SCHEDULED.value:
            raise SchedulingError(f"Cannot take a seat in a {current_status} session")
        logger.warning(f"Group session {session_id} is full ({max_participants})")
        raise CapacityExceededError(session_id, max_participants)


def release_session_seat(db: Session, session_id: int) -> None:
    """Conditional decrement of a group session's counter."""
    result = db.execute(
        update(GroupSessions)
        .where(
            GroupSessions.id == session_id,
            GroupSessions.current_participants > 0,
        )
        .values(current_participants=GroupSessions.current_participants - 1)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        if db.get(GroupSessions, session_id) is None:
            raise NotFoundError("Group session", session_id)
        raise CapacityError("No participant to release", record_id=session_id)


def registration_capacity_delta(old_status: str | None, new_status: str) -> int:
    """
    Seat delta implied by a registration status change.

    None → active: +1 (new registration)
    CANCELLED → active: +1
    active → CANCELLED: -1
    anything else: 0
    """
    cancelled = RegistrationStatus.CANCELLED.value
    was_active = old_status is not None and old_status != cancelled
    is_active = new_status != cancelled
    if is_active and not was_active:
        return 1
    if was_active and not is_active:
        return -1
    return 0


def apply_session_delta(db: Session, session_id: int, delta: int) -> None:
    if delta > 0:
        reserve_session_seat(db, session_id)
    elif delta < 0:
        release_session_seat(db, session_id)
