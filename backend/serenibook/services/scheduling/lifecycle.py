# backend/serenibook/services/scheduling/lifecycle.py
"""
Booking lifecycle.

States:
  PENDING   → CONFIRMED, CANCELLED
  CONFIRMED → CANCELLED, COMPLETED, NO_SHOW
  CANCELLED, COMPLETED, NO_SHOW are terminal.

Side effects:
✓ entering CANCELLED on a group-class booking cancels its participants,
  releasing one seat per participant
✓ a CANCELLED booking stops conflicting immediately (status is the only liveness flag)

Creation picks CONFIRMED instead of PENDING when the professional
auto-confirms. Every write path here runs the conflict detector first;
callers hold the professional's lock and commit.
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models.enums import BookingKind, BookingStatus, PaymentStatus, SessionStatus
from ...models.generated import (
    Bookings,
    GroupClasses,
    GroupParticipants,
    GroupSessions,
    Professionals,
    Services,
)
from .buffer import effective_end
from .capacity import ACTIVE_BOOKING_STATUSES, release_booking_seat, reserve_booking_seat
from .conflicts import check_time_conflict
from .groups import cancel_session, get_client, validate_capacity
from .errors import AlreadyRegisteredError, InvalidTransitionError, NotFoundError, SchedulingError
from .intervals import Interval, IntervalKind

logger = logging.getLogger(__name__)


BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}


def initial_status(professional) -> BookingStatus:
    """Creation-time branch: auto-confirming professionals skip PENDING."""
    if professional.auto_confirm_bookings:
        return BookingStatus.CONFIRMED
    return BookingStatus.PENDING


def get_professional(db: Session, professional_id: int) -> Professionals:
    professional = db.get(Professionals, professional_id)
    if professional is None:
        raise NotFoundError("Professional", professional_id)
    return professional


def get_service(db: Session, professional_id: int, service_id: int) -> Services:
    service = db.get(Services, service_id)
    if service is None or service.professional_id != professional_id:
        raise NotFoundError("Service", service_id)
    return service


def get_booking(db: Session, professional_id: int, booking_id: int) -> Bookings:
    booking = db.get(Bookings, booking_id)
    if booking is None or booking.professional_id != professional_id:
        raise NotFoundError("Booking", booking_id)
    return booking


def combine(day: date, start_time: str) -> datetime:
    """"YYYY-MM-DD" + "HH:MM" → naive local datetime."""
    hour, minute = (int(part) for part in start_time.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute)


# ── Creation ─────────────────────────────────────────────────────────────


def create_appointment(
    db: Session,
    professional: Professionals,
    service: Services,
    client_id: int,
    start: datetime,
    notes: Optional[str] = None,
) -> Bookings:
    """Buffer → conflict check → persist an individual appointment."""
    if not professional.is_active:
        raise SchedulingError("This professional is not accepting bookings")
    if not service.is_active:
        raise SchedulingError("Service is not active")
    get_client(db, client_id)

    end = effective_end(start, service.duration, professional.buffer_time)
    candidate = Interval(professional.id, start, end, IntervalKind.APPOINTMENT)
    check_time_conflict(db, candidate)

    booking = Bookings(
        professional_id=professional.id,
        client_id=client_id,
        service_id=service.id,
        start_time=start,
        end_time=end,
        status=initial_status(professional).value,
        kind=BookingKind.APPOINTMENT.value,
        payment_status=PaymentStatus.PENDING.value,
        notes=notes,
        is_group_class=False,
        max_participants=1,
        current_participants=1,
    )
    db.add(booking)
    db.flush()

    logger.info(
        f"Booking {booking.id} created for professional={professional.id} "
        f"{start.isoformat()}–{end.isoformat()} status={booking.status}"
    )
    return booking


def create_blocked_time(
    db: Session,
    professional: Professionals,
    start: datetime,
    end: datetime,
    title: str,
    notes: Optional[str] = None,
) -> Bookings:
    """
    Block [start, end) in the professional's calendar.

    Blocked time is a live booking of kind BLOCKED: no client, no service,
    no buffer.
    """
    candidate = Interval(professional.id, start, end, IntervalKind.BLOCKED_TIME)
    check_time_conflict(db, candidate)

    booking = Bookings(
        professional_id=professional.id,
        start_time=start,
        end_time=end,
        status=BookingStatus.CONFIRMED.value,
        kind=BookingKind.BLOCKED.value,
        payment_status=PaymentStatus.PENDING.value,
        title=title,
        notes=notes,
        max_participants=1,
        current_participants=1,
    )
    db.add(booking)
    db.flush()

    logger.info(
        f"Blocked time {booking.id} created for professional={professional.id} "
        f"{start.isoformat()}–{end.isoformat()}"
    )
    return booking


def create_group_booking(
    db: Session,
    professional: Professionals,
    service: Services,
    start: datetime,
    max_participants: int,
    notes: Optional[str] = None,
) -> Bookings:
    """Legacy group class: one booking row carrying the participant counter."""
    if not professional.is_active:
        raise SchedulingError("This professional is not accepting bookings")
    validate_capacity(max_participants)

    end = effective_end(start, service.duration, professional.buffer_time)
    candidate = Interval(professional.id, start, end, IntervalKind.APPOINTMENT)
    check_time_conflict(db, candidate)

    booking = Bookings(
        professional_id=professional.id,
        service_id=service.id,
        start_time=start,
        end_time=end,
        status=BookingStatus.CONFIRMED.value,
        kind=BookingKind.APPOINTMENT.value,
        payment_status=PaymentStatus.PENDING.value,
        notes=notes,
        is_group_class=True,
        max_participants=max_participants,
        current_participants=0,
    )
    db.add(booking)
    db.flush()

    logger.info(
        f"Group booking {booking.id} created for professional={professional.id} "
        f"capacity={max_participants}"
    )
    return booking


# ── Updates ──────────────────────────────────────────────────────────────


def reschedule_booking(
    db: Session,
    professional: Professionals,
    booking: Bookings,
    start: datetime,
    service: Optional[Services] = None,
) -> Bookings:
    """
    Move a booking (and optionally change its service).

    The new end is recomputed from the service duration plus buffer; blocked
    time keeps its span. The booking's own previous range never conflicts
    with itself.
    """
    if booking.status not in ACTIVE_BOOKING_STATUSES:
        raise SchedulingError(f"Cannot reschedule a {booking.status} booking")

    if service is None and booking.service_id is not None:
        service = db.get(Services, booking.service_id)

    if booking.kind == BookingKind.BLOCKED.value or service is None:
        end = start + (booking.end_time - booking.start_time)
        kind = IntervalKind.BLOCKED_TIME if booking.kind == BookingKind.BLOCKED.value else IntervalKind.APPOINTMENT
    else:
        end = effective_end(start, service.duration, professional.buffer_time)
        kind = IntervalKind.APPOINTMENT

    candidate = Interval(professional.id, start, end, kind)
    check_time_conflict(db, candidate, exclude_booking_id=booking.id)

    booking.start_time = start
    booking.end_time = end
    if service is not None:
        booking.service_id = service.id
    booking.updated_at = datetime.now()
    db.flush()

    logger.info(f"Booking {booking.id} rescheduled to {start.isoformat()}–{end.isoformat()}")
    return booking


def transition_booking(
    db: Session,
    booking: Bookings,
    target: BookingStatus,
    reason: Optional[str] = None,
) -> bool:
    """
    Apply one status transition with its side effects.

    Returns False for a same-status no-op. Raises InvalidTransitionError
    for anything the state machine forbids.
    """
    target = BookingStatus(target)
    current = BookingStatus(booking.status)
    if current is target:
        return False
    if target not in BOOKING_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)

    if target is BookingStatus.CANCELLED:
        if booking.is_group_class:
            _cancel_participants(db, booking)
        booking.cancel_reason = reason

    booking.status = target.value
    booking.updated_at = datetime.now()
    db.flush()

    logger.info(f"Booking {booking.id}: {current.value} → {target.value}")
    return True


def cancel_future_bookings(
    db: Session,
    professional_id: int,
    now: Optional[datetime] = None,
    reason: str = "Professional account suspended",
) -> list[int]:
    """
    Cancel every future PENDING/CONFIRMED booking of a professional.

    Goes through transition_booking one booking at a time so capacity
    release and every other side effect apply exactly as for a single cancel.
    """
    now = now or datetime.now()
    bookings = (
        db.query(Bookings)
        .filter(
            Bookings.professional_id == professional_id,
            Bookings.status.in_(ACTIVE_BOOKING_STATUSES),
            Bookings.start_time >= now,
        )
        .order_by(Bookings.start_time, Bookings.id)
        .all()
    )

    cancelled = []
    for booking in bookings:
        if transition_booking(db, booking, BookingStatus.CANCELLED, reason=reason):
            cancelled.append(booking.id)

    logger.info(f"Cancelled {len(cancelled)} future bookings of professional={professional_id}")
    return cancelled


def suspend_professional(
    db: Session,
    professional: Professionals,
    now: Optional[datetime] = None,
) -> tuple[list[int], list[int]]:
    """
    Deactivate a professional: cancel future bookings and future group sessions.

    Returns (cancelled booking ids, cancelled session ids).
    """
    now = now or datetime.now()
    cancelled_bookings = cancel_future_bookings(db, professional.id, now)

    sessions = (
        db.query(GroupSessions)
        .join(GroupClasses, GroupSessions.group_class_id == GroupClasses.id)
        .filter(
            GroupClasses.professional_id == professional.id,
            GroupSessions.status == SessionStatus.SCHEDULED.value,
            GroupSessions.start_time >= now,
        )
        .order_by(GroupSessions.start_time, GroupSessions.id)
        .all()
    )
    cancelled_sessions = []
    for session in sessions:
        cancel_session(db, session)
        cancelled_sessions.append(session.id)

    professional.is_active = False
    db.flush()

    logger.info(
        f"Professional {professional.id} suspended: {len(cancelled_bookings)} bookings, "
        f"{len(cancelled_sessions)} sessions cancelled"
    )
    return cancelled_bookings, cancelled_sessions


def delete_booking(db: Session, booking: Bookings) -> None:
    """
    Professional-initiated hard delete.

    Group participants and the recurrence rule go with the booking;
    occurrences keep existing with their back-references nulled.
    """
    booking_id = booking.id
    db.query(Bookings).filter(Bookings.parent_booking_id == booking_id).update(
        {Bookings.parent_booking_id: None, Bookings.parent_recurrence_id: None},
        synchronize_session=False,
    )
    db.delete(booking)
    db.flush()
    logger.info(f"Booking {booking_id} deleted")


# ── Legacy group participants ────────────────────────────────────────────


def add_participant(db: Session, booking: Bookings, client_id: int) -> GroupParticipants:
    """Register a client in a legacy group-class booking, taking one seat."""
    if not booking.is_group_class:
        raise SchedulingError("Booking is not a group class")
    if booking.status not in ACTIVE_BOOKING_STATUSES:
        raise SchedulingError(f"Cannot add participants to a {booking.status} group class")
    get_client(db, client_id)

    existing = (
        db.query(GroupParticipants)
        .filter(
            GroupParticipants.booking_id == booking.id,
            GroupParticipants.client_id == client_id,
        )
        .first()
    )
    if existing is not None:
        raise AlreadyRegisteredError("This client is already registered for this class")

    reserve_booking_seat(db, booking.id)
    participant = GroupParticipants(
        booking_id=booking.id,
        client_id=client_id,
        status=BookingStatus.CONFIRMED.value,
    )
    db.add(participant)
    db.flush()

    logger.info(f"Client {client_id} added to group booking {booking.id}")
    return participant


def remove_participant(db: Session, booking: Bookings, client_id: int) -> None:
    """Remove a client from a legacy group-class booking, giving the seat back."""
    participant = (
        db.query(GroupParticipants)
        .filter(
            GroupParticipants.booking_id == booking.id,
            GroupParticipants.client_id == client_id,
        )
        .first()
    )
    if participant is None:
        raise NotFoundError("Participant", client_id)

    if participant.status != BookingStatus.CANCELLED.value:
        release_booking_seat(db, booking.id)
    db.delete(participant)
    db.flush()

    logger.info(f"Client {client_id} removed from group booking {booking.id}")


def _cancel_participants(db: Session, booking: Bookings) -> None:
    """Cancel every active participant of a group-class booking, one seat each."""
    for participant in booking.participants:
        if participant.status == BookingStatus.CANCELLED.value:
            continue
        release_booking_seat(db, booking.id)
        participant.status = BookingStatus.CANCELLED.value
