# backend/serenibook/services/scheduling/groups.py
"""
Group classes (course catalogue model).

GroupClasses   template: name, price, duration, capacity, location
GroupSessions  one scheduled occurrence, carries current_participants
GroupRegistrations  client ↔ session link with its own status

Invariant kept by every function here:
  session.current_participants == count(registrations where status != CANCELLED)
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...models.enums import RegistrationStatus, SessionStatus
from ...models.generated import Clients, GroupClasses, GroupRegistrations, GroupSessions, Professionals
from .buffer import effective_end
from .capacity import apply_session_delta, registration_capacity_delta
from .config import SchedulingConfig, get_scheduling_config
from .conflicts import check_time_conflict
from .errors import AlreadyRegisteredError, NotFoundError, SchedulingError
from .intervals import Interval, IntervalKind

logger = logging.getLogger(__name__)


def get_group_class(db: Session, professional_id: int, group_class_id: int) -> GroupClasses:
    group_class = db.get(GroupClasses, group_class_id)
    if group_class is None or group_class.professional_id != professional_id:
        raise NotFoundError("Group class", group_class_id)
    return group_class


def get_client(db: Session, client_id: int) -> Clients:
    client = db.get(Clients, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


def get_session(db: Session, session_id: int) -> GroupSessions:
    session = db.get(GroupSessions, session_id)
    if session is None:
        raise NotFoundError("Group session", session_id)
    return session


def get_registration(db: Session, registration_id: int) -> GroupRegistrations:
    registration = db.get(GroupRegistrations, registration_id)
    if registration is None:
        raise NotFoundError("Registration", registration_id)
    return registration


def session_owner(db: Session, session_id: int) -> int:
    """Professional owning a session; ownership is immutable."""
    professional_id = db.execute(
        select(GroupClasses.professional_id)
        .join(GroupSessions, GroupSessions.group_class_id == GroupClasses.id)
        .where(GroupSessions.id == session_id)
    ).scalar_one_or_none()
    if professional_id is None:
        raise NotFoundError("Group session", session_id)
    return professional_id


def registration_scope(db: Session, registration_id: int) -> tuple[int, int]:
    """(professional id, session id) of a registration, read without loading it."""
    session_id = db.execute(
        select(GroupRegistrations.session_id).where(GroupRegistrations.id == registration_id)
    ).scalar_one_or_none()
    if session_id is None:
        raise NotFoundError("Registration", registration_id)
    return session_owner(db, session_id), session_id


def validate_capacity(max_participants: int, config: Optional[SchedulingConfig] = None) -> None:
    config = config or get_scheduling_config()
    if not config.min_group_participants <= max_participants <= config.max_group_participants:
        raise SchedulingError(
            f"max_participants must be between {config.min_group_participants} "
            f"and {config.max_group_participants}, got {max_participants}"
        )


def create_group_class(
    db: Session,
    professional: Professionals,
    name: str,
    duration: int,
    max_participants: int,
    price: float = 0.0,
    **details,
) -> GroupClasses:
    validate_capacity(max_participants)
    if duration <= 0:
        raise SchedulingError(f"duration must be > 0, got {duration}")

    group_class = GroupClasses(
        professional_id=professional.id,
        name=name,
        duration=duration,
        max_participants=max_participants,
        price=price,
        **details,
    )
    db.add(group_class)
    db.flush()
    return group_class


def schedule_session(
    db: Session,
    professional: Professionals,
    group_class: GroupClasses,
    start: datetime,
    notes: Optional[str] = None,
) -> GroupSessions:
    """Buffer → conflict check → persist one session of a group class."""
    if not professional.is_active:
        raise SchedulingError("This professional is not accepting bookings")
    if not group_class.is_active:
        raise SchedulingError("Group class is not active")

    end = effective_end(start, group_class.duration, professional.buffer_time)
    candidate = Interval(professional.id, start, end, IntervalKind.GROUP_SESSION)
    check_time_conflict(db, candidate)

    session = GroupSessions(
        group_class_id=group_class.id,
        start_time=start,
        end_time=end,
        current_participants=0,
        status=SessionStatus.SCHEDULED.value,
        notes=notes,
    )
    db.add(session)
    db.flush()

    logger.info(
        f"Group session {session.id} scheduled for class={group_class.id} "
        f"{start.isoformat()}–{end.isoformat()}"
    )
    return session


def reschedule_session(
    db: Session,
    professional: Professionals,
    session: GroupSessions,
    start: datetime,
) -> GroupSessions:
    if session.status != SessionStatus.SCHEDULED.value:
        raise SchedulingError(f"Cannot reschedule a {session.status} session")

    end = effective_end(start, session.group_class.duration, professional.buffer_time)
    candidate = Interval(professional.id, start, end, IntervalKind.GROUP_SESSION)
    check_time_conflict(db, candidate, exclude_session_id=session.id)

    session.start_time = start
    session.end_time = end
    db.flush()
    return session


def register_client(
    db: Session,
    session: GroupSessions,
    client_id: int,
    now: Optional[datetime] = None,
) -> GroupRegistrations:
    """
    Register a client in a session, taking one seat.

    A client whose earlier registration was cancelled is re-registered on
    the same row. Registrations start CONFIRMED when the professional
    auto-confirms, REGISTERED otherwise.
    """
    now = now or datetime.now()
    if session.status != SessionStatus.SCHEDULED.value:
        raise SchedulingError(f"Cannot register to a {session.status} session")
    if session.start_time < now:
        raise SchedulingError("This session has already taken place")
    get_client(db, client_id)

    professional = session.group_class.professional
    status = (
        RegistrationStatus.CONFIRMED
        if professional.auto_confirm_bookings
        else RegistrationStatus.REGISTERED
    )

    registration = (
        db.query(GroupRegistrations)
        .filter(
            GroupRegistrations.session_id == session.id,
            GroupRegistrations.client_id == client_id,
        )
        .first()
    )
    if registration is not None:
        if registration.status != RegistrationStatus.CANCELLED.value:
            raise AlreadyRegisteredError("You are already registered for this session")
        transition_registration(db, registration, status)
        return registration

    apply_session_delta(db, session.id, registration_capacity_delta(None, status.value))
    registration = GroupRegistrations(
        session_id=session.id,
        client_id=client_id,
        status=status.value,
    )
    db.add(registration)
    db.flush()

    logger.info(f"Client {client_id} registered to session {session.id} ({status.value})")
    return registration


def transition_registration(
    db: Session,
    registration: GroupRegistrations,
    target: RegistrationStatus,
) -> bool:
    """
    Change a registration's status together with the session counter.

    Any status may follow any other; only crossings of the CANCELLED
    boundary move the counter (reserve on the way in, release on the way out).
    Coming back from CANCELLED needs a seat, so it fails on a session that
    is no longer SCHEDULED. Returns False for a same-status no-op.
    """
    target = RegistrationStatus(target)
    old_status = registration.status
    if old_status == target.value:
        return False

    delta = registration_capacity_delta(old_status, target.value)
    if delta > 0 and registration.session.status != SessionStatus.SCHEDULED.value:
        raise SchedulingError(f"Cannot reactivate a registration in a {registration.session.status} session")
    apply_session_delta(db, registration.session_id, delta)
    registration.status = target.value
    registration.updated_at = datetime.now()
    db.flush()

    logger.info(f"Registration {registration.id}: {old_status} → {target.value}")
    return True


def cancel_session(db: Session, session: GroupSessions) -> list[int]:
    """Cancel a session and every active registration in it."""
    cancelled = []
    for registration in session.registrations:
        if transition_registration(db, registration, RegistrationStatus.CANCELLED):
            cancelled.append(registration.id)

    session.status = SessionStatus.CANCELLED.value
    db.flush()

    logger.info(f"Group session {session.id} cancelled ({len(cancelled)} registrations)")
    return cancelled
