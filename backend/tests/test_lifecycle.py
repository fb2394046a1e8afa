"""Tests for the booking lifecycle."""

from datetime import datetime, timedelta

import pytest

from serenibook.models import Bookings, GroupParticipants, RecurrenceRules
from serenibook.models.enums import BookingStatus, RecurrenceType
from serenibook.services.scheduling import lifecycle
from serenibook.services.scheduling.errors import (
    AlreadyRegisteredError,
    CapacityExceededError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    SchedulingError,
)
from serenibook.services.scheduling.recurrence import RecurrencePattern, attach_recurrence

from conftest import MONDAY


@pytest.fixture
def booking(db, professional, service, client_record) -> Bookings:
    obj = lifecycle.create_appointment(db, professional, service, client_record.id, MONDAY)
    db.commit()
    return obj


class TestStateMachine:
    @pytest.mark.parametrize(
        "current, target",
        [
            ("PENDING", "CONFIRMED"),
            ("PENDING", "CANCELLED"),
            ("CONFIRMED", "CANCELLED"),
            ("CONFIRMED", "COMPLETED"),
            ("CONFIRMED", "NO_SHOW"),
        ],
    )
    def test_allowed(self, current, target):
        assert BookingStatus(target) in lifecycle.BOOKING_TRANSITIONS[BookingStatus(current)]

    @pytest.mark.parametrize(
        "current, target",
        [
            ("PENDING", "COMPLETED"),
            ("PENDING", "NO_SHOW"),
            ("CANCELLED", "CONFIRMED"),
            ("COMPLETED", "CANCELLED"),
            ("NO_SHOW", "CONFIRMED"),
        ],
    )
    def test_forbidden(self, current, target):
        assert BookingStatus(target) not in lifecycle.BOOKING_TRANSITIONS[BookingStatus(current)]

    def test_initial_status_follows_auto_confirm(self, professional, auto_professional):
        assert lifecycle.initial_status(professional) is BookingStatus.PENDING
        assert lifecycle.initial_status(auto_professional) is BookingStatus.CONFIRMED


class TestCreateAppointment:
    def test_end_includes_buffer(self, booking):
        # 50 min service + 15 min buffer
        assert booking.end_time == datetime(2030, 3, 4, 10, 5)
        assert booking.status == "PENDING"
        assert booking.current_participants == 1

    def test_overlapping_request_rejected(self, db, professional, service, client_record, booking):
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.create_appointment(
                db, professional, service, client_record.id, datetime(2030, 3, 4, 10, 0),
            )
        assert exc_info.value.conflicting_id == booking.id

    def test_back_to_back_after_buffer(self, db, professional, service, client_record, booking):
        nxt = lifecycle.create_appointment(
            db, professional, service, client_record.id, datetime(2030, 3, 4, 10, 5),
        )
        assert nxt.start_time == booking.end_time

    def test_auto_confirm(self, db, auto_professional, client_record):
        from serenibook.models import Services

        service = Services(professional_id=auto_professional.id, name="Reiki", duration=30)
        db.add(service)
        db.flush()
        booking = lifecycle.create_appointment(db, auto_professional, service, client_record.id, MONDAY)
        assert booking.status == "CONFIRMED"
        assert booking.end_time == MONDAY + timedelta(minutes=30)

    def test_blocked_time_blocks_appointments(self, db, professional, service, client_record):
        blocked = lifecycle.create_blocked_time(
            db, professional, datetime(2030, 3, 4, 12, 0), datetime(2030, 3, 4, 14, 0), "Lunch",
        )
        assert blocked.client_id is None
        assert blocked.kind == "BLOCKED"
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.create_appointment(
                db, professional, service, client_record.id, datetime(2030, 3, 4, 11, 30),
            )
        assert exc_info.value.conflicting_kind == "blocked-time"

    def test_inactive_professional_rejected(self, db, professional, service, client_record):
        professional.is_active = False
        with pytest.raises(SchedulingError):
            lifecycle.create_appointment(db, professional, service, client_record.id, MONDAY)

    def test_unknown_client_rejected(self, db, professional, service):
        with pytest.raises(NotFoundError) as exc_info:
            lifecycle.create_appointment(db, professional, service, 424242, MONDAY)
        assert exc_info.value.status_code == 404
        assert db.query(Bookings).count() == 0


class TestTransitions:
    def test_cancel_frees_the_slot(self, db, professional, service, client_record, booking):
        """A cancelled booking stops conflicting immediately."""
        lifecycle.transition_booking(db, booking, BookingStatus.CONFIRMED)
        lifecycle.transition_booking(db, booking, BookingStatus.CANCELLED, reason="Sick")
        assert booking.cancel_reason == "Sick"

        replacement = lifecycle.create_appointment(db, professional, service, client_record.id, MONDAY)
        assert replacement.id != booking.id

    def test_same_status_is_noop(self, db, booking):
        assert lifecycle.transition_booking(db, booking, BookingStatus.PENDING) is False

    def test_illegal_transition(self, db, booking):
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_booking(db, booking, BookingStatus.COMPLETED)
        assert booking.status == "PENDING"

    def test_terminal_states(self, db, booking):
        lifecycle.transition_booking(db, booking, BookingStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_booking(db, booking, BookingStatus.CONFIRMED)


class TestReschedule:
    def test_move_recomputes_end(self, db, professional, booking):
        lifecycle.reschedule_booking(db, professional, booking, datetime(2030, 3, 5, 14, 0))
        assert booking.end_time == datetime(2030, 3, 5, 15, 5)

    def test_overlap_with_itself_allowed(self, db, professional, booking):
        lifecycle.reschedule_booking(db, professional, booking, datetime(2030, 3, 4, 9, 30))
        assert booking.start_time == datetime(2030, 3, 4, 9, 30)

    def test_overlap_with_other_rejected(self, db, professional, service, client_record, booking):
        other = lifecycle.create_appointment(
            db, professional, service, client_record.id, datetime(2030, 3, 4, 11, 0),
        )
        with pytest.raises(ConflictError):
            lifecycle.reschedule_booking(db, professional, booking, datetime(2030, 3, 4, 10, 30))
        assert other.start_time == datetime(2030, 3, 4, 11, 0)

    def test_cancelled_cannot_move(self, db, professional, booking):
        lifecycle.transition_booking(db, booking, BookingStatus.CANCELLED)
        with pytest.raises(SchedulingError):
            lifecycle.reschedule_booking(db, professional, booking, datetime(2030, 3, 5, 9, 0))


class TestGroupBooking:
    @pytest.fixture
    def group_booking(self, db, professional, service):
        obj = lifecycle.create_group_booking(db, professional, service, datetime(2030, 3, 6, 18, 0), 3)
        db.commit()
        return obj

    def test_starts_empty(self, group_booking):
        assert group_booking.is_group_class is True
        assert group_booking.current_participants == 0
        assert group_booking.status == "CONFIRMED"

    def test_capacity_limits(self, db, professional, service):
        with pytest.raises(SchedulingError):
            lifecycle.create_group_booking(db, professional, service, MONDAY, 1)
        with pytest.raises(SchedulingError):
            lifecycle.create_group_booking(db, professional, service, MONDAY, 51)

    def test_fill_and_overflow(self, db, group_booking, make_clients):
        clients = make_clients(4)
        for c in clients[:3]:
            lifecycle.add_participant(db, group_booking, c.id)
        with pytest.raises(CapacityExceededError):
            lifecycle.add_participant(db, group_booking, clients[3].id)
        db.refresh(group_booking)
        assert group_booking.current_participants == 3

    def test_unknown_participant_rejected(self, db, group_booking):
        with pytest.raises(NotFoundError):
            lifecycle.add_participant(db, group_booking, 424242)
        db.refresh(group_booking)
        assert group_booking.current_participants == 0

    def test_duplicate_participant(self, db, group_booking, client_record):
        lifecycle.add_participant(db, group_booking, client_record.id)
        with pytest.raises(AlreadyRegisteredError):
            lifecycle.add_participant(db, group_booking, client_record.id)

    def test_remove_participant_frees_seat(self, db, group_booking, make_clients):
        clients = make_clients(2)
        for c in clients:
            lifecycle.add_participant(db, group_booking, c.id)
        lifecycle.remove_participant(db, group_booking, clients[0].id)
        db.refresh(group_booking)
        assert group_booking.current_participants == 1

    def test_cancel_releases_every_seat(self, db, group_booking, make_clients):
        for c in make_clients(3):
            lifecycle.add_participant(db, group_booking, c.id)
        db.commit()

        lifecycle.transition_booking(db, group_booking, BookingStatus.CANCELLED)
        db.commit()
        db.refresh(group_booking)

        assert group_booking.current_participants == 0
        statuses = {p.status for p in db.query(GroupParticipants).all()}
        assert statuses == {"CANCELLED"}


class TestSuspension:
    def test_cancels_future_active_bookings(self, db, professional, service, client_record):
        past = Bookings(
            professional_id=professional.id, client_id=client_record.id, service_id=service.id,
            start_time=datetime(2020, 1, 6, 9, 0), end_time=datetime(2020, 1, 6, 10, 5), status="CONFIRMED",
        )
        db.add(past)
        future = [
            lifecycle.create_appointment(db, professional, service, client_record.id, MONDAY + timedelta(days=d))
            for d in range(3)
        ]
        lifecycle.transition_booking(db, future[2], BookingStatus.CONFIRMED)
        lifecycle.transition_booking(db, future[2], BookingStatus.COMPLETED)
        db.commit()

        cancelled, sessions = lifecycle.suspend_professional(db, professional)
        db.commit()

        assert cancelled == [future[0].id, future[1].id]
        assert sessions == []
        assert professional.is_active is False
        assert past.status == "CONFIRMED"
        assert future[2].status == "COMPLETED"
        assert all(b.cancel_reason == "Professional account suspended" for b in future[:2])


class TestDelete:
    def test_delete_origin_keeps_occurrences(self, db, booking):
        pattern = RecurrencePattern(type=RecurrenceType.WEEKLY, end_after=2)
        _, result = attach_recurrence(db, booking, pattern)
        db.commit()
        occurrence_ids = [b.id for b in result.created]

        lifecycle.delete_booking(db, booking)
        db.commit()
        db.expire_all()

        assert db.query(RecurrenceRules).count() == 0
        remaining = db.query(Bookings).order_by(Bookings.id).all()
        assert [b.id for b in remaining] == occurrence_ids
        assert all(b.parent_booking_id is None and b.parent_recurrence_id is None for b in remaining)

    def test_delete_group_booking_removes_participants(self, db, professional, service, make_clients):
        group = lifecycle.create_group_booking(db, professional, service, MONDAY, 5)
        for c in make_clients(2):
            lifecycle.add_participant(db, group, c.id)
        db.commit()

        lifecycle.delete_booking(db, group)
        db.commit()
        assert db.query(GroupParticipants).count() == 0
