"""Tests for the recurrence expander."""

from datetime import date, datetime, timedelta

import pytest

from serenibook.models import Bookings, RecurrenceRules
from serenibook.models.enums import RecurrenceType
from serenibook.services.scheduling.config import SchedulingConfig
from serenibook.services.scheduling.errors import InvalidRuleError
from serenibook.services.scheduling.intervals import Interval, IntervalKind
from serenibook.services.scheduling.recurrence import (
    ExpansionResult,
    RecurrencePattern,
    add_months,
    attach_recurrence,
    expand,
    iter_occurrence_starts,
    js_weekday,
    validate_rule,
)

from conftest import MONDAY


def origin_at(start: datetime, minutes: int = 65, professional_id: int = 1) -> Interval:
    return Interval(professional_id, start, start + timedelta(minutes=minutes), source_id=1)


def weekly(*days, **kwargs) -> RecurrencePattern:
    return RecurrencePattern(type=RecurrenceType.WEEKLY, weekdays=frozenset(days), **kwargs)


class TestCalendarHelpers:
    def test_js_weekday(self):
        assert js_weekday(date(2030, 3, 3)) == 0  # Sunday
        assert js_weekday(date(2030, 3, 4)) == 1  # Monday
        assert js_weekday(date(2030, 3, 9)) == 6  # Saturday

    def test_add_months_clamps(self):
        assert add_months(date(2030, 1, 31), 1) == date(2030, 2, 28)
        assert add_months(date(2030, 11, 15), 3) == date(2031, 2, 15)


class TestValidateRule:
    @pytest.mark.parametrize(
        "pattern",
        [
            weekly(7),
            weekly(-1),
            RecurrencePattern(type=RecurrenceType.MONTHLY, month_day=0),
            RecurrencePattern(type=RecurrenceType.MONTHLY, month_day=32),
            RecurrencePattern(type=RecurrenceType.DAILY, end_after=0),
            RecurrencePattern(type=RecurrenceType.DAILY, end_after=3, end_date=date(2030, 4, 1)),
            RecurrencePattern(type=RecurrenceType.DAILY, end_date=date(2030, 3, 1)),
            RecurrencePattern(type=RecurrenceType.DAILY, interval=2),
            RecurrencePattern(type="YEARLY"),
        ],
    )
    def test_rejects_malformed_rules(self, pattern):
        with pytest.raises(InvalidRuleError):
            validate_rule(pattern, MONDAY)

    def test_accepts_end_date_on_origin_day(self):
        validate_rule(RecurrencePattern(type=RecurrenceType.DAILY, end_date=MONDAY.date()), MONDAY)

    def test_from_row_parses_weekdays(self):
        rule = RecurrenceRules(type="WEEKLY", weekdays="[1, 3]", interval=1)
        assert RecurrencePattern.from_row(rule).weekdays == frozenset({1, 3})

    def test_from_row_rejects_unknown_type(self):
        with pytest.raises(InvalidRuleError):
            RecurrencePattern.from_row(RecurrenceRules(type="HOURLY", weekdays="[]", interval=1))


class TestOccurrenceStarts:
    def test_weekly_defaults_to_origin_weekday(self):
        starts = list(iter_occurrence_starts(weekly(end_date=date(2030, 3, 25)), MONDAY))
        assert starts == [datetime(2030, 3, d, 9, 0) for d in (11, 18, 25)]

    def test_walk_starts_the_day_after_origin(self):
        starts = list(iter_occurrence_starts(
            RecurrencePattern(type=RecurrenceType.DAILY, end_date=date(2030, 3, 6)), MONDAY,
        ))
        assert starts == [datetime(2030, 3, 5, 9, 0), datetime(2030, 3, 6, 9, 0)]

    def test_biweekly_every_other_week(self):
        pattern = RecurrencePattern(type=RecurrenceType.BIWEEKLY, end_after=3)
        result = expand(origin_at(MONDAY), pattern, [])
        assert [i.start.date() for i in result.created] == [
            date(2030, 3, 18), date(2030, 4, 1), date(2030, 4, 15),
        ]

    def test_biweekly_with_weekdays(self):
        pattern = RecurrencePattern(
            type=RecurrenceType.BIWEEKLY, weekdays=frozenset({1, 3}), end_date=date(2030, 3, 31),
        )
        starts = [s.date() for s in iter_occurrence_starts(pattern, MONDAY)]
        # week 0: Wed 6; week 1 skipped; week 2: Mon 18, Wed 20; week 3 skipped
        assert starts == [date(2030, 3, 6), date(2030, 3, 18), date(2030, 3, 20)]

    def test_walk_is_bounded(self):
        config = SchedulingConfig(max_walk_days=10)
        pattern = RecurrencePattern(type=RecurrenceType.DAILY, end_after=500)
        starts = list(iter_occurrence_starts(pattern, MONDAY, config))
        assert len(starts) == 10


class TestExpand:
    def test_weekly_mon_wed_skips_blocked_time(self):
        """Four occurrences alternate Mon/Wed; the blocked Wednesday is skipped."""
        blocked = Interval(
            1, datetime(2030, 3, 13, 8, 0), datetime(2030, 3, 13, 12, 0),
            kind=IntervalKind.BLOCKED_TIME, source_id=99,
        )
        result = expand(origin_at(MONDAY), weekly(1, 3, end_after=4), [blocked])

        assert result.created_count == 4
        assert [i.start for i in result.created] == [
            datetime(2030, 3, 6, 9, 0),
            datetime(2030, 3, 11, 9, 0),
            datetime(2030, 3, 18, 9, 0),
            datetime(2030, 3, 20, 9, 0),
        ]
        assert [js_weekday(i.start.date()) for i in result.created] == [3, 1, 1, 3]
        assert [i.start for i in result.skipped] == [datetime(2030, 3, 13, 9, 0)]
        assert result.message == "4 of 5 sessions scheduled; 1 skipped due to conflicts"

    def test_occurrences_keep_origin_duration(self):
        result = expand(origin_at(MONDAY, minutes=65), weekly(end_after=2), [])
        assert all(i.end - i.start == timedelta(minutes=65) for i in result.created)

    def test_monthly_31_skips_february(self):
        origin = origin_at(datetime(2030, 1, 31, 18, 0))
        pattern = RecurrencePattern(type=RecurrenceType.MONTHLY, month_day=31)
        result = expand(origin, pattern, [])
        assert [i.start.date() for i in result.created] == [date(2030, 3, 31)]
        assert result.skipped == []

    def test_monthly_defaults_to_origin_day(self):
        origin = origin_at(datetime(2030, 1, 15, 10, 0))
        result = expand(origin, RecurrencePattern(type=RecurrenceType.MONTHLY, end_after=3), [])
        assert [i.start.date() for i in result.created] == [
            date(2030, 2, 15), date(2030, 3, 15), date(2030, 4, 15),
        ]

    @pytest.mark.parametrize("end_after", [1, 4, 10])
    def test_count_bound(self, end_after):
        pattern = RecurrencePattern(type=RecurrenceType.DAILY, end_after=end_after)
        assert expand(origin_at(MONDAY), pattern, []).created_count == end_after

    def test_default_cap_without_end(self):
        result = expand(origin_at(MONDAY), RecurrencePattern(type=RecurrenceType.DAILY), [])
        assert result.created_count == 52

    def test_default_cap_applies_with_end_date(self):
        pattern = RecurrencePattern(type=RecurrenceType.DAILY, end_date=date(2030, 12, 31))
        assert expand(origin_at(MONDAY), pattern, []).created_count == 52

    def test_default_horizon_is_three_months(self):
        result = expand(origin_at(MONDAY), weekly(), [])
        assert result.created[-1].start.date() <= date(2030, 6, 4)
        assert result.created_count == 13

    def test_end_date_is_inclusive(self):
        result = expand(origin_at(MONDAY), weekly(end_date=date(2030, 3, 18)), [])
        assert [i.start.date() for i in result.created] == [date(2030, 3, 11), date(2030, 3, 18)]

    def test_fully_skipped_series_is_success(self):
        blocked = Interval(1, datetime(2030, 3, 5), datetime(2030, 3, 20), kind=IntervalKind.BLOCKED_TIME)
        result = expand(origin_at(MONDAY), weekly(end_date=date(2030, 3, 18)), [blocked])
        assert result.created_count == 0
        assert result.skipped_count == 2

    def test_occurrences_never_overlap_each_other(self):
        # 25 hour origin: consecutive daily occurrences would overlap
        origin = origin_at(MONDAY, minutes=25 * 60)
        result = expand(origin, RecurrencePattern(type=RecurrenceType.DAILY, end_after=3), [])
        created = result.created
        for a, b in zip(created, created[1:]):
            assert not a.conflicts_with(b)
        assert [i.start.date() for i in created] == [date(2030, 3, 6), date(2030, 3, 8), date(2030, 3, 10)]
        assert result.skipped_count == 3

    def test_other_professionals_do_not_block(self):
        busy = Interval(2, datetime(2030, 3, 5), datetime(2030, 3, 20))
        result = expand(origin_at(MONDAY), weekly(end_after=2), [busy])
        assert result.skipped == []

    def test_deterministic(self):
        blocked = Interval(1, datetime(2030, 3, 13, 8, 0), datetime(2030, 3, 13, 12, 0))
        pattern = weekly(1, 3, 5, end_after=10)
        first = expand(origin_at(MONDAY), pattern, [blocked])
        second = expand(origin_at(MONDAY), pattern, [blocked])
        assert first.created == second.created
        assert first.skipped == second.skipped

    def test_message_without_skips(self):
        assert ExpansionResult(created=[1, 2, 3]).message == "3 sessions scheduled"


class TestExpandBooking:
    @pytest.fixture
    def origin(self, db, professional, service, client_record):
        booking = Bookings(
            professional_id=professional.id, client_id=client_record.id, service_id=service.id,
            start_time=MONDAY, end_time=MONDAY + timedelta(minutes=65),
            status="CONFIRMED", payment_status="PAID", notes="Bring towel",
        )
        db.add(booking)
        db.commit()
        return booking

    def test_persists_occurrences_with_back_references(self, db, origin):
        rule, result = attach_recurrence(db, origin, weekly(1, 3, end_after=4))
        db.commit()

        occurrences = (
            db.query(Bookings)
            .filter(Bookings.parent_booking_id == origin.id)
            .order_by(Bookings.start_time)
            .all()
        )
        assert len(occurrences) == 4
        assert [b.id for b in result.created] == [b.id for b in occurrences]
        for booking in occurrences:
            assert booking.parent_recurrence_id == rule.id
            assert booking.is_recurring is True
            assert booking.status == "CONFIRMED"
            assert booking.payment_status == "PAID"
            assert booking.notes == "Bring towel"
            assert booking.client_id == origin.client_id
            assert booking.service_id == origin.service_id
            assert booking.end_time - booking.start_time == timedelta(minutes=65)
        assert origin.is_recurring is True
        assert rule.weekdays == "[1, 3]"

    def test_skips_existing_blocked_time(self, db, professional, origin):
        db.add(Bookings(
            professional_id=professional.id, start_time=datetime(2030, 3, 13, 8, 0),
            end_time=datetime(2030, 3, 13, 12, 0), status="CONFIRMED", kind="BLOCKED",
        ))
        db.commit()

        _, result = attach_recurrence(db, origin, weekly(1, 3, end_after=4))
        assert result.created_count == 4
        assert result.skipped_count == 1
        assert datetime(2030, 3, 13, 9, 0) not in [b.start_time for b in result.created]

    def test_second_rule_rejected(self, db, origin):
        attach_recurrence(db, origin, weekly(end_after=1))
        db.commit()
        with pytest.raises(InvalidRuleError):
            attach_recurrence(db, origin, weekly(end_after=1))

    def test_invalid_rule_writes_nothing(self, db, origin):
        with pytest.raises(InvalidRuleError):
            attach_recurrence(db, origin, weekly(9, end_after=2))
        assert db.query(RecurrenceRules).count() == 0
        assert db.query(Bookings).count() == 1
