# backend/serenibook/services/scheduling/recurrence.py
"""
Recurrence expander.

Walks forward day by day from the day after the origin booking and tests
each day against the rule:

  DAILY     every day
  WEEKLY    weekday in rule.weekdays (origin's weekday when empty)
  BIWEEKLY  WEEKLY test + (elapsed whole days // 7) is even
  MONTHLY   day of month == rule.month_day (origin's day when unset)

Weekdays use 0 = Sunday … 6 = Saturday.

Each qualifying day becomes a candidate at the origin's time of day with
the origin's duration. Conflicting candidates are skipped, never retried;
the others are created and join the conflict set.

Termination:
  end_date   inclusive date bound
  end_after  number of *created* occurrences
  neither    horizon of default_horizon_months + cap of default_max_occurrences
max_walk_days bounds the walk whatever the rule says.
"""

import calendar
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, Optional

from sqlalchemy.orm import Session

from ...models.enums import RecurrenceType
from .config import SchedulingConfig, get_scheduling_config
from .conflicts import find_conflict, load_live_intervals
from .errors import InvalidRuleError
from .intervals import Interval, IntervalKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecurrencePattern:
    """Validated, storage-independent view of a recurrence rule."""
    type: RecurrenceType
    weekdays: frozenset[int] = frozenset()
    month_day: Optional[int] = None
    end_date: Optional[date] = None
    end_after: Optional[int] = None
    interval: int = 1

    @classmethod
    def from_row(cls, rule) -> "RecurrencePattern":
        """Build from a RecurrenceRules row (weekdays stored as JSON text)."""
        weekdays = rule.weekdays
        if isinstance(weekdays, str):
            try:
                weekdays = json.loads(weekdays) if weekdays else []
            except json.JSONDecodeError:
                raise InvalidRuleError(f"Malformed weekdays: {rule.weekdays!r}")
        try:
            rule_type = RecurrenceType(rule.type)
        except ValueError:
            raise InvalidRuleError(f"Unknown recurrence type: {rule.type}")
        return cls(
            type=rule_type,
            weekdays=frozenset(int(d) for d in (weekdays or [])),
            month_day=rule.month_day,
            end_date=rule.end_date,
            end_after=rule.end_after,
            interval=rule.interval or 1,
        )


@dataclass
class ExpansionResult:
    """Outcome of one expansion: what was created, what was skipped for conflicts."""
    created: list = field(default_factory=list)
    skipped: list[Interval] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def message(self) -> str:
        total = self.created_count + self.skipped_count
        if not self.skipped:
            return f"{self.created_count} sessions scheduled"
        return (
            f"{self.created_count} of {total} sessions scheduled; "
            f"{self.skipped_count} skipped due to conflicts"
        )


# ── Validation ───────────────────────────────────────────────────────────


def validate_rule(pattern: RecurrencePattern, origin_start: Optional[datetime] = None) -> None:
    """Reject malformed rules before anything is persisted."""
    if not isinstance(pattern.type, RecurrenceType):
        raise InvalidRuleError(f"Unknown recurrence type: {pattern.type}")
    if pattern.interval != 1:
        raise InvalidRuleError(f"Only interval=1 is supported, got {pattern.interval}")

    bad_days = sorted(d for d in pattern.weekdays if not 0 <= d <= 6)
    if bad_days:
        raise InvalidRuleError(f"Weekdays must be between 0 (Sunday) and 6 (Saturday), got {bad_days}")

    if pattern.month_day is not None and not 1 <= pattern.month_day <= 31:
        raise InvalidRuleError(f"month_day must be between 1 and 31, got {pattern.month_day}")

    if pattern.end_date is not None and pattern.end_after is not None:
        raise InvalidRuleError("end_date and end_after are mutually exclusive")

    if pattern.end_after is not None and pattern.end_after < 1:
        raise InvalidRuleError(f"end_after must be >= 1, got {pattern.end_after}")

    if (
        pattern.end_date is not None
        and origin_start is not None
        and pattern.end_date < origin_start.date()
    ):
        raise InvalidRuleError(
            f"end_date {pattern.end_date.isoformat()} is before the first booking "
            f"({origin_start.date().isoformat()})"
        )


# ── Day walk ─────────────────────────────────────────────────────────────


def js_weekday(d: date) -> int:
    """0 = Sunday … 6 = Saturday."""
    return d.isoweekday() % 7


def add_months(d: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of the target month."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def day_qualifies(pattern: RecurrencePattern, origin_start: datetime, day: date) -> bool:
    """Whether `day` carries an occurrence under the rule."""
    if pattern.type is RecurrenceType.DAILY:
        return True

    if pattern.type in (RecurrenceType.WEEKLY, RecurrenceType.BIWEEKLY):
        if pattern.type is RecurrenceType.BIWEEKLY:
            # Walk keeps the origin's time of day, so elapsed time is whole days
            elapsed_days = (day - origin_start.date()).days
            if (elapsed_days // 7) % 2 != 0:
                return False
        if pattern.weekdays:
            return js_weekday(day) in pattern.weekdays
        return js_weekday(day) == js_weekday(origin_start.date())

    if pattern.type is RecurrenceType.MONTHLY:
        target_day = pattern.month_day or origin_start.day
        return day.day == target_day

    return False


def last_walk_day(
    pattern: RecurrencePattern,
    origin_start: datetime,
    config: SchedulingConfig,
) -> date:
    """Last calendar day the walk may reach."""
    hard_stop = origin_start.date() + timedelta(days=config.max_walk_days)
    if pattern.end_date is not None:
        return min(pattern.end_date, hard_stop)
    if pattern.end_after is not None:
        return hard_stop
    return min(add_months(origin_start.date(), config.default_horizon_months), hard_stop)


def occurrence_cap(pattern: RecurrencePattern, config: SchedulingConfig) -> int:
    return pattern.end_after or config.default_max_occurrences


def iter_occurrence_starts(
    pattern: RecurrencePattern,
    origin_start: datetime,
    config: Optional[SchedulingConfig] = None,
) -> Iterator[datetime]:
    """
    Candidate start datetimes in chronological order, before conflict filtering.

    Bounded by the date limit only; the count limit applies to created
    occurrences and is enforced by expand().
    """
    config = config or get_scheduling_config()
    stop = last_walk_day(pattern, origin_start, config)
    time_of_day = origin_start.time()

    day = origin_start.date() + timedelta(days=1)
    while day <= stop:
        if day_qualifies(pattern, origin_start, day):
            yield datetime.combine(day, time_of_day)
        day += timedelta(days=1)


# ── Expansion ────────────────────────────────────────────────────────────


def expand(
    origin: Interval,
    pattern: RecurrencePattern,
    existing: Iterable[Interval],
    config: Optional[SchedulingConfig] = None,
) -> ExpansionResult:
    """
    Plan occurrences of `origin` under `pattern` against `existing` live intervals.

    Pure: the same inputs always give the same occurrences in the same order.
    The origin itself is part of the conflict set.
    Created entries are Interval objects (source_id None).
    """
    config = config or get_scheduling_config()
    validate_rule(pattern, origin.start)

    duration = origin.end - origin.start
    cap = occurrence_cap(pattern, config)
    taken = [origin, *existing]
    result = ExpansionResult()

    for start in iter_occurrence_starts(pattern, origin.start, config):
        if result.created_count >= cap:
            break

        candidate = Interval(
            professional_id=origin.professional_id,
            start=start,
            end=start + duration,
            kind=origin.kind,
        )
        if find_conflict(candidate, taken) is not None:
            result.skipped.append(candidate)
            continue

        result.created.append(candidate)
        taken.append(candidate)

    return result


def expand_booking(
    db: Session,
    origin,
    rule,
    config: Optional[SchedulingConfig] = None,
) -> ExpansionResult:
    """
    Materialize the occurrences of an origin booking under its RecurrenceRules row.

    Each created occurrence copies status, payment status, notes, service and
    client from the origin and points back to it through parent_booking_id /
    parent_recurrence_id. The caller holds the professional's lock and commits.

    Returns an ExpansionResult whose `created` holds the new Bookings rows.
    """
    from ...models.generated import Bookings

    config = config or get_scheduling_config()
    pattern = RecurrencePattern.from_row(rule)
    validate_rule(pattern, origin.start_time)

    duration = origin.end_time - origin.start_time
    window_end = datetime.combine(
        last_walk_day(pattern, origin.start_time, config) + timedelta(days=1),
        datetime.min.time(),
    ) + duration
    existing = load_live_intervals(
        db,
        origin.professional_id,
        origin.start_time,
        window_end,
    )

    origin_interval = Interval(
        professional_id=origin.professional_id,
        start=origin.start_time,
        end=origin.end_time,
        kind=IntervalKind.APPOINTMENT,
        source_id=origin.id,
    )
    planned = expand(origin_interval, pattern, existing, config)

    rows = []
    for occurrence in planned.created:
        row = Bookings(
            professional_id=origin.professional_id,
            client_id=origin.client_id,
            service_id=origin.service_id,
            start_time=occurrence.start,
            end_time=occurrence.end,
            status=origin.status,
            kind=origin.kind,
            payment_status=origin.payment_status,
            notes=origin.notes,
            title=origin.title,
            is_group_class=origin.is_group_class,
            max_participants=origin.max_participants,
            current_participants=0 if origin.is_group_class else 1,
            is_recurring=True,
            parent_booking_id=origin.id,
            parent_recurrence_id=rule.id,
        )
        db.add(row)
        rows.append(row)

    origin.is_recurring = True
    db.flush()

    logger.info(
        f"Recurrence {pattern.type.value} for booking={origin.id}: "
        f"{planned.created_count} created, {planned.skipped_count} skipped"
    )
    return ExpansionResult(created=rows, skipped=planned.skipped)


def attach_recurrence(
    db: Session,
    origin,
    pattern: RecurrencePattern,
    config: Optional[SchedulingConfig] = None,
) -> tuple:
    """
    Store a new rule for `origin` and expand it once.

    The rule is validated before anything is written. A booking owns at
    most one rule; re-configuration is a separate concern.

    Returns (RecurrenceRules row, ExpansionResult).
    """
    from ...models.enums import BookingStatus
    from ...models.generated import RecurrenceRules

    validate_rule(pattern, origin.start_time)
    if origin.status == BookingStatus.CANCELLED.value:
        raise InvalidRuleError("Cannot repeat a cancelled booking")
    if origin.recurrence_rule is not None:
        raise InvalidRuleError(f"Booking {origin.id} already has a recurrence rule")

    rule = RecurrenceRules(
        booking_id=origin.id,
        type=pattern.type.value,
        interval=pattern.interval,
        weekdays=json.dumps(sorted(pattern.weekdays)),
        month_day=pattern.month_day,
        end_date=pattern.end_date,
        end_after=pattern.end_after,
    )
    db.add(rule)
    db.flush()

    return rule, expand_booking(db, origin, rule, config)
