# backend/serenibook/services/scheduling/availability.py
"""
Weekly working hours and free start times.

A professional declares availability windows per weekday
(0 = Sunday … 6 = Saturday, "HH:MM"–"HH:MM"). Free start times for a
service on a date are produced by stepping through each window:

✓ window of the date's weekday
✓ slot + service duration + buffer must end inside the window
✓ the buffered slot must not conflict with a live interval
  (same predicate as booking creation, so a listed time is bookable)

Does NOT contain:
✗ Past-time filtering (callers decide what "too late" means)
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models.generated import Availabilities, Professionals, Services
from .buffer import effective_end
from .config import SchedulingConfig, get_scheduling_config
from .conflicts import has_conflict, load_live_intervals
from .errors import NotFoundError, SchedulingError
from .intervals import Interval, IntervalKind
from .recurrence import js_weekday

logger = logging.getLogger(__name__)


def time_str_to_minutes(value: str) -> int:
    hour, minute = (int(part) for part in value.split(":"))
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def at_time(day: date, value: str) -> datetime:
    return datetime.combine(day, datetime.min.time()) + timedelta(minutes=time_str_to_minutes(value))


def validate_window(day_of_week: int, start_time: str, end_time: str) -> None:
    if not 0 <= day_of_week <= 6:
        raise SchedulingError(f"day_of_week must be between 0 (Sunday) and 6, got {day_of_week}")
    if time_str_to_minutes(end_time) <= time_str_to_minutes(start_time):
        raise SchedulingError(f"Window end {end_time} must be after start {start_time}")


# ── Pure slot generation ─────────────────────────────────────────────────


def free_start_times(
    professional_id: int,
    day: date,
    windows: Iterable[tuple[str, str]],
    duration: int,
    buffer: int,
    busy: Iterable[Interval],
    step_minutes: int = 15,
) -> list[str]:
    """
    "HH:MM" start times on `day` where a buffered slot fits a window and is free.

    Overlapping windows produce each time once; the result is sorted.
    """
    busy = list(busy)
    step = timedelta(minutes=step_minutes)
    times: set[str] = set()

    for window_start, window_end in windows:
        slot = at_time(day, window_start)
        limit = at_time(day, window_end)
        while effective_end(slot, duration, buffer) <= limit:
            candidate = Interval(
                professional_id,
                slot,
                effective_end(slot, duration, buffer),
                IntervalKind.APPOINTMENT,
            )
            if not has_conflict(candidate, busy):
                times.add(slot.strftime("%H:%M"))
            slot += step

    return sorted(times)


# ── Storage ──────────────────────────────────────────────────────────────


def get_availability(db: Session, professional_id: int, availability_id: int) -> Availabilities:
    window = db.get(Availabilities, availability_id)
    if window is None or window.professional_id != professional_id:
        raise NotFoundError("Availability", availability_id)
    return window


def list_availabilities(db: Session, professional_id: int, day_of_week: Optional[int] = None) -> list[Availabilities]:
    query = db.query(Availabilities).filter(Availabilities.professional_id == professional_id)
    if day_of_week is not None:
        query = query.filter(Availabilities.day_of_week == day_of_week)
    return query.order_by(Availabilities.day_of_week, Availabilities.start_time, Availabilities.id).all()


def create_availability(
    db: Session,
    professional: Professionals,
    day_of_week: int,
    start_time: str,
    end_time: str,
) -> Availabilities:
    validate_window(day_of_week, start_time, end_time)
    window = Availabilities(
        professional_id=professional.id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
    )
    db.add(window)
    db.flush()

    logger.info(
        f"Availability {window.id} added for professional={professional.id} "
        f"day={day_of_week} {start_time}-{end_time}"
    )
    return window


def update_availability(
    db: Session,
    window: Availabilities,
    day_of_week: int,
    start_time: str,
    end_time: str,
) -> Availabilities:
    validate_window(day_of_week, start_time, end_time)
    logger.info(
        f"Availability {window.id}: day {window.day_of_week} → {day_of_week}, "
        f"{window.start_time}-{window.end_time} → {start_time}-{end_time}"
    )
    window.day_of_week = day_of_week
    window.start_time = start_time
    window.end_time = end_time
    db.flush()
    return window


def delete_availability(db: Session, window: Availabilities) -> None:
    window_id = window.id
    db.delete(window)
    db.flush()
    logger.info(f"Availability {window_id} deleted")


def available_start_times(
    db: Session,
    professional: Professionals,
    service: Services,
    day: date,
    config: Optional[SchedulingConfig] = None,
) -> list[str]:
    """
    Free start times for one service on one date.

    An inactive professional has none. Busy intervals are every live
    booking and group session of the professional on that date.
    """
    config = config or get_scheduling_config()
    if not service.is_active:
        raise SchedulingError("Service is not active")
    if not professional.is_active:
        return []

    windows = list_availabilities(db, professional.id, js_weekday(day))
    if not windows:
        return []

    day_start = datetime.combine(day, datetime.min.time())
    busy = load_live_intervals(db, professional.id, day_start, day_start + timedelta(days=1))

    return free_start_times(
        professional.id,
        day,
        [(w.start_time, w.end_time) for w in windows],
        service.duration,
        professional.buffer_time,
        busy,
        step_minutes=config.slot_step_minutes,
    )
