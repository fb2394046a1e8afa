# backend/serenibook/services/scheduling/__init__.py
"""
Scheduling and conflict-resolution engine.

Interval model → buffer → conflict detector → lifecycle / capacity → recurrence.
"""

from .availability import available_start_times, free_start_times
from .buffer import effective_end, raw_end
from .capacity import release, try_reserve
from .config import SchedulingConfig, get_scheduling_config
from .conflicts import check_time_conflict, find_conflict, has_conflict, load_live_intervals
from .errors import (
    AlreadyRegisteredError,
    CapacityError,
    CapacityExceededError,
    ConflictError,
    InvalidRuleError,
    InvalidTransitionError,
    NotFoundError,
    SchedulingError,
)
from .intervals import Interval, IntervalKind
from .locks import capacity_lock, professional_lock
from .recurrence import ExpansionResult, RecurrencePattern, attach_recurrence, expand, expand_booking

__all__ = [
    "effective_end",
    "raw_end",
    "release",
    "try_reserve",
    "SchedulingConfig",
    "get_scheduling_config",
    "check_time_conflict",
    "find_conflict",
    "has_conflict",
    "load_live_intervals",
    "AlreadyRegisteredError",
    "CapacityError",
    "CapacityExceededError",
    "ConflictError",
    "InvalidRuleError",
    "InvalidTransitionError",
    "NotFoundError",
    "SchedulingError",
    "available_start_times",
    "free_start_times",
    "Interval",
    "IntervalKind",
    "capacity_lock",
    "professional_lock",
    "ExpansionResult",
    "RecurrencePattern",
    "attach_recurrence",
    "expand",
    "expand_booking",
]
