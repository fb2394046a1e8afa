# backend/serenibook/services/scheduling/buffer.py
"""
Buffer calculator.

The professional's buffer is added once, here, before any conflict check.
Stored end_time values are always the effective (buffered) end.
"""

from datetime import datetime, timedelta
from typing import Optional


def raw_end(start: datetime, duration_minutes: int) -> datetime:
    """start + service duration."""
    if duration_minutes <= 0:
        raise ValueError(f"duration_minutes must be > 0, got {duration_minutes}")
    return start + timedelta(minutes=duration_minutes)


def effective_end(
    start: datetime,
    duration_minutes: int,
    buffer_minutes: Optional[int] = None,
) -> datetime:
    """
    End time used for conflict purposes.

    Example: start 09:00, duration 50, buffer 15 → 10:05
    """
    buffer_minutes = buffer_minutes or 0
    if buffer_minutes < 0:
        raise ValueError(f"buffer_minutes must be >= 0, got {buffer_minutes}")
    return raw_end(start, duration_minutes) + timedelta(minutes=buffer_minutes)
