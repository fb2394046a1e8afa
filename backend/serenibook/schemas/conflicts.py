# backend/serenibook/schemas/conflicts.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ..services.scheduling.intervals import IntervalKind


class ConflictCheckRequest(BaseModel):
    """
    Ask whether [start_time, start_time + duration + buffer) is free.

    Either end_time or duration_minutes must be given; the professional's
    buffer is added to duration_minutes only.
    """
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    kinds: Optional[list[IntervalKind]] = None
    exclude_booking_id: Optional[int] = None
    exclude_session_id: Optional[int] = None

    @model_validator(mode="after")
    def check_span(self):
        if (self.end_time is None) == (self.duration_minutes is None):
            raise ValueError("Exactly one of end_time or duration_minutes is required")
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ConflictingInterval(BaseModel):
    id: Optional[int] = None
    kind: IntervalKind
    start_time: datetime
    end_time: datetime


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    start_time: datetime
    end_time: datetime
    conflicts: list[ConflictingInterval]
