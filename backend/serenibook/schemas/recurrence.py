# backend/serenibook/schemas/recurrence.py

import json
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.enums import RecurrenceType
from ..services.scheduling.recurrence import RecurrencePattern


class RecurrenceCreate(BaseModel):
    """
    Repeat settings as entered in the booking form.

    end_type:
      never  horizon of 3 months, 52 occurrences at most
      after  stop after end_after created occurrences
      on     stop on end_date (inclusive)
    """
    type: RecurrenceType
    weekdays: list[int] = Field(default_factory=list, description="0 = Sunday … 6 = Saturday")
    month_day: Optional[int] = None
    end_type: Literal["never", "after", "on"] = "never"
    end_after: Optional[int] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_end(self):
        if self.end_type == "after" and self.end_after is None:
            raise ValueError("end_after is required when end_type is 'after'")
        if self.end_type == "on" and self.end_date is None:
            raise ValueError("end_date is required when end_type is 'on'")
        return self

    def to_pattern(self) -> RecurrencePattern:
        return RecurrencePattern(
            type=self.type,
            weekdays=frozenset(self.weekdays),
            month_day=self.month_day,
            end_after=self.end_after if self.end_type == "after" else None,
            end_date=self.end_date if self.end_type == "on" else None,
        )


class RecurrenceRuleRead(BaseModel):
    id: int
    booking_id: int
    type: str
    interval: int
    weekdays: list[int]
    month_day: Optional[int] = None
    end_date: Optional[date] = None
    end_after: Optional[int] = None

    model_config = {"from_attributes": True}

    @field_validator("weekdays", mode="before")
    @classmethod
    def parse_weekdays(cls, v):
        if isinstance(v, str):
            return json.loads(v) if v else []
        return v


class RecurrenceResult(BaseModel):
    """Summary returned after an expansion."""
    rule_id: int
    rule: RecurrenceRuleRead
    created_count: int
    skipped_count: int
    created_ids: list[int]
    message: str
