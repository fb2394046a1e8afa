# backend/serenibook/schemas/blocked_times.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, model_validator


class BlockedTimeCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    title: str = "Blocked"
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BlockedTimeRead(BaseModel):
    id: int
    professional_id: int
    start_time: datetime
    end_time: datetime
    status: str
    title: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}
