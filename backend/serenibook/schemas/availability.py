# backend/serenibook/schemas/availability.py

import datetime as dt

from pydantic import BaseModel, Field, field_validator, model_validator

from .bookings import _check_hhmm


class AvailabilityWindowCreate(BaseModel):
    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday … 6 = Saturday")
    start_time: str = Field(description="Time in HH:MM format")
    end_time: str = Field(description="Time in HH:MM format")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _check_hhmm(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilityWindowRead(BaseModel):
    id: int
    professional_id: int
    day_of_week: int
    start_time: str
    end_time: str

    model_config = {"from_attributes": True}


class AvailableTimesRead(BaseModel):
    professional_id: int
    service_id: int
    date: dt.date
    available_times: list[str]
