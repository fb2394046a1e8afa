# backend/serenibook/schemas/bookings.py

import re
import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..models.enums import BookingStatus
from .recurrence import RecurrenceCreate, RecurrenceResult


def _check_hhmm(v: str) -> str:
    if not re.match(r"^\d{2}:\d{2}$", v):
        raise ValueError("Time must be in HH:MM format")
    hour, minute = (int(part) for part in v.split(":"))
    if hour > 23 or minute > 59:
        raise ValueError("Time must be in HH:MM format")
    return v


class BookingCreate(BaseModel):
    service_id: int
    client_id: int
    date: dt.date
    start_time: str = Field(description="Time in HH:MM format")
    notes: Optional[str] = None
    recurrence: Optional[RecurrenceCreate] = None

    @field_validator("start_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _check_hhmm(v)


class BookingUpdate(BaseModel):
    """Reschedule (date + start_time, optional service) and/or change status."""
    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    service_id: Optional[int] = None
    status: Optional[BookingStatus] = None
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    @field_validator("start_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _check_hhmm(v)


class BookingRead(BaseModel):
    id: int

    professional_id: int
    client_id: Optional[int] = None
    service_id: Optional[int] = None

    start_time: dt.datetime
    end_time: dt.datetime

    status: str
    kind: str
    payment_status: str

    is_group_class: bool
    max_participants: int
    current_participants: int

    is_recurring: bool
    parent_booking_id: Optional[int] = None
    parent_recurrence_id: Optional[int] = None

    title: Optional[str] = None
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class BookingCreated(BaseModel):
    """Created booking plus the outcome of its recurrence, when one was requested."""
    booking: BookingRead
    recurrence: Optional[RecurrenceResult] = None
