# backend/serenibook/schemas/professionals.py

from typing import Optional

from pydantic import BaseModel


class SuspensionRead(BaseModel):
    professional_id: int
    is_active: bool
    cancelled_booking_ids: list[int]
    cancelled_session_ids: list[int]


class ProfessionalRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    buffer_time: int
    auto_confirm_bookings: bool
    is_active: bool

    model_config = {"from_attributes": True}
