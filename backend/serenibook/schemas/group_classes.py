# backend/serenibook/schemas/group_classes.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.enums import RegistrationStatus


# ── Legacy group-class bookings ──────────────────────────────────────────

class GroupBookingCreate(BaseModel):
    service_id: int
    start_time: datetime
    max_participants: int = Field(ge=2, le=50)
    notes: Optional[str] = None


class ParticipantCreate(BaseModel):
    client_id: int


class ParticipantRead(BaseModel):
    id: int
    booking_id: int
    client_id: int
    status: str

    model_config = {"from_attributes": True}


# ── Group classes ────────────────────────────────────────────────────────

class GroupClassCreate(BaseModel):
    name: str
    duration: int = Field(gt=0)
    max_participants: int = Field(ge=2, le=50)
    price: float = 0.0
    description: Optional[str] = None
    is_online: bool = False
    address: Optional[str] = None
    city: Optional[str] = None
    equipment: Optional[str] = None


class GroupClassRead(BaseModel):
    id: int
    professional_id: int
    name: str
    duration: int
    max_participants: int
    price: float
    is_online: bool
    is_active: bool
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    equipment: Optional[str] = None

    model_config = {"from_attributes": True}


class GroupSessionCreate(BaseModel):
    start_time: datetime
    notes: Optional[str] = None


class GroupSessionRead(BaseModel):
    id: int
    group_class_id: int
    start_time: datetime
    end_time: datetime
    current_participants: int
    max_participants: int
    status: str
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class RegistrationCreate(BaseModel):
    client_id: int


class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatus


class RegistrationRead(BaseModel):
    id: int
    session_id: int
    client_id: int
    status: str
    notes: Optional[str] = None

    model_config = {"from_attributes": True}
