# backend/serenibook/routers/group_bookings.py
"""
Legacy group classes: a single booking row with a participant roster.

Seats are taken and given back under the professional lock plus the
booking's capacity lock, the same pair a cancellation of the booking holds.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.bookings import BookingRead
from ..schemas.group_classes import GroupBookingCreate, ParticipantCreate, ParticipantRead
from ..services.events import emit_event
from ..services.scheduling import lifecycle
from .deps import capacity_write, professional_write

router = APIRouter(prefix="/professionals/{professional_id}/group-bookings", tags=["group-bookings"])


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_group_booking(
    professional_id: int,
    data: GroupBookingCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    with professional_write(db, redis, professional_id):
        professional = lifecycle.get_professional(db, professional_id)
        service = lifecycle.get_service(db, professional_id, data.service_id)
        booking = lifecycle.create_group_booking(
            db, professional, service, data.start_time, data.max_participants, notes=data.notes,
        )

    db.refresh(booking)
    emit_event("booking_created", {
        "booking_id": booking.id,
        "professional_id": professional_id,
        "is_group_class": True,
        "status": booking.status,
        "start_time": booking.start_time.isoformat(),
    })
    return booking


@router.post("/{id}/participants", response_model=ParticipantRead, status_code=status.HTTP_201_CREATED)
def add_participant(
    professional_id: int,
    id: int,
    data: ParticipantCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    with capacity_write(db, redis, professional_id, "booking", id):
        booking = lifecycle.get_booking(db, professional_id, id)
        participant = lifecycle.add_participant(db, booking, data.client_id)

    db.refresh(participant)
    emit_event("group_registration_changed", {
        "booking_id": id,
        "client_id": data.client_id,
        "status": participant.status,
    })
    return participant


@router.delete("/{id}/participants/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_participant(
    professional_id: int,
    id: int,
    client_id: int,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    with capacity_write(db, redis, professional_id, "booking", id):
        booking = lifecycle.get_booking(db, professional_id, id)
        lifecycle.remove_participant(db, booking, client_id)

    emit_event("group_registration_changed", {
        "booking_id": id,
        "client_id": client_id,
        "status": "REMOVED",
    })
    return Response(status_code=status.HTTP_204_NO_CONTENT)
