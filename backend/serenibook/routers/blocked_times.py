# backend/serenibook/routers/blocked_times.py

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.enums import BookingKind, BookingStatus
from ..models.generated import Bookings as DBBookings
from ..redis_client import get_redis
from ..schemas.blocked_times import BlockedTimeCreate, BlockedTimeRead
from ..services.events import emit_event
from ..services.scheduling import lifecycle
from .deps import professional_write

router = APIRouter(prefix="/professionals/{professional_id}/blocked-times", tags=["blocked-times"])


@router.get("/", response_model=list[BlockedTimeRead])
def list_blocked_times(
    professional_id: int,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    lifecycle.get_professional(db, professional_id)
    query = db.query(DBBookings).filter(
        DBBookings.professional_id == professional_id,
        DBBookings.kind == BookingKind.BLOCKED.value,
        DBBookings.status != BookingStatus.CANCELLED.value,
    )
    if date_from is not None:
        query = query.filter(DBBookings.end_time > date_from)
    if date_to is not None:
        query = query.filter(DBBookings.start_time < date_to)
    return query.order_by(DBBookings.start_time).all()


@router.post("/", response_model=BlockedTimeRead, status_code=status.HTTP_201_CREATED)
def create_blocked_time(
    professional_id: int,
    data: BlockedTimeCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    with professional_write(db, redis, professional_id):
        professional = lifecycle.get_professional(db, professional_id)
        blocked = lifecycle.create_blocked_time(
            db, professional, data.start_time, data.end_time, data.title, notes=data.notes,
        )

    db.refresh(blocked)
    emit_event("blocked_time_created", {
        "booking_id": blocked.id,
        "professional_id": professional_id,
        "start_time": blocked.start_time.isoformat(),
        "end_time": blocked.end_time.isoformat(),
    })
    return blocked
