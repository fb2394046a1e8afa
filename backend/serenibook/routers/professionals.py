# backend/serenibook/routers/professionals.py

from typing import Optional

from fastapi import APIRouter, Depends
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.professionals import ProfessionalRead, SuspensionRead
from ..services.events import emit_event
from ..services.scheduling import lifecycle
from .deps import professional_write

router = APIRouter(prefix="/professionals/{professional_id}", tags=["professionals"])


@router.get("/", response_model=ProfessionalRead)
def get_professional(professional_id: int, db: Session = Depends(get_db)):
    return lifecycle.get_professional(db, professional_id)


@router.post("/suspend", response_model=SuspensionRead)
def suspend(
    professional_id: int,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    """
    Deactivate the professional.

    Every future PENDING/CONFIRMED booking and every future scheduled group
    session is cancelled, one at a time, with the usual side effects.
    """
    with professional_write(db, redis, professional_id):
        professional = lifecycle.get_professional(db, professional_id)
        booking_ids, session_ids = lifecycle.suspend_professional(db, professional)

    emit_event("professional_suspended", {
        "professional_id": professional_id,
        "cancelled_booking_ids": booking_ids,
        "cancelled_session_ids": session_ids,
    })
    return SuspensionRead(
        professional_id=professional_id,
        is_active=False,
        cancelled_booking_ids=booking_ids,
        cancelled_session_ids=session_ids,
    )
