# backend/serenibook/routers/registrations.py
"""
Client registrations to group sessions.

Every change runs under the owner's lock plus the session's capacity lock,
so the counter and the registration status move together.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.group_classes import RegistrationCreate, RegistrationRead, RegistrationStatusUpdate
from ..services.events import emit_event
from ..services.scheduling import groups
from .deps import capacity_write

router = APIRouter(tags=["registrations"])


@router.post(
    "/sessions/{session_id}/registrations",
    response_model=RegistrationRead,
    status_code=status.HTTP_201_CREATED,
)
def register(
    session_id: int,
    data: RegistrationCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    professional_id = groups.session_owner(db, session_id)
    with capacity_write(db, redis, professional_id, "session", session_id):
        session = groups.get_session(db, session_id)
        registration = groups.register_client(db, session, data.client_id)

    db.refresh(registration)
    emit_event("group_registration_changed", {
        "registration_id": registration.id,
        "session_id": session_id,
        "client_id": registration.client_id,
        "status": registration.status,
    })
    return registration


@router.patch("/registrations/{id}/status", response_model=RegistrationRead)
def update_registration_status(
    id: int,
    data: RegistrationStatusUpdate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    professional_id, session_id = groups.registration_scope(db, id)
    with capacity_write(db, redis, professional_id, "session", session_id):
        registration = groups.get_registration(db, id)
        old_status = registration.status
        changed = groups.transition_registration(db, registration, data.status)

    db.refresh(registration)
    if changed:
        emit_event("group_registration_changed", {
            "registration_id": registration.id,
            "session_id": registration.session_id,
            "client_id": registration.client_id,
            "old_status": old_status,
            "status": registration.status,
        })
    return registration
