# backend/serenibook/routers/group_classes.py

from typing import Optional

from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.group_classes import (
    GroupClassCreate,
    GroupClassRead,
    GroupSessionCreate,
    GroupSessionRead,
)
from ..services.events import emit_event
from ..services.scheduling import groups, lifecycle
from .deps import committing, professional_write

router = APIRouter(prefix="/professionals/{professional_id}/group-classes", tags=["group-classes"])


@router.post("/", response_model=GroupClassRead, status_code=status.HTTP_201_CREATED)
def create_group_class(
    professional_id: int,
    data: GroupClassCreate,
    db: Session = Depends(get_db),
):
    professional = lifecycle.get_professional(db, professional_id)
    details = data.model_dump(exclude={"name", "duration", "max_participants", "price"})
    with committing(db):
        group_class = groups.create_group_class(
            db, professional, data.name, data.duration, data.max_participants, data.price, **details,
        )
    db.refresh(group_class)
    return group_class


@router.get("/{id}/sessions", response_model=list[GroupSessionRead])
def list_sessions(professional_id: int, id: int, db: Session = Depends(get_db)):
    group_class = groups.get_group_class(db, professional_id, id)
    return sorted(group_class.sessions, key=lambda s: (s.start_time, s.id))


@router.post("/{id}/sessions", response_model=GroupSessionRead, status_code=status.HTTP_201_CREATED)
def create_session(
    professional_id: int,
    id: int,
    data: GroupSessionCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    """Schedule one session of the class; duration + buffer must be free."""
    with professional_write(db, redis, professional_id):
        professional = lifecycle.get_professional(db, professional_id)
        group_class = groups.get_group_class(db, professional_id, id)
        session = groups.schedule_session(db, professional, group_class, data.start_time, notes=data.notes)

    db.refresh(session)
    emit_event("group_session_scheduled", {
        "session_id": session.id,
        "group_class_id": group_class.id,
        "professional_id": professional_id,
        "start_time": session.start_time.isoformat(),
    })
    return session
