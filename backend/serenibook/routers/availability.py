# backend/serenibook/routers/availability.py
"""
Weekly working hours and the free start times derived from them.

GET  /professionals/{id}/availability?service_id=&date=   free "HH:MM" start times
CRUD /professionals/{id}/availability-windows              weekly windows
"""

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.availability import AvailabilityWindowCreate, AvailabilityWindowRead, AvailableTimesRead
from ..services.scheduling import availability, lifecycle
from .deps import professional_write

router = APIRouter(prefix="/professionals/{professional_id}", tags=["availability"])


@router.get("/availability", response_model=AvailableTimesRead)
def get_available_times(
    professional_id: int,
    service_id: int = Query(...),
    date: dt.date = Query(...),
    db: Session = Depends(get_db),
):
    """Start times where the service (plus buffer) fits a window and nothing live overlaps it."""
    professional = lifecycle.get_professional(db, professional_id)
    service = lifecycle.get_service(db, professional_id, service_id)
    times = availability.available_start_times(db, professional, service, date)
    return AvailableTimesRead(
        professional_id=professional_id,
        service_id=service_id,
        date=date,
        available_times=times,
    )


@router.get("/availability-windows", response_model=list[AvailabilityWindowRead])
def list_windows(
    professional_id: int,
    day_of_week: Optional[int] = Query(None, ge=0, le=6),
    db: Session = Depends(get_db),
):
    lifecycle.get_professional(db, professional_id)
    return availability.list_availabilities(db, professional_id, day_of_week)


@router.post(
    "/availability-windows",
    response_model=AvailabilityWindowRead,
    status_code=status.HTTP_201_CREATED,
)
def create_window(
    professional_id: int,
    data: AvailabilityWindowCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    with professional_write(db, redis, professional_id):
        professional = lifecycle.get_professional(db, professional_id)
        window = availability.create_availability(
            db, professional, data.day_of_week, data.start_time, data.end_time,
        )

    db.refresh(window)
    return window


@router.patch("/availability-windows/{id}", response_model=AvailabilityWindowRead)
def update_window(
    professional_id: int,
    id: int,
    data: AvailabilityWindowCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    with professional_write(db, redis, professional_id):
        window = availability.get_availability(db, professional_id, id)
        availability.update_availability(db, window, data.day_of_week, data.start_time, data.end_time)

    db.refresh(window)
    return window


@router.delete("/availability-windows/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_window(
    professional_id: int,
    id: int,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    with professional_write(db, redis, professional_id):
        window = availability.get_availability(db, professional_id, id)
        availability.delete_availability(db, window)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
