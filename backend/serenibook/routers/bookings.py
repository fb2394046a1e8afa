# backend/serenibook/routers/bookings.py

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.enums import BookingKind, BookingStatus
from ..models.generated import Bookings as DBBookings
from ..redis_client import get_redis
from ..schemas.bookings import BookingCreate, BookingCreated, BookingRead, BookingUpdate
from ..schemas.recurrence import RecurrenceCreate, RecurrenceResult, RecurrenceRuleRead
from ..services.events import emit_event
from ..services.scheduling import lifecycle
from ..services.scheduling.recurrence import attach_recurrence
from .deps import capacity_write, professional_write

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/professionals/{professional_id}/bookings", tags=["bookings"])


def _recurrence_result(rule, expansion) -> RecurrenceResult:
    return RecurrenceResult(
        rule_id=rule.id,
        rule=RecurrenceRuleRead.model_validate(rule),
        created_count=expansion.created_count,
        skipped_count=expansion.skipped_count,
        created_ids=[b.id for b in expansion.created],
        message=expansion.message,
    )


def _emit_expansion(professional_id: int, booking_id: int, result: RecurrenceResult) -> None:
    emit_event("recurrence_expanded", {
        "professional_id": professional_id,
        "booking_id": booking_id,
        "rule_id": result.rule_id,
        "created": result.created_count,
        "skipped": result.skipped_count,
    })


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    professional_id: int,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    lifecycle.get_professional(db, professional_id)
    query = db.query(DBBookings).filter(
        DBBookings.professional_id == professional_id,
        DBBookings.kind == BookingKind.APPOINTMENT.value,
    )
    if status_filter is not None:
        query = query.filter(DBBookings.status == status_filter.value)
    if date_from is not None:
        query = query.filter(DBBookings.start_time >= date_from)
    if date_to is not None:
        query = query.filter(DBBookings.start_time < date_to)
    return query.order_by(DBBookings.start_time, DBBookings.id).all()


@router.get("/{id}", response_model=BookingRead)
def get_booking(professional_id: int, id: int, db: Session = Depends(get_db)):
    return lifecycle.get_booking(db, professional_id, id)


@router.post("/", response_model=BookingCreated, status_code=status.HTTP_201_CREATED)
def create_booking(
    professional_id: int,
    data: BookingCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    """
    Create an individual appointment.

    end = start + service duration + professional buffer; the range must be
    free. With a `recurrence` block the series is expanded in the same
    transaction; conflicting occurrences are skipped and reported.
    """
    start = lifecycle.combine(data.date, data.start_time)
    pattern = data.recurrence.to_pattern() if data.recurrence else None

    recurrence = None
    with professional_write(db, redis, professional_id):
        professional = lifecycle.get_professional(db, professional_id)
        service = lifecycle.get_service(db, professional_id, data.service_id)
        booking = lifecycle.create_appointment(
            db, professional, service, data.client_id, start, notes=data.notes,
        )
        if pattern is not None:
            rule, expansion = attach_recurrence(db, booking, pattern)
            recurrence = _recurrence_result(rule, expansion)

    db.refresh(booking)
    emit_event("booking_created", {
        "booking_id": booking.id,
        "professional_id": professional_id,
        "client_id": booking.client_id,
        "status": booking.status,
        "start_time": booking.start_time.isoformat(),
    })
    if recurrence is not None:
        _emit_expansion(professional_id, booking.id, recurrence)

    return BookingCreated(booking=BookingRead.model_validate(booking), recurrence=recurrence)


@router.post("/{id}/recurrence", response_model=RecurrenceResult, status_code=status.HTTP_201_CREATED)
def create_recurrence(
    professional_id: int,
    id: int,
    data: RecurrenceCreate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    """Attach a repeat rule to an existing booking and expand it."""
    with professional_write(db, redis, professional_id):
        booking = lifecycle.get_booking(db, professional_id, id)
        rule, expansion = attach_recurrence(db, booking, data.to_pattern())
        result = _recurrence_result(rule, expansion)

    _emit_expansion(professional_id, id, result)
    return result


@router.patch("/{id}", response_model=BookingRead)
def update_booking(
    professional_id: int,
    id: int,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    """
    Reschedule and/or change status.

    Missing date or start_time keeps the current one. The status change is
    applied after the move.
    """
    moved = False
    with capacity_write(db, redis, professional_id, "booking", id):
        professional = lifecycle.get_professional(db, professional_id)
        booking = lifecycle.get_booking(db, professional_id, id)
        old_status = booking.status

        if data.date is not None or data.start_time is not None or data.service_id is not None:
            day = data.date or booking.start_time.date()
            start_time = data.start_time or booking.start_time.strftime("%H:%M")
            service = (
                lifecycle.get_service(db, professional_id, data.service_id)
                if data.service_id is not None else None
            )
            lifecycle.reschedule_booking(
                db, professional, booking, lifecycle.combine(day, start_time), service=service,
            )
            moved = True

        if data.notes is not None:
            booking.notes = data.notes

        changed = False
        if data.status is not None:
            changed = lifecycle.transition_booking(db, booking, data.status, reason=data.cancel_reason)

    db.refresh(booking)
    if moved:
        emit_event("booking_rescheduled", {
            "booking_id": booking.id,
            "professional_id": professional_id,
            "start_time": booking.start_time.isoformat(),
        })
    if changed:
        event_type = (
            "booking_cancelled" if booking.status == BookingStatus.CANCELLED.value
            else "booking_status_changed"
        )
        emit_event(event_type, {
            "booking_id": booking.id,
            "professional_id": professional_id,
            "old_status": old_status,
            "new_status": booking.status,
        })
    return booking


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    professional_id: int,
    id: int,
    db: Session = Depends(get_db),
    redis: Optional[Redis] = Depends(get_redis),
):
    with capacity_write(db, redis, professional_id, "booking", id):
        booking = lifecycle.get_booking(db, professional_id, id)
        lifecycle.delete_booking(db, booking)

    emit_event("booking_deleted", {"booking_id": id, "professional_id": professional_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
