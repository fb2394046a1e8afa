# backend/serenibook/routers/deps.py
"""
Write sections for handlers.

Records a write depends on are loaded inside the section, never before it.
Lock order is always professional, then capacity record.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from redis import Redis
from sqlalchemy.orm import Session

from ..services.scheduling.locks import capacity_lock, professional_lock


@contextmanager
def committing(db: Session) -> Iterator[None]:
    """Commit on success, roll back on any error."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


@contextmanager
def professional_write(db: Session, redis: Optional[Redis], professional_id: int) -> Iterator[None]:
    """Check-then-write under the professional's lock, committed before the lock is released."""
    with professional_lock(redis, professional_id), committing(db):
        yield


@contextmanager
def capacity_write(
    db: Session,
    redis: Optional[Redis],
    professional_id: int,
    kind: str,
    record_id: int,
) -> Iterator[None]:
    """
    Seat change + status write under the owner's lock and the record's capacity lock.

    Holding the professional lock too serializes seat changes with
    cancellations and suspensions of the same record.
    """
    with professional_lock(redis, professional_id), capacity_lock(redis, kind, record_id), committing(db):
        yield
