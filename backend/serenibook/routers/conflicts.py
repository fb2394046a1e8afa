# backend/serenibook/routers/conflicts.py
"""
Read-only conflict query.

Lets a client check a range before submitting it. Nothing is locked or
written; the answer may be stale by the time a write arrives, and the
write path re-checks under the lock.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.conflicts import ConflictCheckRequest, ConflictCheckResponse, ConflictingInterval
from ..services.scheduling import lifecycle
from ..services.scheduling.buffer import effective_end
from ..services.scheduling.conflicts import find_conflicts, load_live_intervals
from ..services.scheduling.intervals import Interval

router = APIRouter(prefix="/professionals/{professional_id}/conflicts", tags=["conflicts"])


@router.post("/check", response_model=ConflictCheckResponse)
def check_conflicts(
    professional_id: int,
    data: ConflictCheckRequest,
    db: Session = Depends(get_db),
):
    professional = lifecycle.get_professional(db, professional_id)
    end = data.end_time or effective_end(
        data.start_time, data.duration_minutes, professional.buffer_time,
    )
    candidate = Interval(professional_id, data.start_time, end)

    existing = load_live_intervals(
        db,
        professional_id,
        candidate.start,
        candidate.end,
        exclude_booking_id=data.exclude_booking_id,
        exclude_session_id=data.exclude_session_id,
    )
    conflicts = find_conflicts(candidate, existing)
    if data.kinds:
        conflicts = [c for c in conflicts if c.kind in data.kinds]

    return ConflictCheckResponse(
        has_conflict=bool(conflicts),
        start_time=candidate.start,
        end_time=candidate.end,
        conflicts=[
            ConflictingInterval(id=c.source_id, kind=c.kind, start_time=c.start, end_time=c.end)
            for c in conflicts
        ],
    )
