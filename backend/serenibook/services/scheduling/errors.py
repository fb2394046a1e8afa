# backend/serenibook/services/scheduling/errors.py
"""
Typed outcomes of the scheduling engine.

All of these are expected results that handlers translate to HTTP responses.
Anything else (database down, Redis unreachable) propagates untouched.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for expected scheduling outcomes."""

    status_code = 400
    code = "scheduling_error"

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> dict:
        return {"detail": self.detail, "error": self.code, **self.extra}


class ConflictError(SchedulingError):
    """Candidate interval overlaps a live interval of the same professional."""

    status_code = 409
    code = "conflict"

    def __init__(self, conflicting_id: Optional[int], conflicting_kind: str, detail: Optional[str] = None):
        super().__init__(
            detail or "This time slot is no longer available. Please choose another slot.",
            conflicting_id=conflicting_id,
            conflicting_kind=conflicting_kind,
        )
        self.conflicting_id = conflicting_id
        self.conflicting_kind = conflicting_kind


class CapacityError(SchedulingError):
    """Capacity counter would leave [0, max]."""

    status_code = 409
    code = "capacity"


class CapacityExceededError(CapacityError):
    code = "capacity_exceeded"

    def __init__(self, record_id: Optional[int], max_participants: int):
        super().__init__(
            "This session is full.",
            record_id=record_id,
            max_participants=max_participants,
        )


class InvalidRuleError(SchedulingError):
    code = "invalid_recurrence_rule"


class InvalidTransitionError(SchedulingError):
    code = "invalid_transition"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot change status from {current} to {target}",
            current=current,
            target=target,
        )


class NotFoundError(SchedulingError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found", entity=entity, entity_id=entity_id)


class AlreadyRegisteredError(SchedulingError):
    status_code = 409
    code = "already_registered"
