# backend/serenibook/services/scheduling/locks.py
"""
Critical sections for check-then-write.

Key format:
  lock:professional:{professional_id}   conflict check + booking write
  lock:capacity:{kind}:{record_id}      seat reservation + status write

Redis locks serialize handlers across processes. With no Redis client
(single-process SQLite, tests) the section is a plain no-op and
serialization is left to the database transaction.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from redis import Redis
from redis.exceptions import LockError

from ...config import settings
from .errors import SchedulingError

logger = logging.getLogger(__name__)

KEY_PREFIX = "lock"


class LockUnavailableError(SchedulingError):
    status_code = 503
    code = "lock_unavailable"


def professional_lock_key(professional_id: int) -> str:
    return f"{KEY_PREFIX}:professional:{professional_id}"


def capacity_lock_key(kind: str, record_id: int) -> str:
    return f"{KEY_PREFIX}:capacity:{kind}:{record_id}"


@contextmanager
def critical_section(redis: Optional[Redis], key: str) -> Iterator[None]:
    """Hold a Redis lock on `key` for the duration of the block."""
    if redis is None:
        yield
        return

    lock = redis.lock(
        key,
        timeout=settings.lock_timeout_seconds,
        blocking_timeout=settings.lock_blocking_timeout_seconds,
    )
    if not lock.acquire():
        logger.warning(f"Could not acquire {key} within {settings.lock_blocking_timeout_seconds}s")
        raise LockUnavailableError("Scheduling is busy for this calendar, please retry", key=key)
    try:
        yield
    finally:
        try:
            lock.release()
        except LockError:
            # Lock expired while held; the transaction has already finished
            logger.warning(f"Lock {key} expired before release")


def professional_lock(redis: Optional[Redis], professional_id: int):
    return critical_section(redis, professional_lock_key(professional_id))


def capacity_lock(redis: Optional[Redis], kind: str, record_id: int):
    return critical_section(redis, capacity_lock_key(kind, record_id))
