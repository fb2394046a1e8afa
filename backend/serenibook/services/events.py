"""
backend/serenibook/services/events.py

Event emitter: pushes scheduling events to a Redis queue for notifiers.

The engine never sends emails itself; consumers of `events:p2p` do.

Event types:
- booking_created, booking_status_changed, booking_cancelled
- booking_rescheduled, booking_deleted
- blocked_time_created
- recurrence_expanded
- group_session_scheduled, group_registration_changed
- professional_suspended
"""

import json
import time
import logging

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the consumer loop.
    Failures are logged and never propagate to the request.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(P2P_QUEUE, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
