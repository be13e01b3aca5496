"""Domain events for form and response lifecycle changes.

Write flows publish exactly one event after their transaction commits, so a
rolled-back operation never produces one. Events go to the log and to a
bounded in-memory buffer that tests and local tooling can drain.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Deque, Dict, List

from formbuilder.logic.timestamps import utc_now

logger = logging.getLogger(__name__)

FORM_CREATED = "form.created"
FORM_UPDATED = "form.updated"
FORM_DELETED = "form.deleted"
FORM_PUBLICATION_CHANGED = "form.publication_changed"
RESPONSE_SUBMITTED = "response.submitted"

EVENT_TYPES = frozenset({FORM_CREATED, FORM_UPDATED, FORM_DELETED, FORM_PUBLICATION_CHANGED, RESPONSE_SUBMITTED})

_BUFFER_LIMIT = 1000
EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=_BUFFER_LIMIT)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    if event_type not in EVENT_TYPES:
        raise ValueError(f"unknown event type: {event_type}")
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": dict(payload), "occurred_at": utc_now()})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Drain (or peek at) the buffered events, oldest first."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "EVENT_TYPES",
    "FORM_CREATED",
    "FORM_DELETED",
    "FORM_PUBLICATION_CHANGED",
    "FORM_UPDATED",
    "RESPONSE_SUBMITTED",
    "get_buffered_events",
    "publish",
]
