"""
Event normalizer: source webhook payloads -> NormalizedTicketEvent.

Ticketing (helpdesk) payloads come in two shapes:
  webhook:      {"ticket": {...}, "eventType": "ticket.created"}
  event stream: {"type": "zen:event-type:ticket.created", "id": ..., "time": ..., "detail": {...}}
Task tracker payloads:
  {"webhook_id": ..., "event": "taskCreated", "task_id": ..., "task": {...}}

Unknown statuses/priorities map to the declared defaults (new/normal); a missing ticket id
or event type raises NormalizationError.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError

from ticket_router.errors import NormalizationError
from ticket_router.models import EventSource, NormalizedTicketEvent, Ticket, TicketPriority, TicketStatus, now_ms

logger = logging.getLogger(__name__)

EVENT_STREAM_PREFIX = "zen:event-type:"

# Task tracker priority ids: 1 is the most urgent.
TASK_PRIORITY_IDS = {
    "1": TicketPriority.URGENT,
    "2": TicketPriority.HIGH,
    "3": TicketPriority.NORMAL,
    "4": TicketPriority.LOW,
}

_PRIORITY_NAMES = frozenset(p.value for p in TicketPriority)

TASK_STATUS_TYPES = {
    "open": TicketStatus.OPEN,
    "custom": TicketStatus.OPEN,
    "done": TicketStatus.SOLVED,
    "closed": TicketStatus.CLOSED,
}


# --- Field helpers ---


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_id(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _tag_names(source: EventSource, value: Any) -> frozenset[str]:
    """Tag list of strings or {"name": ...} objects -> non-empty names."""
    if not value:
        return frozenset()
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise NormalizationError(source.value, "tags must be a list")
    names = (t.get("name") if isinstance(t, dict) else t for t in value)
    return frozenset(_text(n) for n in names if _text(n))


def map_ticket_status(value: Any) -> TicketStatus:
    try:
        return TicketStatus(_text(value).lower())
    except ValueError:
        return TicketStatus.NEW


def map_ticket_priority(value: Any) -> TicketPriority:
    try:
        return TicketPriority(_text(value).lower())
    except ValueError:
        return TicketPriority.NORMAL


def map_task_priority(value: Any) -> TicketPriority:
    """Task tracker priority: an object {"priority": name, "id": n}, a name, a numeric id, or null."""
    if isinstance(value, dict):
        by_name = _text(value.get("priority")).lower()
        if by_name in _PRIORITY_NAMES:
            return TicketPriority(by_name)
        return TASK_PRIORITY_IDS.get(_text(value.get("id")), TicketPriority.NORMAL)
    text = _text(value).lower()
    if text in _PRIORITY_NAMES:
        return TicketPriority(text)
    return TASK_PRIORITY_IDS.get(text, TicketPriority.NORMAL)


def map_task_status(value: Any) -> TicketStatus:
    """Task tracker status: by status.type, then by status name; unknown -> new."""
    if isinstance(value, dict):
        by_type = TASK_STATUS_TYPES.get(_text(value.get("type")).lower())
        if by_type is not None:
            return by_type
        value = value.get("status")
    name = _text(value).lower()
    if name in ("complete", "completed", "done"):
        return TicketStatus.SOLVED
    if name in ("in progress", "review", "open", "to do"):
        return TicketStatus.OPEN
    return map_ticket_status(name)


def _timestamp_ms(value: Any) -> int:
    """ISO-8601 string (naive means UTC) or epoch (s or ms) -> epoch ms; unparseable -> now."""
    if value is None or value == "" or isinstance(value, bool):
        return now_ms()
    if isinstance(value, float) and not math.isfinite(value):
        logger.debug("Non-finite event time %r; using now.", value)
        return now_ms()
    if isinstance(value, (int, float)) or _text(value).isdecimal():
        n = int(value)
        return n if n > 10**11 else n * 1000
    try:
        parsed = datetime.fromisoformat(_text(value).replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    except (ValueError, OverflowError):
        logger.debug("Unparseable event time %r; using now.", value)
        return now_ms()


def _build_event(source: EventSource, event_id: Any, event_type: str, timestamp: Any, **ticket: Any) -> NormalizedTicketEvent:
    ticket_id = _text(ticket.get("id"))
    if not ticket_id:
        raise NormalizationError(source.value, "missing ticket id")
    if not event_type:
        raise NormalizationError(source.value, "missing event type")
    if not ticket.get("subject"):
        ticket["subject"] = f"Ticket {ticket_id}"
    ticket["id"] = ticket_id
    try:
        return NormalizedTicketEvent(
            id=_text(event_id) or str(uuid4()),
            source=source,
            event_type=event_type,
            timestamp=_timestamp_ms(timestamp),
            ticket=Ticket(**ticket),
        )
    except ValidationError as e:
        raise NormalizationError(source.value, str(e)) from e


# --- Ticketing (helpdesk) ---


def normalize_ticketing_event(payload: Any, event_type: Optional[str] = None) -> NormalizedTicketEvent:
    """Helpdesk webhook or event-stream payload -> canonical event."""
    source = EventSource.TICKETING
    if not isinstance(payload, dict):
        raise NormalizationError(source.value, "payload must be a JSON object")

    stream_type = _text(payload.get("type"))
    if stream_type.startswith(EVENT_STREAM_PREFIX):
        raw = payload.get("detail")
        event_type = event_type or stream_type[len(EVENT_STREAM_PREFIX):]
        event_id = payload.get("id")
        timestamp = payload.get("time")
    else:
        raw = payload.get("ticket")
        event_type = event_type or _text(payload.get("eventType") or payload.get("event_type"))
        event_id = payload.get("id") or payload.get("event_id")
        timestamp = payload.get("timestamp")
    if not isinstance(raw, dict):
        raise NormalizationError(source.value, "missing ticket object")

    return _build_event(
        source,
        event_id,
        event_type,
        timestamp or raw.get("updated_at"),
        id=raw.get("id"),
        subject=_text(raw.get("subject")),
        description=_text(raw.get("description")),
        status=map_ticket_status(raw.get("status")),
        priority=map_ticket_priority(raw.get("priority")),
        tags=_tag_names(source, raw.get("tags")),
        requester_id=_optional_id(raw.get("requester_id")),
        assignee_id=_optional_id(raw.get("assignee_id")),
        created_at=_optional_id(raw.get("created_at")),
        updated_at=_optional_id(raw.get("updated_at")),
    )


# --- Task tracker ---


def normalize_task_tracker_event(payload: Any) -> NormalizedTicketEvent:
    """Task tracker webhook payload -> canonical event."""
    source = EventSource.TASK_TRACKER
    if not isinstance(payload, dict):
        raise NormalizationError(source.value, "payload must be a JSON object")
    task = payload.get("task") or {}
    if not isinstance(task, dict):
        raise NormalizationError(source.value, "task must be an object")

    assignees = task.get("assignees") or []
    if not isinstance(assignees, list):
        raise NormalizationError(source.value, "assignees must be a list")
    first_assignee = assignees[0] if assignees else None
    creator = task.get("creator") or {}
    return _build_event(
        source,
        payload.get("event_id") or payload.get("history_item_id"),
        _text(payload.get("event")),
        task.get("date_updated"),
        id=task.get("id") or payload.get("task_id"),
        subject=_text(task.get("name")),
        description=_text(task.get("description") or task.get("text_content")),
        status=map_task_status(task.get("status")),
        priority=map_task_priority(task.get("priority")),
        tags=_tag_names(source, task.get("tags")),
        requester_id=_optional_id(creator.get("id") if isinstance(creator, dict) else creator),
        assignee_id=_optional_id(first_assignee.get("id") if isinstance(first_assignee, dict) else first_assignee),
        created_at=_optional_id(task.get("date_created")),
        updated_at=_optional_id(task.get("date_updated")),
    )


def normalize_event(source: EventSource, payload: Any) -> NormalizedTicketEvent:
    if source == EventSource.TICKETING:
        return normalize_ticketing_event(payload)
    if source == EventSource.TASK_TRACKER:
        return normalize_task_tracker_event(payload)
    raise NormalizationError(str(source), "unsupported source")
