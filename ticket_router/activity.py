"""
In-memory activity log for routing events (webhook accepted, workflow completed/failed).
Queue workers publish through Redis pub/sub; the API subscribes in a background thread.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

from ticket_router.config import ACTIVITY_MAX_EVENTS, REDIS_URL

logger = logging.getLogger(__name__)

ACTIVITY_CHANNEL = "workflow_activity"


@dataclass
class ActivityEvent:
    ts: float = field(default_factory=time.time)
    type: str = ""
    data: dict[str, Any] = field(default_factory=dict)


_events: list[ActivityEvent] = []
_lock = threading.Lock()


def emit(event_type: str, data: dict[str, Any] | None = None) -> None:
    """Append an event to the local activity log."""
    with _lock:
        _events.append(ActivityEvent(type=event_type, data=data or {}))
        if len(_events) > ACTIVITY_MAX_EVENTS:
            del _events[: len(_events) - ACTIVITY_MAX_EVENTS]


def get_recent(limit: int = 100) -> list[dict]:
    """Most recent events, newest last."""
    with _lock:
        return [{"ts": e.ts, "type": e.type, "data": e.data} for e in _events[-limit:]]


def clear() -> None:
    with _lock:
        _events.clear()


def _redis_subscriber_thread() -> None:
    """Daemon thread: append events published by workers."""
    try:
        import redis
        r = redis.from_url(REDIS_URL, decode_responses=True)
        pubsub = r.pubsub()
        pubsub.subscribe(ACTIVITY_CHANNEL)
        logger.info("Activity subscriber listening on channel %s", ACTIVITY_CHANNEL)
        for message in pubsub.listen():
            if message["type"] != "message":
                continue
            try:
                payload = json.loads(message["data"])
                emit(payload.get("type", "workflow_event"), payload.get("data", payload))
            except (ValueError, AttributeError) as e:
                logger.warning("Activity message parse error: %s", e)
    except Exception as e:
        logger.warning("Activity Redis subscriber failed: %s", e)


def start_redis_subscriber() -> threading.Thread:
    t = threading.Thread(target=_redis_subscriber_thread, name="activity-subscriber", daemon=True)
    t.start()
    return t


def publish_event(event_type: str, data: dict[str, Any]) -> None:
    """Publish to Redis (worker side); never raises."""
    try:
        import redis
        r = redis.from_url(REDIS_URL, decode_responses=True)
        r.publish(ACTIVITY_CHANNEL, json.dumps({"type": event_type, "data": data}))
    except Exception as e:
        logger.warning("Activity publish failed: %s", e)
