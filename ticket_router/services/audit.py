"""
Audit trail for agent analyses, keyed by (ticket_id, kind).
Writes are detached: agents never wait for them and a failing store never fails routing.
Backends: in-memory (default) or Redis list audit:{ticket_id}:{kind}.
"""

import asyncio
import json
import logging
import threading
import time
from typing import Any, Optional, Protocol

from ticket_router.config import AUDIT_STORE, REDIS_URL
from ticket_router.tasks import DetachedTasks

logger = logging.getLogger(__name__)

AUDIT_PREFIX = "audit:"


class AuditStore(Protocol):
    def append(self, ticket_id: str, kind: str, entry: dict[str, Any]) -> None: ...

    def entries(self, ticket_id: str, kind: str) -> list[dict[str, Any]]: ...


class InMemoryAuditStore:
    """Process-local audit entries (tests and single-process deployments)."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def append(self, ticket_id: str, kind: str, entry: dict[str, Any]) -> None:
        with self._lock:
            self._entries.setdefault((ticket_id, kind), []).append(entry)

    def entries(self, ticket_id: str, kind: str) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._entries.get((ticket_id, kind), []))


class RedisAuditStore:
    """Audit entries as JSON strings in a Redis list per (ticket_id, kind)."""

    def __init__(self, redis_url: str = REDIS_URL):
        self._redis_url = redis_url
        self._client = None

    def _redis(self):
        import redis
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    @staticmethod
    def _key(ticket_id: str, kind: str) -> str:
        return f"{AUDIT_PREFIX}{ticket_id}:{kind}"

    def append(self, ticket_id: str, kind: str, entry: dict[str, Any]) -> None:
        self._redis().rpush(self._key(ticket_id, kind), json.dumps(entry, default=str))

    def entries(self, ticket_id: str, kind: str) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self._redis().lrange(self._key(ticket_id, kind), 0, -1)]


class AuditTrail:
    """Schedules best-effort audit writes as detached tasks."""

    def __init__(self, store: AuditStore, tasks: Optional[DetachedTasks] = None):
        self.store = store
        self.tasks = tasks or DetachedTasks()

    def record(self, ticket_id: str, kind: str, payload: dict[str, Any]) -> None:
        """Fire-and-forget write; must be called from a running event loop."""
        entry = {"ts": time.time(), "kind": kind, "data": payload}
        self.tasks.spawn(self._write(ticket_id, kind, entry), name=f"audit:{ticket_id}:{kind}")

    async def _write(self, ticket_id: str, kind: str, entry: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self.store.append, ticket_id, kind, entry)
        except Exception as e:
            logger.warning("Audit write failed for ticket %s (%s): %s", ticket_id, kind, e)

    async def drain(self) -> None:
        """Wait for outstanding audit writes (test hook)."""
        await self.tasks.drain()


def build_audit_store(kind: str = AUDIT_STORE) -> AuditStore:
    if kind == "redis":
        return RedisAuditStore()
    if kind != "memory":
        logger.warning("Unknown AUDIT_STORE %r; using in-memory audit store.", kind)
    return InMemoryAuditStore()
