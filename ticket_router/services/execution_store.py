"""
Workflow execution records, retrievable by execution_id.
In-memory (default) or Redis: workflow_execution:{id} (JSON) plus a set of RUNNING ids.
"""

import logging
import threading
from typing import Optional, Protocol

from ticket_router.config import EXECUTION_STORE, REDIS_URL
from ticket_router.models import WorkflowExecution, WorkflowStatus

logger = logging.getLogger(__name__)

EXECUTION_PREFIX = "workflow_execution:"
RUNNING_SET = "workflow_execution:running"


class ExecutionStore(Protocol):
    def save(self, execution: WorkflowExecution) -> None: ...

    def get(self, execution_id: str) -> Optional[WorkflowExecution]: ...

    def list_running(self) -> list[WorkflowExecution]: ...


class InMemoryExecutionStore:
    def __init__(self) -> None:
        self._executions: dict[str, WorkflowExecution] = {}
        self._lock = threading.Lock()

    def save(self, execution: WorkflowExecution) -> None:
        # Store a copy so later in-place mutation by the orchestrator is only visible after the next save.
        with self._lock:
            self._executions[execution.execution_id] = execution.model_copy(deep=True)

    def get(self, execution_id: str) -> Optional[WorkflowExecution]:
        with self._lock:
            found = self._executions.get(execution_id)
            return found.model_copy(deep=True) if found else None

    def list_running(self) -> list[WorkflowExecution]:
        with self._lock:
            return [
                e.model_copy(deep=True)
                for e in self._executions.values()
                if e.status == WorkflowStatus.RUNNING
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._executions)


class RedisExecutionStore:
    """Shared store so the API can see executions run by queue workers."""

    def __init__(self, redis_url: str = REDIS_URL):
        self._redis_url = redis_url
        self._client = None

    def _redis(self):
        import redis
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    @staticmethod
    def _key(execution_id: str) -> str:
        return f"{EXECUTION_PREFIX}{execution_id}"

    def save(self, execution: WorkflowExecution) -> None:
        r = self._redis()
        pipe = r.pipeline()
        pipe.set(self._key(execution.execution_id), execution.model_dump_json())
        if execution.status == WorkflowStatus.RUNNING:
            pipe.sadd(RUNNING_SET, execution.execution_id)
        else:
            pipe.srem(RUNNING_SET, execution.execution_id)
        pipe.execute()

    def get(self, execution_id: str) -> Optional[WorkflowExecution]:
        raw = self._redis().get(self._key(execution_id))
        if not raw:
            return None
        return WorkflowExecution.model_validate_json(raw)

    def list_running(self) -> list[WorkflowExecution]:
        r = self._redis()
        out = []
        for execution_id in r.smembers(RUNNING_SET):
            raw = r.get(self._key(execution_id))
            if not raw:
                r.srem(RUNNING_SET, execution_id)
                continue
            try:
                out.append(WorkflowExecution.model_validate_json(raw))
            except ValueError as e:
                logger.warning("Skipping unreadable execution %s: %s", execution_id, e)
        return sorted(out, key=lambda e: e.started_at)


def build_execution_store(kind: str = EXECUTION_STORE) -> ExecutionStore:
    if kind == "redis":
        return RedisExecutionStore()
    if kind != "memory":
        logger.warning("Unknown EXECUTION_STORE %r; using in-memory store.", kind)
    return InMemoryExecutionStore()
