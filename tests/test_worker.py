"""
Tests for the arq job function (no Redis required: orchestrator and publisher are injected).
Run: pytest tests/test_worker.py -v
"""

import asyncio

import pytest

from ticket_router import worker
from ticket_router.services.audit import AuditTrail, InMemoryAuditStore
from ticket_router.services.execution_store import InMemoryExecutionStore
from ticket_router.services.metrics import MetricsRecorder
from ticket_router.services.orchestrator import build_orchestrator


@pytest.fixture
def published(monkeypatch):
    events = []
    monkeypatch.setattr(worker, "publish_event", lambda kind, data: events.append((kind, data)))
    return events


def _ctx(**kwargs):
    return {
        "orchestrator": build_orchestrator(
            store=InMemoryExecutionStore(),
            metrics=MetricsRecorder(),
            audit=AuditTrail(InMemoryAuditStore()),
            **kwargs,
        )
    }


PAYLOAD = {
    "id": "evt-7",
    "source": "task_tracker",
    "event_type": "taskCreated",
    "timestamp": 1704103500000,
    "ticket": {"id": "cu-7", "subject": "Docker deployment on AWS cloud server failing", "description": "kubernetes monitoring", "tags": ["infra"]},
}


def test_job_runs_workflow_and_publishes(published):
    ctx = _ctx()

    async def run():
        result = await worker.process_ticket_event(ctx, PAYLOAD)
        await worker.shutdown(ctx)
        return result

    result = asyncio.run(run())
    assert result["status"] == "completed"
    assert result["agents_involved"][0] == "DEVOPS"
    assert published[0][0] == "workflow_completed"
    assert published[0][1]["ticket_id"] == "cu-7"
    assert published[0][1]["error"] is None
    assert ctx["orchestrator"].get_execution(result["execution_id"]) is not None


def test_failed_workflow_published_as_failure(published):
    result = asyncio.run(worker.process_ticket_event(_ctx(agents={}), PAYLOAD))
    assert result["status"] == "failed"
    assert published[0][0] == "workflow_failed"
    assert published[0][1]["error"]


def test_invalid_payload_raises(published):
    with pytest.raises(ValueError):
        asyncio.run(worker.process_ticket_event(_ctx(), {"id": "evt-8"}))
    assert published == []


def test_worker_settings():
    assert worker.process_ticket_event in worker.WorkerSettings.functions
    assert worker.WorkerSettings.redis_settings.conn_timeout == worker.REDIS_CONN_TIMEOUT
