"""REST API for the ticket routing engine: webhooks acknowledge with 202, orchestration continues in the background."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, FastAPI, HTTPException

from ticket_router.activity import emit as activity_emit, get_recent as activity_get_recent, start_redis_subscriber
from ticket_router.config import DISPATCH_MODE, REDIS_URL
from ticket_router.errors import CapabilityNotFoundError, NormalizationError
from ticket_router.models import (
    AgentCapability,
    AgentRole,
    NormalizedTicketEvent,
    WebhookAccepted,
    WorkflowExecution,
    WorkflowMetrics,
    WorkflowResult,
    WorkflowStatus,
)
from ticket_router.normalizer import normalize_task_tracker_event, normalize_ticketing_event
from ticket_router.services.orchestrator import WorkflowOrchestrator, build_orchestrator
from ticket_router.tasks import DetachedTasks

logger = logging.getLogger(__name__)

_arq_pool = None
_orchestrator: Optional[WorkflowOrchestrator] = None
_inline_tasks = DetachedTasks()


def get_orchestrator() -> WorkflowOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _arq_pool
    _arq_pool = None
    get_orchestrator()
    if DISPATCH_MODE == "queue":
        try:
            from arq import create_pool
            from arq.connections import RedisSettings
            _arq_pool = await create_pool(RedisSettings.from_dsn(REDIS_URL))
        except Exception as e:
            logger.warning("Redis/ARQ pool unavailable: %s. Webhooks will return 503.", e)
        start_redis_subscriber()
    try:
        yield
    finally:
        await _inline_tasks.drain()
        await get_orchestrator().drain()
        if _arq_pool is not None:
            await _arq_pool.close()
            _arq_pool = None


app = FastAPI(
    title="Ticket Routing Engine",
    description="Routes helpdesk and task tracker events through a panel of specialist agents.",
    version="0.1.0",
    lifespan=lifespan,
)


# --- Dispatch ---


async def _run_inline(event: NormalizedTicketEvent, execution_id: str) -> None:
    result = await get_orchestrator().process_webhook_event(event, execution_id=execution_id)
    kind = "workflow_completed" if result.status == WorkflowStatus.COMPLETED else "workflow_failed"
    activity_emit(kind, {
        "execution_id": result.execution_id,
        "ticket_id": event.ticket.id,
        "agents": [r.value for r in result.agents_involved],
        "duration_ms": result.duration_ms,
    })


async def _dispatch(event: NormalizedTicketEvent) -> WebhookAccepted:
    """Hand the event to orchestration without waiting for it to finish."""
    if DISPATCH_MODE == "queue":
        pool = _arq_pool
        if pool is None:
            raise HTTPException(status_code=503, detail="Worker pool not ready")
        job = await pool.enqueue_job("process_ticket_event", event.model_dump(mode="json"))
        job_id = job.job_id if job else str(uuid4())
        activity_emit("webhook_accepted", {"event_id": event.id, "ticket_id": event.ticket.id, "job_id": job_id})
        return WebhookAccepted(event_id=event.id, ticket_id=event.ticket.id, job_id=job_id)

    execution_id = str(uuid4())
    _inline_tasks.spawn(_run_inline(event, execution_id), name=f"workflow:{execution_id}")
    activity_emit("webhook_accepted", {
        "event_id": event.id, "ticket_id": event.ticket.id, "execution_id": execution_id,
    })
    return WebhookAccepted(event_id=event.id, ticket_id=event.ticket.id, execution_id=execution_id)


# --- Webhooks ---


@app.post("/webhooks/ticketing", status_code=202, response_model=WebhookAccepted)
async def ticketing_webhook(
    payload: dict[str, Any] = Body(...),
    event_type: Optional[str] = None,
) -> WebhookAccepted:
    """Helpdesk webhook (ticket object or event-stream shape). 400 if the payload cannot be normalized."""
    try:
        event = normalize_ticketing_event(payload, event_type=event_type)
    except NormalizationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _dispatch(event)


@app.post("/webhooks/task-tracker", status_code=202, response_model=WebhookAccepted)
async def task_tracker_webhook(payload: dict[str, Any] = Body(...)) -> WebhookAccepted:
    """Task tracker webhook. 400 if the payload cannot be normalized."""
    try:
        event = normalize_task_tracker_event(payload)
    except NormalizationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _dispatch(event)


# --- Workflows ---


@app.post("/workflows/run", response_model=WorkflowResult)
async def run_workflow(event: NormalizedTicketEvent, initial_role: Optional[AgentRole] = None) -> WorkflowResult:
    """Run orchestration synchronously for a canonical event and return the result."""
    return await get_orchestrator().process_webhook_event(event, initial_role=initial_role)


@app.get("/workflows/active", response_model=list[WorkflowExecution])
def active_workflows() -> list[WorkflowExecution]:
    return get_orchestrator().get_active_workflows()


@app.get("/workflows/metrics", response_model=WorkflowMetrics)
def workflow_metrics() -> WorkflowMetrics:
    return get_orchestrator().get_workflow_metrics()


@app.get("/workflows/{execution_id}", response_model=WorkflowExecution)
def get_workflow(execution_id: str) -> WorkflowExecution:
    execution = get_orchestrator().get_execution(execution_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    return execution


# --- Agents ---


@app.get("/agents", response_model=list[AgentCapability])
def list_agents() -> list[AgentCapability]:
    """Configured agent capabilities, preferred first."""
    return get_orchestrator().registry.capabilities()


@app.get("/agents/{role}", response_model=AgentCapability)
def get_agent(role: str) -> AgentCapability:
    try:
        return get_orchestrator().registry.get_capability(AgentRole(role.upper()))
    except (ValueError, CapabilityNotFoundError):
        raise HTTPException(status_code=404, detail="Agent role not found")


@app.get("/activity")
def get_activity(limit: int = 100) -> dict:
    """Recent routing activity (webhooks accepted, workflows completed/failed)."""
    if limit < 1 or limit > 200:
        limit = 100
    return {"events": activity_get_recent(limit=limit)}


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "dispatch_mode": DISPATCH_MODE}
