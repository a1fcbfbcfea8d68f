"""
ARQ background worker: run workflow orchestration for events queued by the API (DISPATCH_MODE=queue).
Completion is published to the API's activity log through Redis pub/sub.
"""

import logging
from dataclasses import replace

from arq import run_worker
from arq.connections import RedisSettings

from ticket_router.activity import publish_event
from ticket_router.config import LOG_LEVEL, REDIS_CONN_TIMEOUT, REDIS_URL
from ticket_router.models import NormalizedTicketEvent, WorkflowStatus
from ticket_router.services.orchestrator import build_orchestrator

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:
    ctx["orchestrator"] = build_orchestrator()
    logger.info("Worker orchestrator ready.")


async def shutdown(ctx: dict) -> None:
    orchestrator = ctx.get("orchestrator")
    if orchestrator is not None:
        await orchestrator.drain()


async def process_ticket_event(ctx: dict, payload: dict) -> dict:
    """ARQ job: validate the canonical event, run orchestration, publish the outcome."""
    event = NormalizedTicketEvent.model_validate(payload)
    orchestrator = ctx.get("orchestrator") or build_orchestrator()
    logger.info("Processing event %s (ticket %s)...", event.id, event.ticket.id)
    result = await orchestrator.process_webhook_event(event)
    kind = "workflow_completed" if result.status == WorkflowStatus.COMPLETED else "workflow_failed"
    publish_event(kind, {
        "execution_id": result.execution_id,
        "ticket_id": event.ticket.id,
        "agents": [r.value for r in result.agents_involved],
        "duration_ms": result.duration_ms,
        "error": result.error,
    })
    return result.model_dump(mode="json")


class WorkerSettings:
    functions = [process_ticket_event]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = replace(
        RedisSettings.from_dsn(REDIS_URL),
        conn_timeout=REDIS_CONN_TIMEOUT,
    )


if __name__ == "__main__":
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logger.info("Worker starting (Redis: %s).", REDIS_URL.split("@")[-1] if "@" in REDIS_URL else REDIS_URL)
    run_worker(WorkerSettings)
