"""
Workflow orchestrator: drives one execution per inbound event.

PENDING -> RUNNING -> (select agent -> analyze -> handoff decision)* -> COMPLETED | FAILED

The first agent comes from the selector (or the caller's initial_role, or the fallback role
when nothing clears the floor); later agents are the handoff targets accepted by the
controller. process_webhook_event never raises: failures end as FAILED results.
"""

import asyncio
import logging
import time
from typing import Mapping, Optional
from uuid import uuid4

from ticket_router.agents.factory import TicketAgent, build_agents
from ticket_router.config import FALLBACK_ROLE, MAX_HANDOFFS, WORKFLOW_ID
from ticket_router.errors import AgentTimeoutError, OrchestrationError
from ticket_router.models import (
    AgentAnalysis,
    AgentRole,
    NormalizedTicketEvent,
    Ticket,
    WorkflowExecution,
    WorkflowMetrics,
    WorkflowResult,
    WorkflowStatus,
)
from ticket_router.services.agent_selector import AgentSelector
from ticket_router.services.audit import AuditTrail, build_audit_store
from ticket_router.services.capability_registry import CapabilityRegistry, get_registry
from ticket_router.services.execution_store import ExecutionStore, build_execution_store
from ticket_router.services.handoff import HandoffAction, HandoffController
from ticket_router.services.metrics import MetricsRecorder, get_metrics

logger = logging.getLogger(__name__)


def merge_recommendations(history: list[AgentAnalysis]) -> list[str]:
    """Order-preserving, de-duplicated union of every analysis' recommended actions."""
    seen: set[str] = set()
    merged: list[str] = []
    for analysis in history:
        for action in analysis.recommended_actions:
            if action not in seen:
                seen.add(action)
                merged.append(action)
    return merged


class WorkflowOrchestrator:
    def __init__(
        self,
        registry: CapabilityRegistry,
        agents: Mapping[AgentRole, TicketAgent],
        selector: AgentSelector,
        controller: HandoffController,
        metrics: MetricsRecorder,
        store: ExecutionStore,
        audit: Optional[AuditTrail] = None,
        workflow_id: str = WORKFLOW_ID,
        fallback_role: AgentRole = AgentRole(FALLBACK_ROLE),
    ):
        self.registry = registry
        self.agents = dict(agents)
        self.selector = selector
        self.controller = controller
        self.metrics = metrics
        self.store = store
        self.audit = audit
        self.workflow_id = workflow_id
        self.fallback_role = fallback_role

    # --- Public API ---

    async def process_webhook_event(
        self,
        event: NormalizedTicketEvent,
        *,
        initial_role: Optional[AgentRole] = None,
        execution_id: Optional[str] = None,
    ) -> WorkflowResult:
        """Run the routing workflow for one event and return its result (never raises)."""
        started = time.monotonic()
        execution = WorkflowExecution(
            execution_id=execution_id or str(uuid4()),
            workflow_id=self.workflow_id,
            trigger_data=event,
        )
        handoffs = 0
        logger.info(
            "Execution %s started for %s event %s (ticket %s).",
            execution.execution_id, event.source.value, event.event_type, event.ticket.id,
        )
        try:
            await self._persist(execution)
            execution.transition(WorkflowStatus.RUNNING)
            await self._persist(execution)

            role = initial_role or self._first_role(event.ticket)
            while True:
                analysis = await self._run_step(role, event.ticket)
                execution.record(analysis)
                await self._persist(execution)

                decision = self.controller.next_step(execution, analysis)
                if decision.action == HandoffAction.STOP:
                    execution.stop_reason = decision.reason
                    break
                logger.info(
                    "Execution %s: handoff %s -> %s.",
                    execution.execution_id, role.value, decision.next_role.value,
                )
                role = decision.next_role
                handoffs += 1

            execution.final_recommendations = merge_recommendations(execution.analysis_history)
            execution.transition(WorkflowStatus.COMPLETED)
        except Exception as e:
            logger.exception("Execution %s failed: %s", execution.execution_id, e)
            execution.error = str(e) or type(e).__name__
            execution.final_recommendations = merge_recommendations(execution.analysis_history)
            if execution.status == WorkflowStatus.PENDING:
                execution.transition(WorkflowStatus.RUNNING)
            if not execution.is_terminal:
                execution.transition(WorkflowStatus.FAILED)

        result = self._build_result(execution, handoffs, started)
        self.metrics.record(result)
        try:
            await self._persist(execution)
        except Exception as e:
            logger.warning("Could not persist final state of execution %s: %s", execution.execution_id, e)
        logger.info(
            "Execution %s %s in %dms (agents=%s, stop=%s).",
            execution.execution_id, result.status.value, result.duration_ms,
            [r.value for r in result.agents_involved],
            result.stop_reason.value if result.stop_reason else None,
        )
        return result

    def get_active_workflows(self) -> list[WorkflowExecution]:
        """Executions currently RUNNING."""
        return self.store.list_running()

    def get_workflow_metrics(self) -> WorkflowMetrics:
        return self.metrics.snapshot()

    def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        return self.store.get(execution_id)

    async def drain(self) -> None:
        """Wait for detached audit writes scheduled by agents (tests, shutdown)."""
        if self.audit is not None:
            await self.audit.drain()

    # --- Steps ---

    def _first_role(self, ticket: Ticket) -> AgentRole:
        role = self.selector.select(ticket)
        if role is None:
            logger.info("No specialist cleared the floor for ticket %s; using %s.", ticket.id, self.fallback_role.value)
            return self.fallback_role
        return role

    async def _run_step(self, role: AgentRole, ticket: Ticket) -> AgentAnalysis:
        agent = self.agents.get(role)
        if agent is None:
            raise OrchestrationError(f"No agent implementation registered for {role.value}")
        budget_ms = self.registry.get_capability(role).max_processing_time_ms
        try:
            analysis = await asyncio.wait_for(agent.analyze(ticket), timeout=budget_ms / 1000)
        except asyncio.TimeoutError:
            err = AgentTimeoutError(role.value, budget_ms)
            logger.warning("Ticket %s: %s", ticket.id, err)
            return AgentAnalysis.timeout(role, ticket, budget_ms)

        suggestion = analysis.next_agent or agent.should_handoff(ticket)
        if suggestion != analysis.next_agent:
            analysis = analysis.model_copy(update={"next_agent": suggestion})
        return analysis

    async def _persist(self, execution: WorkflowExecution) -> None:
        await asyncio.to_thread(self.store.save, execution)

    def _build_result(self, execution: WorkflowExecution, handoffs: int, started: float) -> WorkflowResult:
        history = execution.analysis_history
        confidence = sum(a.confidence for a in history) / len(history) if history else 0.0
        return WorkflowResult(
            execution_id=execution.execution_id,
            workflow_id=execution.workflow_id,
            status=execution.status,
            final_recommendations=list(execution.final_recommendations),
            agents_involved=list(execution.visited_agents),
            analysis_history=list(history),
            duration_ms=int((time.monotonic() - started) * 1000),
            handoff_count=handoffs,
            confidence=min(confidence, 1.0),
            stop_reason=execution.stop_reason,
            error=execution.error,
        )


def build_orchestrator(
    registry: Optional[CapabilityRegistry] = None,
    *,
    store: Optional[ExecutionStore] = None,
    audit: Optional[AuditTrail] = None,
    metrics: Optional[MetricsRecorder] = None,
    max_handoffs: int = MAX_HANDOFFS,
    agents: Optional[Mapping[AgentRole, TicketAgent]] = None,
) -> WorkflowOrchestrator:
    """Wire an orchestrator from config defaults; any collaborator can be injected."""
    registry = registry or get_registry()
    selector = AgentSelector(registry)
    audit = audit or AuditTrail(build_audit_store())
    if agents is None:
        agents = build_agents(registry, audit, selector)
    return WorkflowOrchestrator(
        registry=registry,
        agents=agents,
        selector=selector,
        controller=HandoffController(max_handoffs),
        metrics=metrics or get_metrics(),
        store=store if store is not None else build_execution_store(),
        audit=audit,
    )
