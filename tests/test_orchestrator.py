"""
Workflow orchestration tests: agent selection, handoff chains, stop reasons, failures and metrics.
Run: pytest tests/test_orchestrator.py -v
"""

import asyncio

import pytest

from ticket_router.models import (
    AgentAnalysis,
    AgentRole,
    Complexity,
    EventSource,
    NormalizedTicketEvent,
    StopReason,
    Ticket,
    TicketPriority,
    WorkflowStatus,
)
from ticket_router.services.audit import AuditTrail, InMemoryAuditStore
from ticket_router.services.capability_registry import CapabilityRegistry
from ticket_router.services.execution_store import InMemoryExecutionStore
from ticket_router.services.metrics import MetricsRecorder
from ticket_router.services.orchestrator import build_orchestrator, merge_recommendations


def _event(subject, description="", ticket_id="T-100", priority=TicketPriority.NORMAL):
    return NormalizedTicketEvent(
        id=f"evt-{ticket_id}",
        source=EventSource.TICKETING,
        event_type="ticket.created",
        ticket=Ticket(id=ticket_id, subject=subject, description=description, priority=priority),
    )


class StubAgent:
    """Scripted agent: fixed suggestion, optional delay or failure."""

    def __init__(self, role, next_agent=None, delay=0.0, error=None, actions=(), confidence=0.5, handoff=None):
        self.role = role
        self.capability = CapabilityRegistry().get_capability(role)
        self.next_agent = next_agent
        self.handoff = handoff
        self.delay = delay
        self.error = error
        self.actions = list(actions) or [f"{role.value} action"]
        self.confidence = confidence
        self.calls = 0

    def can_handle(self, ticket):
        return True

    async def analyze(self, ticket):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AgentAnalysis(
            agent_role=self.role,
            confidence=self.confidence,
            complexity=Complexity.MEDIUM,
            priority=ticket.priority,
            estimated_time="1 hour",
            recommended_actions=self.actions,
            next_agent=self.next_agent,
        )

    def should_handoff(self, ticket):
        return self.handoff


@pytest.fixture
def store():
    return InMemoryExecutionStore()


@pytest.fixture
def metrics():
    return MetricsRecorder()


@pytest.fixture
def audit_store():
    return InMemoryAuditStore()


@pytest.fixture
def orchestrator(store, metrics, audit_store):
    return build_orchestrator(store=store, metrics=metrics, audit=AuditTrail(audit_store))


def _run(orchestrator, event, **kwargs):
    async def run():
        result = await orchestrator.process_webhook_event(event, **kwargs)
        await orchestrator.drain()
        return result
    return asyncio.run(run())


def _stubbed(store, metrics, *stubs, registry=None, max_handoffs=3):
    return build_orchestrator(
        registry,
        store=store,
        metrics=metrics,
        audit=AuditTrail(InMemoryAuditStore()),
        max_handoffs=max_handoffs,
        agents={stub.role: stub for stub in stubs},
    )


class TestRouting:
    def test_cms_ticket_single_agent(self, orchestrator, audit_store):
        event = _event("WordPress plugin conflict causing checkout errors on WooCommerce", ticket_id="T-wp")
        result = _run(orchestrator, event)
        assert result.status == WorkflowStatus.COMPLETED
        assert result.agents_involved == [AgentRole.WORDPRESS_DEVELOPER]
        assert result.handoff_count == 0
        assert result.stop_reason == StopReason.TERMINAL
        assert len(result.final_recommendations) == 3
        assert result.analysis_history[0].complexity == Complexity.MEDIUM
        assert len(audit_store.entries("T-wp", "wordpress_analysis")) == 1

    def test_initial_role_with_handoff_to_engineer(self, orchestrator):
        event = _event("custom API development needed, database design required")
        result = _run(orchestrator, event, initial_role=AgentRole.WORDPRESS_DEVELOPER)
        assert result.status == WorkflowStatus.COMPLETED
        assert result.agents_involved == [AgentRole.WORDPRESS_DEVELOPER, AgentRole.SOFTWARE_ENGINEER]
        assert result.handoff_count == 1
        assert result.stop_reason == StopReason.TERMINAL
        assert "Solutions: Collaborate with software engineer for development" in result.final_recommendations
        assert "Investigate reported technical symptoms" in result.final_recommendations

    def test_weak_match_falls_back_to_coordinator(self, orchestrator):
        event = _event("custom API development needed, database design required")
        result = _run(orchestrator, event)
        assert result.agents_involved == [AgentRole.PROJECT_MANAGER]

    def test_no_keywords_uses_coordinator(self, orchestrator):
        result = _run(orchestrator, _event("Hello", "just saying hi"))
        assert result.status == WorkflowStatus.COMPLETED
        assert result.agents_involved == [AgentRole.PROJECT_MANAGER]
        assert result.stop_reason == StopReason.TERMINAL
        assert len(result.final_recommendations) == 3

    def test_execution_id_is_honoured(self, orchestrator, store):
        result = _run(orchestrator, _event("Hello"), execution_id="exec-fixed")
        assert result.execution_id == "exec-fixed"
        saved = store.get("exec-fixed")
        assert saved.status == WorkflowStatus.COMPLETED
        assert saved.completed_at is not None
        assert saved.trigger_data.ticket.subject == "Hello"


class TestStopReasons:
    def test_cycle_stops_before_revisit(self, store, metrics):
        devops = StubAgent(AgentRole.DEVOPS, next_agent=AgentRole.QA_TESTER)
        qa = StubAgent(AgentRole.QA_TESTER, next_agent=AgentRole.DEVOPS)
        orchestrator = _stubbed(store, metrics, devops, qa)
        result = _run(orchestrator, _event("loop"), initial_role=AgentRole.DEVOPS)
        assert result.status == WorkflowStatus.COMPLETED
        assert result.agents_involved == [AgentRole.DEVOPS, AgentRole.QA_TESTER]
        assert result.stop_reason == StopReason.CYCLE_DETECTED
        assert result.handoff_count == 1
        assert devops.calls == 1

    def test_cycle_through_should_handoff(self, store, metrics):
        devops = StubAgent(AgentRole.DEVOPS, handoff=AgentRole.QA_TESTER)
        qa = StubAgent(AgentRole.QA_TESTER, handoff=AgentRole.DEVOPS)
        orchestrator = _stubbed(store, metrics, devops, qa)
        result = _run(orchestrator, _event("loop"), initial_role=AgentRole.DEVOPS)
        assert result.agents_involved == [AgentRole.DEVOPS, AgentRole.QA_TESTER]
        assert result.stop_reason == StopReason.CYCLE_DETECTED
        # The suggestion is stamped on the recorded analysis.
        assert result.analysis_history[0].next_agent == AgentRole.QA_TESTER
        assert result.analysis_history[1].next_agent == AgentRole.DEVOPS

    def test_depth_bound(self, store, metrics):
        chain = [
            StubAgent(AgentRole.SOFTWARE_ENGINEER, next_agent=AgentRole.WORDPRESS_DEVELOPER),
            StubAgent(AgentRole.WORDPRESS_DEVELOPER, next_agent=AgentRole.DEVOPS),
            StubAgent(AgentRole.DEVOPS, next_agent=AgentRole.QA_TESTER),
            StubAgent(AgentRole.QA_TESTER),
        ]
        orchestrator = _stubbed(store, metrics, *chain, max_handoffs=3)
        result = _run(orchestrator, _event("chain"), initial_role=AgentRole.SOFTWARE_ENGINEER)
        assert result.agents_involved == [
            AgentRole.SOFTWARE_ENGINEER, AgentRole.WORDPRESS_DEVELOPER, AgentRole.DEVOPS,
        ]
        assert result.stop_reason == StopReason.DEPTH_EXCEEDED
        assert result.handoff_count == 2
        assert chain[3].calls == 0

    def test_timeout_records_placeholder_and_stops(self, store, metrics):
        base = CapabilityRegistry()
        fast = base.get_capability(AgentRole.DEVOPS).model_copy(update={"max_processing_time_ms": 5})
        registry = base.with_overrides([fast])
        slow = StubAgent(AgentRole.DEVOPS, next_agent=AgentRole.QA_TESTER, delay=1.0)
        qa = StubAgent(AgentRole.QA_TESTER)
        orchestrator = _stubbed(store, metrics, slow, qa, registry=registry)
        result = _run(orchestrator, _event("slow", priority=TicketPriority.HIGH), initial_role=AgentRole.DEVOPS)
        assert result.status == WorkflowStatus.COMPLETED
        assert result.stop_reason == StopReason.TIMEOUT
        assert result.agents_involved == [AgentRole.DEVOPS]
        placeholder = result.analysis_history[0]
        assert placeholder.timed_out
        assert placeholder.confidence == 0.0
        assert placeholder.priority == TicketPriority.HIGH
        assert placeholder.estimated_time == "unknown"
        assert qa.calls == 0
        assert metrics.snapshot().agent_utilization[AgentRole.DEVOPS].timeouts == 1


class TestFailures:
    def test_agent_exception_ends_failed(self, store, metrics):
        first = StubAgent(AgentRole.DEVOPS, next_agent=AgentRole.QA_TESTER, actions=["restart service"])
        broken = StubAgent(AgentRole.QA_TESTER, error=RuntimeError("boom"))
        orchestrator = _stubbed(store, metrics, first, broken)
        result = _run(orchestrator, _event("x"), initial_role=AgentRole.DEVOPS)
        assert result.status == WorkflowStatus.FAILED
        assert result.error == "boom"
        assert result.agents_involved == [AgentRole.DEVOPS]
        assert result.final_recommendations == ["restart service"]
        assert store.get(result.execution_id).status == WorkflowStatus.FAILED

    def test_missing_agent_implementation(self, store, metrics):
        orchestrator = _stubbed(store, metrics)
        result = _run(orchestrator, _event("x"), initial_role=AgentRole.DEVOPS)
        assert result.status == WorkflowStatus.FAILED
        assert "No agent implementation registered for DEVOPS" in result.error
        assert result.agents_involved == []

    def test_failed_store_write_still_returns_result(self, metrics):
        class BrokenStore(InMemoryExecutionStore):
            def save(self, execution):
                raise ConnectionError("store down")

        orchestrator = build_orchestrator(store=BrokenStore(), metrics=metrics, audit=AuditTrail(InMemoryAuditStore()))
        result = _run(orchestrator, _event("Hello"))
        assert result.status == WorkflowStatus.FAILED
        assert result.error == "store down"
        assert metrics.snapshot().failed_executions == 1


class TestMetricsAndState:
    def test_metrics_accumulate(self, orchestrator, metrics):
        _run(orchestrator, _event("WordPress plugin conflict", ticket_id="T-1"))
        _run(
            orchestrator,
            _event("custom API development needed, database design required", ticket_id="T-2"),
            initial_role=AgentRole.WORDPRESS_DEVELOPER,
        )
        snap = orchestrator.get_workflow_metrics()
        assert snap.total_executions == 2
        assert snap.successful_executions == 2
        assert snap.error_rate == 0.0
        assert snap.handoff_count == 1
        assert snap.min_duration_ms <= snap.average_duration_ms <= snap.max_duration_ms
        assert snap.agent_utilization[AgentRole.WORDPRESS_DEVELOPER].tasks_handled == 2
        assert snap.agent_utilization[AgentRole.SOFTWARE_ENGINEER].tasks_handled == 1
        assert snap.last_updated is not None

    def test_snapshot_is_a_copy(self, orchestrator):
        _run(orchestrator, _event("Hello"))
        snap = orchestrator.get_workflow_metrics()
        snap.total_executions = 99
        assert orchestrator.get_workflow_metrics().total_executions == 1

    def test_active_only_while_running(self, store, metrics):
        seen = []

        class WatchingAgent(StubAgent):
            async def analyze(self, ticket):
                seen.extend(e.execution_id for e in orchestrator.get_active_workflows())
                return await super().analyze(ticket)

        orchestrator = _stubbed(store, metrics, WatchingAgent(AgentRole.DEVOPS))
        result = _run(orchestrator, _event("x"), initial_role=AgentRole.DEVOPS)
        assert seen == [result.execution_id]
        assert orchestrator.get_active_workflows() == []

    def test_result_confidence_is_mean(self, store, metrics):
        orchestrator = _stubbed(
            store,
            metrics,
            StubAgent(AgentRole.DEVOPS, next_agent=AgentRole.QA_TESTER, confidence=0.4),
            StubAgent(AgentRole.QA_TESTER, confidence=0.8),
        )
        result = _run(orchestrator, _event("x"), initial_role=AgentRole.DEVOPS)
        assert result.confidence == pytest.approx(0.6)


class TestMergeRecommendations:
    def test_union_keeps_first_occurrence_order(self):
        def analysis(role, actions):
            return AgentAnalysis(
                agent_role=role,
                confidence=0.5,
                complexity=Complexity.SIMPLE,
                priority=TicketPriority.NORMAL,
                estimated_time="1 hour",
                recommended_actions=actions,
            )

        history = [
            analysis(AgentRole.DEVOPS, ["check logs", "restart"]),
            analysis(AgentRole.QA_TESTER, ["restart", "add regression test"]),
        ]
        assert merge_recommendations(history) == ["check logs", "restart", "add regression test"]
        assert merge_recommendations([]) == []
