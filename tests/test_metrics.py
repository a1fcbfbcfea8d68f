"""
Unit tests for the workflow metrics recorder (no server required).
Run: pytest tests/test_metrics.py -v
"""

import pytest

from ticket_router.models import AgentAnalysis, AgentRole, Complexity, TicketPriority, WorkflowResult, WorkflowStatus
from ticket_router.services.metrics import MetricsRecorder, get_metrics, reset_metrics


def _result(status, duration_ms, handoffs=0, analyses=()):
    return WorkflowResult(
        execution_id=f"x-{duration_ms}",
        workflow_id="ticket_routing",
        status=status,
        duration_ms=duration_ms,
        handoff_count=handoffs,
        analysis_history=list(analyses),
    )


def _analysis(role, confidence, timed_out=False):
    return AgentAnalysis(
        agent_role=role,
        confidence=confidence,
        complexity=Complexity.MEDIUM,
        priority=TicketPriority.NORMAL,
        estimated_time="1 hour",
        timed_out=timed_out,
    )


class TestMetricsRecorder:
    def test_empty_snapshot(self):
        snap = MetricsRecorder().snapshot()
        assert snap.total_executions == 0
        assert snap.error_rate == 0.0
        assert snap.last_updated is None

    def test_counts_durations_and_error_rate(self):
        recorder = MetricsRecorder()
        recorder.record(_result(WorkflowStatus.COMPLETED, 40, handoffs=1))
        recorder.record(_result(WorkflowStatus.COMPLETED, 10))
        recorder.record(_result(WorkflowStatus.FAILED, 100, handoffs=2))
        recorder.record(_result(WorkflowStatus.COMPLETED, 50))
        snap = recorder.snapshot()
        assert snap.total_executions == 4
        assert snap.successful_executions == 3
        assert snap.failed_executions == 1
        assert snap.error_rate == pytest.approx(0.25)
        assert snap.average_duration_ms == pytest.approx(50.0)
        assert snap.min_duration_ms == 10
        assert snap.max_duration_ms == 100
        assert snap.handoff_count == 3

    def test_agent_utilization(self):
        recorder = MetricsRecorder()
        recorder.record(_result(WorkflowStatus.COMPLETED, 5, analyses=[
            _analysis(AgentRole.DEVOPS, 0.6),
            _analysis(AgentRole.QA_TESTER, 0.0, timed_out=True),
        ]))
        recorder.record(_result(WorkflowStatus.COMPLETED, 5, analyses=[_analysis(AgentRole.DEVOPS, 0.8)]))
        usage = recorder.snapshot().agent_utilization
        assert usage[AgentRole.DEVOPS].tasks_handled == 2
        assert usage[AgentRole.DEVOPS].average_confidence == pytest.approx(0.7)
        assert usage[AgentRole.QA_TESTER].timeouts == 1
        assert AgentRole.SOFTWARE_ENGINEER not in usage

    def test_reset(self):
        recorder = MetricsRecorder()
        recorder.record(_result(WorkflowStatus.FAILED, 5))
        recorder.reset()
        assert recorder.snapshot().total_executions == 0


def test_process_wide_recorder_is_shared():
    assert get_metrics() is get_metrics()
    reset_metrics()
    get_metrics().record(_result(WorkflowStatus.COMPLETED, 1))
    assert get_metrics().snapshot().total_executions == 1
    reset_metrics()
    assert get_metrics().snapshot().total_executions == 0
