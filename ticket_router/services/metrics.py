"""
Process-wide workflow metrics.
One MetricsRecorder per process, reached through get_metrics(); reset only from tests.
"""

import threading
from typing import Optional

from ticket_router.models import AgentUtilization, WorkflowMetrics, WorkflowResult, WorkflowStatus, now_ms


class MetricsRecorder:
    """Counters folded in once per finished execution, under a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metrics = WorkflowMetrics()
        self._total_duration_ms = 0

    def record(self, result: WorkflowResult) -> None:
        with self._lock:
            m = self._metrics
            m.total_executions += 1
            if result.status == WorkflowStatus.COMPLETED:
                m.successful_executions += 1
            else:
                m.failed_executions += 1
            self._total_duration_ms += result.duration_ms
            m.average_duration_ms = self._total_duration_ms / m.total_executions
            if m.total_executions == 1:
                m.min_duration_ms = m.max_duration_ms = result.duration_ms
            else:
                m.min_duration_ms = min(m.min_duration_ms, result.duration_ms)
                m.max_duration_ms = max(m.max_duration_ms, result.duration_ms)
            m.error_rate = m.failed_executions / m.total_executions
            m.handoff_count += result.handoff_count
            for analysis in result.analysis_history:
                usage = m.agent_utilization.setdefault(analysis.agent_role, AgentUtilization())
                usage.average_confidence = (
                    usage.average_confidence * usage.tasks_handled + analysis.confidence
                ) / (usage.tasks_handled + 1)
                usage.tasks_handled += 1
                if analysis.timed_out:
                    usage.timeouts += 1
            m.last_updated = now_ms()

    def snapshot(self) -> WorkflowMetrics:
        """Point-in-time deep copy; callers cannot mutate the live counters."""
        with self._lock:
            return self._metrics.model_copy(deep=True)

    def reset(self) -> None:
        with self._lock:
            self._metrics = WorkflowMetrics()
            self._total_duration_ms = 0


_recorder: Optional[MetricsRecorder] = None
_recorder_lock = threading.Lock()


def get_metrics() -> MetricsRecorder:
    global _recorder
    with _recorder_lock:
        if _recorder is None:
            _recorder = MetricsRecorder()
        return _recorder


def reset_metrics() -> None:
    """Zero the process-wide counters (test harness only)."""
    get_metrics().reset()
