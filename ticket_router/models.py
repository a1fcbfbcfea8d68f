"""Data models for the ticket routing and workflow orchestration engine."""

import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ticket_router.errors import InvalidTransitionError


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class AgentRole(str, Enum):
    """Closed set of agent roles on the routing panel."""

    PROJECT_MANAGER = "PROJECT_MANAGER"
    SOFTWARE_ENGINEER = "SOFTWARE_ENGINEER"
    WORDPRESS_DEVELOPER = "WORDPRESS_DEVELOPER"
    BUSINESS_ANALYST = "BUSINESS_ANALYST"
    QA_TESTER = "QA_TESTER"
    DEVOPS = "DEVOPS"


class EventSource(str, Enum):
    """Platform an inbound webhook came from."""

    TICKETING = "ticketing"
    TASK_TRACKER = "task_tracker"


class TicketStatus(str, Enum):
    NEW = "new"
    OPEN = "open"
    PENDING = "pending"
    HOLD = "hold"
    SOLVED = "solved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def severity(self) -> int:
        return _PRIORITY_SEVERITY[self]

    @classmethod
    def most_severe(cls, *priorities: "TicketPriority") -> "TicketPriority":
        return max(priorities, key=lambda p: p.severity)


_PRIORITY_SEVERITY = {
    TicketPriority.LOW: 0,
    TicketPriority.NORMAL: 1,
    TicketPriority.HIGH: 2,
    TicketPriority.URGENT: 3,
}


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


# --- Canonical inbound event ---


class Ticket(BaseModel):
    """Source-agnostic ticket carried by a normalized event."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Source ticket/task identifier")
    subject: str = Field(..., description="Ticket subject line")
    description: str = Field(default="", description="Ticket body/description")
    status: TicketStatus = TicketStatus.NEW
    priority: TicketPriority = TicketPriority.NORMAL
    tags: frozenset[str] = Field(default_factory=frozenset)
    requester_id: Optional[str] = None
    assignee_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def content(self) -> str:
        """Lower-cased subject and description, the text every keyword rule matches against."""
        return f"{self.subject} {self.description}".lower()


class NormalizedTicketEvent(BaseModel):
    """Canonical event consumed by the orchestrator. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    source: EventSource
    event_type: str = Field(..., min_length=1, description="e.g. ticket.created, taskStatusUpdated")
    timestamp: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    ticket: Ticket


# --- Agent capabilities and analyses ---


class AgentCapability(BaseModel):
    """Static configuration for one agent role."""

    model_config = ConfigDict(frozen=True)

    role: AgentRole
    name: str
    description: str = ""
    keywords: frozenset[str] = Field(default_factory=frozenset)
    specialties: tuple[str, ...] = ()
    confidence_threshold: float = Field(..., ge=0.0, le=1.0)
    priority: int = Field(..., ge=0, description="Lower wins selector ties")
    max_processing_time_ms: int = Field(..., ge=1)
    routing_keywords: tuple[str, ...] = Field(
        default=(),
        description="Keyword set scored by the selector; empty means never a scored candidate",
    )
    routing_weight: float = Field(default=0.0, ge=0.0, le=1.0)


class AgentAnalysis(BaseModel):
    """One agent's evaluation of one ticket."""

    model_config = ConfigDict(frozen=True)

    agent_role: AgentRole
    confidence: float = Field(..., ge=0.0, le=1.0)
    complexity: Complexity
    priority: TicketPriority
    estimated_time: str
    recommended_actions: list[str] = Field(default_factory=list)
    next_agent: Optional[AgentRole] = None
    summary: str = ""
    timed_out: bool = False
    error: Optional[str] = None

    @classmethod
    def timeout(cls, role: AgentRole, ticket: Ticket, budget_ms: int) -> "AgentAnalysis":
        """Placeholder analysis recorded when an agent exceeds its processing budget."""
        return cls(
            agent_role=role,
            confidence=0.0,
            complexity=Complexity.MEDIUM,
            priority=ticket.priority,
            estimated_time="unknown",
            recommended_actions=[],
            timed_out=True,
            error=f"analysis exceeded {budget_ms}ms",
        )


# --- Workflow executions ---


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    WorkflowStatus.PENDING: {WorkflowStatus.RUNNING},
    WorkflowStatus.RUNNING: {WorkflowStatus.COMPLETED, WorkflowStatus.FAILED},
    WorkflowStatus.COMPLETED: set(),
    WorkflowStatus.FAILED: set(),
}


class StopReason(str, Enum):
    """Why the handoff loop ended."""

    TERMINAL = "terminal"
    CYCLE_DETECTED = "cycle_detected"
    DEPTH_EXCEEDED = "depth_exceeded"
    TIMEOUT = "timeout"


class WorkflowExecution(BaseModel):
    """State-machine instance tracked per inbound event."""

    execution_id: str
    workflow_id: str
    status: WorkflowStatus = WorkflowStatus.PENDING
    visited_agents: list[AgentRole] = Field(default_factory=list)
    analysis_history: list[AgentAnalysis] = Field(default_factory=list)
    final_recommendations: list[str] = Field(default_factory=list)
    started_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
    completed_at: Optional[int] = None
    trigger_data: NormalizedTicketEvent
    stop_reason: Optional[StopReason] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (WorkflowStatus.COMPLETED, WorkflowStatus.FAILED)

    def transition(self, status: WorkflowStatus) -> None:
        """Move to `status`; only PENDING -> RUNNING -> COMPLETED|FAILED is allowed."""
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Execution {self.execution_id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        self.updated_at = now_ms()
        if self.is_terminal:
            self.completed_at = self.updated_at

    def record(self, analysis: AgentAnalysis) -> None:
        """Append an analysis and mark its agent visited (visit order preserved, no duplicates)."""
        if analysis.agent_role in self.visited_agents:
            raise InvalidTransitionError(
                f"Agent {analysis.agent_role.value} already visited in execution {self.execution_id}"
            )
        self.visited_agents.append(analysis.agent_role)
        self.analysis_history.append(analysis)
        self.updated_at = now_ms()


class WorkflowResult(BaseModel):
    """Structured result returned by the orchestrator for one execution."""

    execution_id: str
    workflow_id: str
    status: WorkflowStatus
    final_recommendations: list[str] = Field(default_factory=list)
    agents_involved: list[AgentRole] = Field(default_factory=list)
    analysis_history: list[AgentAnalysis] = Field(default_factory=list)
    duration_ms: int = Field(default=0, ge=0)
    handoff_count: int = Field(default=0, ge=0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Mean analysis confidence")
    stop_reason: Optional[StopReason] = None
    error: Optional[str] = None


# --- Metrics ---


class AgentUtilization(BaseModel):
    tasks_handled: int = 0
    average_confidence: float = 0.0
    timeouts: int = 0


class WorkflowMetrics(BaseModel):
    """Process-wide counters, updated once per finished execution."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    average_duration_ms: float = 0.0
    min_duration_ms: int = 0
    max_duration_ms: int = 0
    error_rate: float = 0.0
    handoff_count: int = 0
    agent_utilization: dict[AgentRole, AgentUtilization] = Field(default_factory=dict)
    last_updated: Optional[int] = None


# --- API envelopes ---


class WebhookAccepted(BaseModel):
    """Response for 202 Accepted: webhook acknowledged, orchestration continues in the background."""

    event_id: str
    ticket_id: str
    execution_id: Optional[str] = Field(None, description="Set when orchestration runs in-process")
    job_id: Optional[str] = Field(None, description="Set when orchestration was queued for a worker")
    message: str = Field(default="Accepted for processing")
