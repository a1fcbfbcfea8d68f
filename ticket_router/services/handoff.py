"""
Handoff controller: decides whether a workflow execution continues to the suggested agent.

Rules, evaluated in this order:
  0. timed-out analysis            -> STOP (timeout; never retried)
  1. no suggestion                 -> STOP (terminal)
  2. suggestion already visited    -> STOP (cycle)
  3. |visited| + 1 > max_handoffs  -> STOP (depth)
  4. otherwise                     -> CONTINUE(suggestion)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ticket_router.config import MAX_HANDOFFS
from ticket_router.models import AgentAnalysis, AgentRole, StopReason, WorkflowExecution

logger = logging.getLogger(__name__)


class HandoffAction(str, Enum):
    CONTINUE = "continue"
    STOP = "stop"


@dataclass(frozen=True)
class HandoffDecision:
    action: HandoffAction
    next_role: Optional[AgentRole] = None
    reason: Optional[StopReason] = None

    @classmethod
    def stop(cls, reason: StopReason) -> "HandoffDecision":
        return cls(HandoffAction.STOP, reason=reason)

    @classmethod
    def proceed(cls, role: AgentRole) -> "HandoffDecision":
        return cls(HandoffAction.CONTINUE, next_role=role)


class HandoffController:
    def __init__(self, max_handoffs: int = MAX_HANDOFFS):
        if max_handoffs < 1:
            raise ValueError("max_handoffs must be at least 1")
        self.max_handoffs = max_handoffs

    def next_step(self, execution: WorkflowExecution, analysis: AgentAnalysis) -> HandoffDecision:
        if analysis.timed_out:
            return HandoffDecision.stop(StopReason.TIMEOUT)
        target = analysis.next_agent
        if target is None:
            return HandoffDecision.stop(StopReason.TERMINAL)
        if target in execution.visited_agents:
            logger.debug(
                "Execution %s: %s suggested already-visited %s; stopping.",
                execution.execution_id, analysis.agent_role.value, target.value,
            )
            return HandoffDecision.stop(StopReason.CYCLE_DETECTED)
        if len(execution.visited_agents) + 1 > self.max_handoffs:
            logger.debug(
                "Execution %s: handoff to %s would exceed %d agents; stopping.",
                execution.execution_id, target.value, self.max_handoffs,
            )
            return HandoffDecision.stop(StopReason.DEPTH_EXCEEDED)
        return HandoffDecision.proceed(target)
