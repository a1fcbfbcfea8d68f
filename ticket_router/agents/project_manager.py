"""
Project manager agent: the coordinator and fallback role.
Assesses business impact (affected users, deadlines, reporting systems, errors) and
suggests a specialist by running the agent selector over the non-coordinator roles.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from ticket_router.agents.rules import contains_any, keyword_confidence
from ticket_router.models import AgentAnalysis, AgentCapability, AgentRole, Complexity, Ticket, TicketPriority
from ticket_router.services.agent_selector import AgentSelector
from ticket_router.services.audit import AuditTrail

logger = logging.getLogger(__name__)

AFFECTED_USERS_RE = re.compile(r"(\d+)\s+users?\s+(affected|impacted|blocked)")
# More affected users than this raises priority to high.
AFFECTED_USERS_THRESHOLD = 10

RECOMMENDED_ACTIONS = [
    "Assess stakeholder impact and communication needs",
    "Coordinate resource allocation for resolution",
    "Monitor progress and escalate if needed",
]


@dataclass
class BusinessImpact:
    priority: TicketPriority
    complexity: Complexity = Complexity.MEDIUM
    estimated_time: str = "2-4 hours"
    impact: list[str] = field(default_factory=list)
    coordination: list[str] = field(default_factory=list)


def assess_business_impact(ticket: Ticket) -> BusinessImpact:
    """Every matching signal contributes; priority is the most severe one raised."""
    content = ticket.content()
    result = BusinessImpact(priority=ticket.priority)

    m = AFFECTED_USERS_RE.search(content)
    if m:
        count = int(m.group(1))
        result.impact.append(f"{count} users currently affected")
        if count > AFFECTED_USERS_THRESHOLD:
            result.priority = TicketPriority.most_severe(result.priority, TicketPriority.HIGH)
            result.complexity = Complexity.COMPLEX

    if contains_any(content, ("deadline", "friday", "urgent")):
        result.impact.append("Time-sensitive issue with approaching deadline")
        result.priority = TicketPriority.most_severe(result.priority, TicketPriority.URGENT)
        result.estimated_time = "1-2 hours"

    if contains_any(content, ("dashboard", "analytics", "reports")):
        result.impact.append("Critical business system affected (reporting/analytics)")
        result.coordination.append("Coordinate with business stakeholders on report delays")

    if contains_any(content, ("500", "error", "crash")):
        result.impact.append("System error preventing normal operations")
        result.coordination.append("Escalate to technical team for immediate investigation")

    if not result.impact:
        result.impact.append("Analyzing ticket content for business impact assessment")
    if not result.coordination:
        result.coordination.append("Coordinate with appropriate technical team for resolution")
    return result


class ProjectManagerAgent:
    role = AgentRole.PROJECT_MANAGER

    def __init__(self, capability: AgentCapability, audit: AuditTrail, selector: AgentSelector):
        self.capability = capability
        self.audit = audit
        self.selector = selector

    def _specialists(self) -> frozenset[AgentRole]:
        return self.selector.registry.routable_roles() - {self.role}

    def can_handle(self, ticket: Ticket) -> bool:
        return contains_any(ticket.content(), self.capability.keywords)

    async def analyze(self, ticket: Ticket) -> AgentAnalysis:
        impact = assess_business_impact(ticket)
        next_agent = self.selector.select(ticket, self._specialists())
        summary = "; ".join(impact.impact)
        if next_agent is not None:
            summary += f"; assigning to {next_agent.value} for technical analysis"
        analysis = AgentAnalysis(
            agent_role=self.role,
            confidence=keyword_confidence(ticket.content(), self.capability.keywords),
            complexity=impact.complexity,
            priority=impact.priority,
            estimated_time=impact.estimated_time,
            recommended_actions=list(RECOMMENDED_ACTIONS),
            next_agent=next_agent,
            summary=summary,
        )
        self.audit.record(ticket.id, "project_analysis", {
            "complexity": impact.complexity.value,
            "estimated_time": impact.estimated_time,
            "business_impact": impact.impact,
            "coordination": impact.coordination,
            "routing_agent": next_agent.value if next_agent else None,
        })
        return analysis

    def should_handoff(self, ticket: Ticket) -> Optional[AgentRole]:
        role = self.selector.select(ticket, self._specialists())
        logger.debug("Coordinator decision for ticket %s: %s", ticket.id, role.value if role else "handle in place")
        return role
