"""Business analyst agent: requirements, reporting, process, cost and risk analysis."""

import logging
from typing import Optional

from ticket_router.agents.rules import ClassificationRule, HandoffCue, build_analysis, contains_any, first_match
from ticket_router.models import AgentAnalysis, AgentCapability, AgentRole, Complexity, Ticket, TicketPriority
from ticket_router.services.audit import AuditTrail

logger = logging.getLogger(__name__)

RULES = (
    ClassificationRule(
        keywords=("requirements", "specification", "acceptance criteria", "user story", "feature request"),
        complexity=Complexity.COMPLEX,
        estimated_time="4-8 hours",
        actions=(
            "Gather and document detailed business requirements",
            "Define clear acceptance criteria and success metrics",
            "Identify stakeholders and their needs",
        ),
        summary="requirements analysis",
    ),
    ClassificationRule(
        keywords=("data", "analytics", "report", "dashboard", "metrics", "kpi", "insights"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-6 hours",
        actions=(
            "Identify relevant data sources and metrics",
            "Perform comprehensive data analysis",
            "Create visualizations and dashboards",
        ),
        summary="data analysis",
    ),
    ClassificationRule(
        keywords=("process", "workflow", "optimization", "efficiency", "improvement", "automation"),
        complexity=Complexity.COMPLEX,
        estimated_time="4-8 hours",
        actions=(
            "Map current business processes and workflows",
            "Identify bottlenecks and inefficiencies",
            "Design optimized process flows",
        ),
        summary="process optimization",
    ),
    ClassificationRule(
        keywords=("cost", "budget", "roi", "investment", "benefit", "financial", "revenue"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Calculate total cost of ownership (TCO)",
            "Identify and quantify expected benefits",
            "Perform ROI and payback period analysis",
        ),
        summary="financial analysis",
    ),
    ClassificationRule(
        keywords=("stakeholder", "user", "customer", "client", "team", "communication"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-3 hours",
        actions=(
            "Identify all affected stakeholders",
            "Assess impact levels for each stakeholder group",
            "Develop stakeholder communication plan",
        ),
        summary="stakeholder analysis",
    ),
    ClassificationRule(
        keywords=("project", "timeline", "milestone", "deliverable", "scope", "planning"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-6 hours",
        actions=(
            "Define project scope and objectives",
            "Create detailed project timeline and milestones",
            "Identify project dependencies and risks",
        ),
        summary="project analysis",
    ),
    ClassificationRule(
        keywords=("risk", "compliance", "audit", "governance", "security", "regulation"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-5 hours",
        priority=TicketPriority.HIGH,
        actions=(
            "Identify potential business and technical risks",
            "Assess risk probability and impact levels",
            "Develop risk mitigation strategies",
        ),
        summary="risk assessment",
    ),
    ClassificationRule(
        keywords=("integration", "system", "api", "helpdesk", "task tracker"),
        complexity=Complexity.COMPLEX,
        estimated_time="4-6 hours",
        actions=(
            "Analyze current system integrations and workflows",
            "Identify integration gaps and opportunities",
            "Design optimal integration architecture",
        ),
        summary="system integration analysis",
    ),
    ClassificationRule(
        keywords=("performance", "quality", "sla", "benchmark", "measurement", "monitoring"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Define key performance indicators (KPIs)",
            "Establish baseline measurements and benchmarks",
            "Create performance monitoring framework",
        ),
        summary="performance metrics",
    ),
)

FALLBACK = ClassificationRule(keywords=(), complexity=Complexity.MEDIUM, estimated_time="2-4 hours")

TRIGGERS = (
    HandoffCue(
        ("development", "coding", "technical implementation", "api development"),
        AgentRole.SOFTWARE_ENGINEER,
        "Collaborate with software engineer for technical implementation",
    ),
    HandoffCue(
        ("testing", "validation", "qa", "user acceptance testing"),
        AgentRole.QA_TESTER,
        "Coordinate with QA team for comprehensive testing and validation",
    ),
)

HANDOFF_CUES = (
    HandoffCue(
        ("technical implementation", "api development", "system integration", "database design"),
        AgentRole.SOFTWARE_ENGINEER,
    ),
    HandoffCue(("user acceptance testing", "validation testing", "quality assurance"), AgentRole.QA_TESTER),
    HandoffCue(
        ("infrastructure planning", "deployment strategy", "scalability analysis"),
        AgentRole.DEVOPS,
    ),
    HandoffCue(
        ("wordpress business requirements", "ecommerce analysis", "content management"),
        AgentRole.WORDPRESS_DEVELOPER,
    ),
)


class BusinessAnalystAgent:
    role = AgentRole.BUSINESS_ANALYST

    def __init__(self, capability: AgentCapability, audit: AuditTrail):
        self.capability = capability
        self.audit = audit

    def can_handle(self, ticket: Ticket) -> bool:
        return contains_any(ticket.content(), self.capability.keywords)

    async def analyze(self, ticket: Ticket) -> AgentAnalysis:
        analysis = build_analysis(ticket, self.capability, RULES, FALLBACK, TRIGGERS)
        self.audit.record(ticket.id, "business_analysis", {
            "complexity": analysis.complexity.value,
            "estimated_time": analysis.estimated_time,
            "summary": analysis.summary,
        })
        if analysis.next_agent:
            logger.debug("Ticket %s: business analysis suggests %s.", ticket.id, analysis.next_agent.value)
        return analysis

    def should_handoff(self, ticket: Ticket) -> Optional[AgentRole]:
        cue = first_match(ticket.content(), HANDOFF_CUES)
        return cue.role if cue else None
