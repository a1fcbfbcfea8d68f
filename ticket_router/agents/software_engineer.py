"""Software engineer agent: application errors, APIs, databases, performance and security in code."""

import logging
from typing import Optional

from ticket_router.agents.rules import ClassificationRule, HandoffCue, build_analysis, contains_any, first_match
from ticket_router.models import AgentAnalysis, AgentCapability, AgentRole, Complexity, Ticket, TicketPriority
from ticket_router.services.audit import AuditTrail

logger = logging.getLogger(__name__)

_FAILURE_WORDS = ("error", "fail", "timeout")

RULES = (
    ClassificationRule(
        keywords=("500", "internal server error", "server error", "http 500"),
        complexity=Complexity.COMPLEX,
        estimated_time="1-3 hours",
        priority=TicketPriority.URGENT,
        confidence=0.9,
        actions=(
            "Check server logs for specific error messages and stack traces",
            "Verify database connections and query performance",
            "Review recent code deployments that may have caused the issue",
        ),
        summary="server error",
    ),
    ClassificationRule(
        keywords=("404", "not found", "page not found", "missing"),
        complexity=Complexity.SIMPLE,
        estimated_time="1-2 hours",
        actions=(
            "404 Error: Check routing configuration and URL patterns",
            "Verify file paths and ensure resources exist",
            "Update redirects or restore missing content (Est: 1-2 hours)",
        ),
        summary="missing resource",
    ),
    ClassificationRule(
        keywords=("timeout", "gateway timeout", "504", "connection timeout"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Timeout Issue: Analyze slow queries and server response times",
            "Optimize database queries and increase timeout limits",
            "Monitor server performance and scale if needed (Est: 2-4 hours)",
        ),
        summary="timeout",
    ),
    ClassificationRule(
        keywords=("bug", "error", "exception", "crash", "broken"),
        complexity=Complexity.MEDIUM,
        estimated_time="3-6 hours",
        actions=(
            "Application Error: Review error logs and stack traces",
            "Reproduce issue in development environment",
            "Implement fix with comprehensive testing (Est: 3-6 hours)",
        ),
        summary="application error",
    ),
    ClassificationRule(
        keywords=("api",),
        requires=_FAILURE_WORDS,
        complexity=Complexity.MEDIUM,
        estimated_time="2-3 hours",
        actions=(
            "Check API endpoint availability and response codes",
            "Verify API authentication tokens and credentials",
            "Review API rate limiting and timeout configurations",
        ),
        summary="API failure",
    ),
    ClassificationRule(
        keywords=("performance", "slow", "optimization", "speed"),
        complexity=Complexity.COMPLEX,
        estimated_time="4-8 hours",
        actions=(
            "Performance Issue: Profile application and identify bottlenecks",
            "Optimize database queries and implement caching strategies",
            "Monitor improvements and scale resources (Est: 4-8 hours)",
        ),
        summary="performance",
    ),
    ClassificationRule(
        keywords=("security", "vulnerability", "breach", "unauthorized"),
        complexity=Complexity.COMPLEX,
        estimated_time="6-12 hours",
        priority=TicketPriority.URGENT,
        actions=(
            "SECURITY ALERT: Conduct immediate security audit",
            "Patch vulnerabilities and review access controls",
            "Document incident and implement monitoring (Est: 6-12 hours)",
        ),
        summary="security",
    ),
    ClassificationRule(
        keywords=("database", "connection"),
        requires=_FAILURE_WORDS,
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Check database server status and connection pool",
            "Review database connection string configuration",
            "Analyze database performance and resource usage",
        ),
        summary="database connectivity",
    ),
    ClassificationRule(
        keywords=("wordpress", "plugin", "theme"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        next_agent=AgentRole.WORDPRESS_DEVELOPER,
        actions=("WordPress-specific issue detected - requires specialist review",),
        summary="WordPress issue",
    ),
    ClassificationRule(
        keywords=("deploy", "deployment", "server", "infrastructure"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        next_agent=AgentRole.DEVOPS,
        actions=("Infrastructure issue detected - requires DevOps analysis",),
        summary="infrastructure issue",
    ),
)

FALLBACK = ClassificationRule(
    keywords=(),
    complexity=Complexity.MEDIUM,
    estimated_time="2-4 hours",
    priority=TicketPriority.NORMAL,
    confidence=0.6,
    actions=(
        "Investigate reported technical symptoms",
        "Review system logs for error patterns",
        "Test functionality in staging environment",
    ),
    summary="general technical issue",
)

HANDOFF_CUES = (
    HandoffCue(("wordpress", "wp-", "plugin", "theme", "woocommerce"), AgentRole.WORDPRESS_DEVELOPER),
    HandoffCue(
        ("deploy", "server", "infrastructure", "docker", "kubernetes", "aws", "cloud"),
        AgentRole.DEVOPS,
    ),
    HandoffCue(("test", "testing", "qa", "quality", "automation test"), AgentRole.QA_TESTER),
)


def _criticality(content: str) -> str:
    if contains_any(content, ("500", "crash", "security", "breach", "data loss")):
        return "critical"
    if contains_any(content, ("error", "timeout", "broken", "failed")):
        return "high"
    return "normal"


class SoftwareEngineerAgent:
    role = AgentRole.SOFTWARE_ENGINEER

    def __init__(self, capability: AgentCapability, audit: AuditTrail):
        self.capability = capability
        self.audit = audit

    def can_handle(self, ticket: Ticket) -> bool:
        return contains_any(ticket.content(), self.capability.keywords)

    async def analyze(self, ticket: Ticket) -> AgentAnalysis:
        analysis = build_analysis(ticket, self.capability, RULES, FALLBACK)
        self.audit.record(ticket.id, "technical_analysis", {
            "complexity": analysis.complexity.value,
            "estimated_time": analysis.estimated_time,
            "priority": analysis.priority.value,
            "criticality": _criticality(ticket.content()),
        })
        logger.debug("Ticket %s: %s, priority %s.", ticket.id, analysis.summary, analysis.priority.value)
        return analysis

    def should_handoff(self, ticket: Ticket) -> Optional[AgentRole]:
        cue = first_match(ticket.content(), HANDOFF_CUES)
        return cue.role if cue else None
