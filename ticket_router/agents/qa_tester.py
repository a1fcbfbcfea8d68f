"""QA tester agent: bug validation, feature, performance, compatibility, regression and API testing."""

import logging
from typing import Optional

from ticket_router.agents.rules import ClassificationRule, HandoffCue, build_analysis, contains_any, first_match
from ticket_router.models import AgentAnalysis, AgentCapability, AgentRole, Complexity, Ticket, TicketPriority
from ticket_router.services.audit import AuditTrail

logger = logging.getLogger(__name__)

RULES = (
    ClassificationRule(
        keywords=("bug", "error", "issue", "problem", "not working", "broken"),
        complexity=Complexity.MEDIUM,
        estimated_time="1-3 hours",
        actions=(
            "Reproduce the bug following provided steps",
            "Document exact reproduction steps and environment",
            "Verify bug across different browsers/devices",
        ),
        summary="bug validation",
    ),
    ClassificationRule(
        keywords=("test", "testing", "qa", "quality", "validation", "verify"),
        complexity=Complexity.COMPLEX,
        estimated_time="4-8 hours",
        actions=(
            "Create comprehensive test plan and test cases",
            "Perform functional testing of all features",
            "Conduct edge case and boundary testing",
        ),
        summary="feature testing",
    ),
    ClassificationRule(
        keywords=("slow", "performance", "speed", "loading", "timeout", "lag"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-6 hours",
        actions=(
            "Conduct performance baseline measurements",
            "Perform load testing with realistic user scenarios",
            "Identify performance bottlenecks and limitations",
        ),
        summary="performance testing",
    ),
    ClassificationRule(
        keywords=("usability", "user experience", "ux", "ui", "confusing", "difficult"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Conduct user journey and workflow testing",
            "Evaluate interface design and accessibility",
            "Identify usability pain points and improvements",
        ),
        summary="usability testing",
    ),
    ClassificationRule(
        keywords=("browser", "compatibility", "mobile", "device", "responsive", "cross-platform"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-5 hours",
        actions=(
            "Test across major browsers (Chrome, Firefox, Safari, Edge)",
            "Validate responsive design on different screen sizes",
            "Test on various mobile devices and operating systems",
        ),
        summary="compatibility testing",
    ),
    ClassificationRule(
        keywords=("update", "deployment", "release", "regression", "after update"),
        complexity=Complexity.COMPLEX,
        estimated_time="4-8 hours",
        actions=(
            "Execute full regression test suite",
            "Focus on areas affected by recent changes",
            "Verify no new bugs were introduced",
        ),
        summary="regression testing",
    ),
    ClassificationRule(
        keywords=("security", "vulnerability", "authentication", "authorization", "data protection"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-6 hours",
        priority=TicketPriority.HIGH,
        actions=(
            "Test authentication and authorization mechanisms",
            "Validate input sanitization and data validation",
            "Check for common security vulnerabilities (OWASP)",
        ),
        summary="security testing",
    ),
    ClassificationRule(
        keywords=("api", "endpoint", "integration", "webhook", "rest", "graphql"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Test API endpoints with various input parameters",
            "Validate response formats and status codes",
            "Test error handling and edge cases",
        ),
        summary="API testing",
    ),
)

FALLBACK = ClassificationRule(keywords=(), complexity=Complexity.MEDIUM, estimated_time="2-4 hours")

TRIGGERS = (
    HandoffCue(
        ("code review", "unit tests", "test automation", "framework"),
        AgentRole.SOFTWARE_ENGINEER,
        "Collaborate with software engineer for test automation setup",
    ),
    HandoffCue(
        ("requirements", "acceptance criteria", "business logic"),
        AgentRole.BUSINESS_ANALYST,
        "Coordinate with business analyst for requirements validation",
    ),
)

HANDOFF_CUES = (
    HandoffCue(("test automation", "unit tests", "technical bug", "code issue"), AgentRole.SOFTWARE_ENGINEER),
    HandoffCue(("deployment testing", "infrastructure testing", "environment issues"), AgentRole.DEVOPS),
    HandoffCue(("wordpress testing", "plugin testing", "theme testing"), AgentRole.WORDPRESS_DEVELOPER),
    HandoffCue(
        ("requirements testing", "acceptance criteria", "business logic validation"),
        AgentRole.BUSINESS_ANALYST,
    ),
)

_TESTING_TYPES = (
    (("bug", "error", "broken"), "bug_validation"),
    (("performance", "slow", "load"), "performance"),
    (("browser", "mobile", "responsive"), "compatibility"),
    (("regression", "update", "release"), "regression"),
    (("security", "authentication"), "security"),
    (("api", "endpoint", "integration"), "api"),
)


class QATesterAgent:
    role = AgentRole.QA_TESTER

    def __init__(self, capability: AgentCapability, audit: AuditTrail):
        self.capability = capability
        self.audit = audit

    def can_handle(self, ticket: Ticket) -> bool:
        return contains_any(ticket.content(), self.capability.keywords)

    async def analyze(self, ticket: Ticket) -> AgentAnalysis:
        content = ticket.content()
        analysis = build_analysis(ticket, self.capability, RULES, FALLBACK, TRIGGERS)
        self.audit.record(ticket.id, "qa_analysis", {
            "complexity": analysis.complexity.value,
            "estimated_time": analysis.estimated_time,
            "testing_types": [label for kws, label in _TESTING_TYPES if contains_any(content, kws)],
        })
        if not analysis.recommended_actions:
            logger.debug("Ticket %s: no QA rule matched.", ticket.id)
        return analysis

    def should_handoff(self, ticket: Ticket) -> Optional[AgentRole]:
        cue = first_match(ticket.content(), HANDOFF_CUES)
        return cue.role if cue else None
