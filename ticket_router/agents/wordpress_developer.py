"""WordPress developer agent: plugins, themes, WooCommerce, migrations and WP maintenance."""

import logging
from typing import Optional

from ticket_router.agents.rules import ClassificationRule, HandoffCue, build_analysis, contains_any, first_match
from ticket_router.models import AgentAnalysis, AgentCapability, AgentRole, Complexity, Ticket, TicketPriority
from ticket_router.services.audit import AuditTrail

logger = logging.getLogger(__name__)

RULES = (
    ClassificationRule(
        keywords=("plugin", "wp-", "activate", "deactivate", "conflict"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Plugin/theme issues: Plugin conflict detected, systematic deactivation needed",
            "Performance impact: Site functionality disrupted, staging test required",
            "Solutions: Check compatibility, review logs, est. time 2-4 hours",
        ),
        summary="plugin conflict",
    ),
    ClassificationRule(
        keywords=("theme", "styling", "css", "layout", "design", "appearance"),
        complexity=Complexity.SIMPLE,
        estimated_time="1-2 hours",
        actions=(
            "Plugin/theme issues: Theme styling/layout problem affecting appearance",
            "Performance impact: Visual display issues, user experience degraded",
            "Solutions: Test default theme, review CSS, est. time 1-2 hours",
        ),
        summary="theme or layout issue",
    ),
    ClassificationRule(
        keywords=("slow", "performance", "loading", "speed", "optimization"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-6 hours",
        actions=(
            "Plugin/theme issues: Performance bottleneck from plugins/theme overhead",
            "Performance impact: Slow loading affecting user engagement and SEO",
            "Solutions: Optimize plugins, implement caching, est. time 3-6 hours",
        ),
        summary="site performance",
    ),
    ClassificationRule(
        keywords=("security", "hack", "malware", "vulnerability", "breach", "unauthorized"),
        complexity=Complexity.COMPLEX,
        estimated_time="4-8 hours",
        priority=TicketPriority.URGENT,
        actions=(
            "Plugin/theme issues: Security vulnerability in WordPress components",
            "Performance impact: Site compromised, immediate action required (URGENT)",
            "Solutions: Security scan, updates, hardening, est. time 4-8 hours",
        ),
        summary="site security",
    ),
    ClassificationRule(
        keywords=("woocommerce", "woo", "shop", "cart", "checkout", "payment", "order"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Plugin/theme issues: WooCommerce functionality disrupted by conflicts",
            "Performance impact: E-commerce operations affected, revenue at risk",
            "Solutions: Test checkout, verify gateways, est. time 2-4 hours",
        ),
        summary="WooCommerce issue",
    ),
    ClassificationRule(
        keywords=("migration", "database", "import", "export", "backup", "restore"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-6 hours",
        actions=(
            "Plugin/theme issues: Migration affecting database and file references",
            "Performance impact: Site functionality broken, data integrity at risk",
            "Solutions: Verify database, check URLs, test functions, est. time 3-6 hours",
        ),
        summary="migration",
    ),
    ClassificationRule(
        keywords=("update", "upgrade", "maintenance", "version", "compatibility"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-3 hours",
        actions=(
            "Plugin/theme issues: WordPress update causing compatibility problems",
            "Performance impact: Site functionality at risk during updates",
            "Solutions: Backup, staging test, compatibility check, est. time 2-3 hours",
        ),
        summary="update compatibility",
    ),
)

FALLBACK = ClassificationRule(keywords=(), complexity=Complexity.MEDIUM, estimated_time="1-3 hours")

# Domain triggers checked while analyzing.
TRIGGERS = (
    HandoffCue(
        ("api", "custom development", "advanced functionality"),
        AgentRole.SOFTWARE_ENGINEER,
        "Solutions: Collaborate with software engineer for development",
    ),
    HandoffCue(("testing", "qa", "quality assurance"), AgentRole.QA_TESTER),
)

HANDOFF_CUES = (
    HandoffCue(
        ("custom api", "backend development", "database design", "complex integration"),
        AgentRole.SOFTWARE_ENGINEER,
    ),
    HandoffCue(("server", "hosting", "deployment", "ssl", "domain", "dns"), AgentRole.DEVOPS),
    HandoffCue(("comprehensive testing", "qa testing", "user acceptance testing"), AgentRole.QA_TESTER),
    HandoffCue(("analytics", "reporting", "data analysis", "metrics"), AgentRole.BUSINESS_ANALYST),
)

_ISSUE_TAGS = (
    (("plugin", "wp-"), "Plugin-related issue"),
    (("theme", "styling"), "Theme/Styling issue"),
    (("performance", "slow"), "Performance issue"),
    (("security", "hack"), "Security issue"),
    (("woocommerce", "shop"), "WooCommerce issue"),
    (("update", "upgrade"), "Update/Maintenance issue"),
)


def _wordpress_issues(content: str) -> list[str]:
    return [label for keywords, label in _ISSUE_TAGS if contains_any(content, keywords)]


class WordPressDeveloperAgent:
    role = AgentRole.WORDPRESS_DEVELOPER

    def __init__(self, capability: AgentCapability, audit: AuditTrail):
        self.capability = capability
        self.audit = audit

    def can_handle(self, ticket: Ticket) -> bool:
        return contains_any(ticket.content(), self.capability.keywords)

    async def analyze(self, ticket: Ticket) -> AgentAnalysis:
        analysis = build_analysis(ticket, self.capability, RULES, FALLBACK, TRIGGERS)
        self.audit.record(ticket.id, "wordpress_analysis", {
            "complexity": analysis.complexity.value,
            "estimated_time": analysis.estimated_time,
            "wp_issue_types": _wordpress_issues(ticket.content()),
        })
        logger.debug("Ticket %s: WordPress analysis %s.", ticket.id, analysis.complexity.value)
        return analysis

    def should_handoff(self, ticket: Ticket) -> Optional[AgentRole]:
        cue = first_match(ticket.content(), HANDOFF_CUES)
        return cue.role if cue else None
