"""
Agent capability registry: static table of agent roles with keywords, specialties,
confidence thresholds, tie-break priority and processing budget.
Loaded once at process start; read-only afterwards.
"""

import logging
from typing import Iterable, Mapping, Optional

from ticket_router.errors import CapabilityNotFoundError
from ticket_router.models import AgentCapability, AgentRole

logger = logging.getLogger(__name__)


AGENT_CAPABILITIES: dict[AgentRole, AgentCapability] = {
    AgentRole.SOFTWARE_ENGINEER: AgentCapability(
        role=AgentRole.SOFTWARE_ENGINEER,
        name="Software Engineer",
        description="Handles technical issues, bugs, feature requests, and development tasks",
        keywords=frozenset({
            "bug", "error", "crash", "exception", "code", "development", "feature",
            "api", "database", "server", "client", "frontend", "backend", "integration",
            "deployment", "performance", "optimization", "security", "authentication",
            "authorization", "testing", "debugging", "refactoring", "architecture",
        }),
        specialties=(
            "Bug fixes and troubleshooting",
            "Feature development and enhancement",
            "Code review and optimization",
            "API integration and development",
            "Database design and queries",
            "Performance optimization",
            "Security implementation",
        ),
        confidence_threshold=0.8,
        priority=1,
        max_processing_time_ms=45000,
        routing_keywords=(
            "api", "code", "programming", "development", "feature", "function",
            "integration", "backend", "frontend", "error", "500", "bug", "crash",
            "exception", "server", "database",
        ),
        routing_weight=0.8,
    ),
    AgentRole.DEVOPS: AgentCapability(
        role=AgentRole.DEVOPS,
        name="DevOps Engineer",
        description="Manages infrastructure, deployment, monitoring, and operational issues",
        keywords=frozenset({
            "deployment", "infrastructure", "server", "cloud", "aws", "azure", "gcp",
            "docker", "kubernetes", "ci/cd", "pipeline", "monitoring", "logging",
            "scaling", "load", "performance", "uptime", "downtime", "backup",
            "security", "network", "firewall", "ssl", "certificate", "domain",
        }),
        specialties=(
            "Infrastructure management and scaling",
            "CI/CD pipeline setup and optimization",
            "Monitoring and alerting systems",
            "Cloud platform management",
            "Container orchestration",
            "Security and compliance",
            "Backup and disaster recovery",
        ),
        confidence_threshold=0.75,
        priority=2,
        max_processing_time_ms=40000,
        routing_keywords=(
            "server", "deployment", "infrastructure", "docker", "kubernetes", "aws",
            "cloud", "database", "performance", "monitoring",
        ),
        routing_weight=0.9,
    ),
    AgentRole.QA_TESTER: AgentCapability(
        role=AgentRole.QA_TESTER,
        name="QA Tester",
        description="Handles testing, quality assurance, and validation issues",
        keywords=frozenset({
            "test", "testing", "qa", "quality", "validation", "verification",
            "regression", "automation", "manual", "functional", "integration",
            "unit", "e2e", "end-to-end", "performance", "load", "stress",
            "usability", "accessibility", "compatibility", "browser", "mobile",
        }),
        specialties=(
            "Test case design and execution",
            "Automated testing frameworks",
            "Regression testing strategies",
            "Performance and load testing",
            "Cross-browser compatibility testing",
            "Mobile and responsive testing",
            "Accessibility compliance testing",
        ),
        confidence_threshold=0.7,
        priority=3,
        max_processing_time_ms=35000,
        routing_keywords=(
            "test", "testing", "qa", "quality", "bug", "defect", "validation", "verification",
        ),
        routing_weight=0.85,
    ),
    AgentRole.PROJECT_MANAGER: AgentCapability(
        role=AgentRole.PROJECT_MANAGER,
        name="Project Manager",
        description="Manages project coordination, timelines, and stakeholder communication",
        keywords=frozenset({
            "project", "timeline", "deadline", "milestone", "planning", "coordination",
            "stakeholder", "communication", "meeting", "status", "progress",
            "resource", "allocation", "budget", "scope", "requirement", "priority",
            "risk", "issue", "escalation", "delivery", "release", "sprint",
        }),
        specialties=(
            "Project planning and scheduling",
            "Resource allocation and management",
            "Stakeholder communication",
            "Risk assessment and mitigation",
            "Progress tracking and reporting",
            "Team coordination and leadership",
            "Scope and requirement management",
        ),
        confidence_threshold=0.65,
        priority=4,
        max_processing_time_ms=30000,
        # Coordinator: reached through the fallback path, never scored.
        routing_keywords=(),
        routing_weight=0.0,
    ),
    AgentRole.BUSINESS_ANALYST: AgentCapability(
        role=AgentRole.BUSINESS_ANALYST,
        name="Business Analyst",
        description="Analyzes business requirements, processes, and strategic decisions",
        keywords=frozenset({
            "requirements", "specification", "analysis", "data", "analytics",
            "report", "dashboard", "metrics", "kpi", "process", "workflow",
            "optimization", "efficiency", "cost", "budget", "roi", "investment",
            "stakeholder", "business", "strategy", "planning", "market", "user",
        }),
        specialties=(
            "Business requirement analysis",
            "Process optimization and design",
            "Data analysis and reporting",
            "KPI and metrics definition",
            "Stakeholder requirement gathering",
            "Cost-benefit analysis",
            "Strategic planning support",
        ),
        confidence_threshold=0.6,
        priority=5,
        max_processing_time_ms=35000,
        routing_keywords=(
            "requirements", "analysis", "business", "process", "workflow",
            "specification", "documentation",
        ),
        routing_weight=0.7,
    ),
    AgentRole.WORDPRESS_DEVELOPER: AgentCapability(
        role=AgentRole.WORDPRESS_DEVELOPER,
        name="WordPress Developer",
        description="Specializes in WordPress development, themes, plugins, and customization",
        keywords=frozenset({
            "wordpress", "wp", "theme", "plugin", "customization", "php",
            "mysql", "css", "javascript", "gutenberg", "block", "shortcode",
            "hook", "filter", "action", "template", "page", "post", "custom",
            "field", "meta", "taxonomy", "widget", "menu", "admin", "dashboard",
        }),
        specialties=(
            "WordPress theme development and customization",
            "Plugin development and integration",
            "Custom post types and fields",
            "WordPress security and optimization",
            "Gutenberg block development",
            "WooCommerce customization",
            "WordPress multisite management",
        ),
        confidence_threshold=0.75,
        priority=6,
        max_processing_time_ms=40000,
        routing_keywords=(
            "wordpress", "wp", "plugin", "theme", "cms", "gutenberg", "woocommerce",
        ),
        routing_weight=0.95,
    ),
}


class CapabilityRegistry:
    """Read-only lookup of agent capabilities by role."""

    def __init__(self, capabilities: Optional[Mapping[AgentRole, AgentCapability]] = None):
        table = dict(AGENT_CAPABILITIES if capabilities is None else capabilities)
        for role, capability in table.items():
            if capability.role != role:
                raise ValueError(f"Capability for {role.value} is declared as {capability.role.value}")
        missing = set(AgentRole) - set(table)
        if missing:
            raise ValueError(
                "Missing capabilities for roles: " + ", ".join(sorted(r.value for r in missing))
            )
        self._table = table
        logger.debug("Capability registry loaded with %d roles.", len(table))

    def get_capability(self, role: AgentRole) -> AgentCapability:
        """Capability for `role`; raises CapabilityNotFoundError if the role is not configured."""
        try:
            return self._table[AgentRole(role)]
        except (KeyError, ValueError):
            raise CapabilityNotFoundError(role) from None

    def all_roles(self) -> frozenset[AgentRole]:
        return frozenset(self._table)

    def routable_roles(self) -> frozenset[AgentRole]:
        """Roles the selector may score (non-empty routing keyword set and a positive weight)."""
        return frozenset(
            role for role, cap in self._table.items()
            if cap.routing_keywords and cap.routing_weight > 0
        )

    def capabilities(self) -> list[AgentCapability]:
        """All capabilities, preferred (lowest priority value) first."""
        return sorted(self._table.values(), key=lambda c: (c.priority, c.role.value))

    def with_overrides(self, overrides: Iterable[AgentCapability]) -> "CapabilityRegistry":
        """New registry with some entries replaced (the original stays untouched)."""
        table = dict(self._table)
        for capability in overrides:
            table[capability.role] = capability
        return CapabilityRegistry(table)


_default_registry: Optional[CapabilityRegistry] = None


def get_registry() -> CapabilityRegistry:
    """Process-wide registry built from AGENT_CAPABILITIES."""
    global _default_registry
    if _default_registry is None:
        _default_registry = CapabilityRegistry()
    return _default_registry
