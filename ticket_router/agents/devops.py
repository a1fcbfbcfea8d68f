"""DevOps agent: servers, pipelines, cloud platforms, monitoring, backups and networking."""

import logging
from typing import Optional

from ticket_router.agents.rules import ClassificationRule, HandoffCue, build_analysis, contains_any, first_match
from ticket_router.models import AgentAnalysis, AgentCapability, AgentRole, Complexity, Ticket, TicketPriority
from ticket_router.services.audit import AuditTrail

logger = logging.getLogger(__name__)

RULES = (
    ClassificationRule(
        keywords=("server", "infrastructure", "hosting", "downtime", "outage"),
        complexity=Complexity.COMPLEX,
        estimated_time="1-6 hours",
        priority=TicketPriority.URGENT,
        actions=(
            "Infrastructure impact: Server health check and resource monitoring needed",
            "Deployment considerations: Immediate system logs review and failover prep",
            "Monitoring: Set up alerts, est. time 1-6 hours (URGENT)",
        ),
        summary="server or hosting outage",
    ),
    ClassificationRule(
        keywords=("deployment", "deploy", "ci/cd", "pipeline", "build", "release"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Infrastructure impact: CI/CD pipeline disruption possible",
            "Deployment considerations: Review logs, test staging, prepare rollback",
            "Monitoring: Pipeline status tracking, est. time 2-4 hours",
        ),
        summary="deployment pipeline",
    ),
    ClassificationRule(
        keywords=("performance", "slow", "latency", "response time", "optimization"),
        complexity=Complexity.COMPLEX,
        estimated_time="4-8 hours",
        actions=(
            "Infrastructure impact: Performance bottleneck affecting system resources",
            "Deployment considerations: Scaling policies and load balancing review",
            "Monitoring: Performance metrics analysis, est. time 4-8 hours",
        ),
        summary="infrastructure performance",
    ),
    ClassificationRule(
        keywords=("security", "vulnerability", "breach", "compliance", "ssl", "certificate"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-8 hours",
        priority=TicketPriority.URGENT,
        actions=(
            "Infrastructure impact: Security vulnerability requires immediate assessment",
            "Deployment considerations: Patch deployment and access control review",
            "Monitoring: Security audit and compliance check, est. time 3-8 hours (URGENT)",
        ),
        summary="infrastructure security",
    ),
    ClassificationRule(
        keywords=("backup", "recovery", "disaster", "restore", "data loss"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-6 hours",
        priority=TicketPriority.HIGH,
        actions=(
            "Infrastructure impact: Data integrity and backup system verification needed",
            "Deployment considerations: Recovery procedures and RTO/RPO testing",
            "Monitoring: Backup monitoring setup, est. time 3-6 hours",
        ),
        summary="backup and recovery",
    ),
    ClassificationRule(
        keywords=("network", "connectivity", "dns", "firewall", "load balancer"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Diagnose network connectivity and routing",
            "Check firewall rules and security groups",
            "Verify DNS configuration and resolution",
        ),
        summary="network",
    ),
    ClassificationRule(
        keywords=("aws", "azure", "gcp", "cloud", "kubernetes", "docker"),
        complexity=Complexity.COMPLEX,
        estimated_time="3-6 hours",
        actions=(
            "Review cloud service status and configurations",
            "Check container orchestration and scaling",
            "Verify cloud resource allocation and limits",
        ),
        summary="cloud services",
    ),
    ClassificationRule(
        keywords=("monitoring", "alerts", "metrics", "logging", "observability"),
        complexity=Complexity.MEDIUM,
        estimated_time="2-4 hours",
        actions=(
            "Review monitoring system configuration",
            "Set up comprehensive alerting rules",
            "Implement centralized logging and analysis",
        ),
        summary="monitoring",
    ),
)

FALLBACK = ClassificationRule(keywords=(), complexity=Complexity.MEDIUM, estimated_time="2-4 hours")

TRIGGERS = (
    HandoffCue(
        ("application", "code", "api", "custom development"),
        AgentRole.SOFTWARE_ENGINEER,
        "Collaborate with software engineer for application-level issues",
    ),
    HandoffCue(
        ("database", "sql", "query optimization", "data migration"),
        AgentRole.SOFTWARE_ENGINEER,
        "Coordinate with database specialist for data-related issues",
    ),
)

HANDOFF_CUES = (
    HandoffCue(
        ("application bug", "code issue", "api problem", "database optimization"),
        AgentRole.SOFTWARE_ENGINEER,
    ),
    HandoffCue(("wordpress hosting", "wp-cli", "wordpress performance"), AgentRole.WORDPRESS_DEVELOPER),
    HandoffCue(("testing environment", "qa infrastructure", "test automation"), AgentRole.QA_TESTER),
    HandoffCue(
        ("infrastructure reporting", "cost analysis", "capacity planning"),
        AgentRole.BUSINESS_ANALYST,
    ),
)

_COMPONENTS = ("server", "database", "load balancer", "cdn", "dns", "docker", "kubernetes", "pipeline")


class DevOpsAgent:
    role = AgentRole.DEVOPS

    def __init__(self, capability: AgentCapability, audit: AuditTrail):
        self.capability = capability
        self.audit = audit

    def can_handle(self, ticket: Ticket) -> bool:
        return contains_any(ticket.content(), self.capability.keywords)

    async def analyze(self, ticket: Ticket) -> AgentAnalysis:
        content = ticket.content()
        analysis = build_analysis(ticket, self.capability, RULES, FALLBACK, TRIGGERS)
        self.audit.record(ticket.id, "devops_analysis", {
            "complexity": analysis.complexity.value,
            "estimated_time": analysis.estimated_time,
            "infrastructure_components": [c for c in _COMPONENTS if c in content],
        })
        logger.debug("Ticket %s: devops %s (%s).", ticket.id, analysis.summary, analysis.complexity.value)
        return analysis

    def should_handoff(self, ticket: Ticket) -> Optional[AgentRole]:
        cue = first_match(ticket.content(), HANDOFF_CUES)
        return cue.role if cue else None
