"""Agent protocol and the role -> implementation table."""

from typing import Optional, Protocol, runtime_checkable

from ticket_router.agents.business_analyst import BusinessAnalystAgent
from ticket_router.agents.devops import DevOpsAgent
from ticket_router.agents.project_manager import ProjectManagerAgent
from ticket_router.agents.qa_tester import QATesterAgent
from ticket_router.agents.software_engineer import SoftwareEngineerAgent
from ticket_router.agents.wordpress_developer import WordPressDeveloperAgent
from ticket_router.models import AgentAnalysis, AgentCapability, AgentRole, Ticket
from ticket_router.services.agent_selector import AgentSelector
from ticket_router.services.audit import AuditTrail
from ticket_router.services.capability_registry import CapabilityRegistry


@runtime_checkable
class TicketAgent(Protocol):
    role: AgentRole
    capability: AgentCapability

    def can_handle(self, ticket: Ticket) -> bool: ...

    async def analyze(self, ticket: Ticket) -> AgentAnalysis: ...

    def should_handoff(self, ticket: Ticket) -> Optional[AgentRole]: ...


SPECIALIST_AGENTS = {
    AgentRole.SOFTWARE_ENGINEER: SoftwareEngineerAgent,
    AgentRole.DEVOPS: DevOpsAgent,
    AgentRole.QA_TESTER: QATesterAgent,
    AgentRole.BUSINESS_ANALYST: BusinessAnalystAgent,
    AgentRole.WORDPRESS_DEVELOPER: WordPressDeveloperAgent,
}


def build_agents(
    registry: CapabilityRegistry,
    audit: AuditTrail,
    selector: AgentSelector,
) -> dict[AgentRole, TicketAgent]:
    """One agent per configured role, each bound to its registry capability."""
    agents: dict[AgentRole, TicketAgent] = {}
    for role in registry.all_roles():
        capability = registry.get_capability(role)
        if role == AgentRole.PROJECT_MANAGER:
            agents[role] = ProjectManagerAgent(capability, audit, selector)
        else:
            agents[role] = SPECIALIST_AGENTS[role](capability, audit)
    return agents
