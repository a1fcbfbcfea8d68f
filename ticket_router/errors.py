"""Exception types raised by the routing engine and its adapters."""


class TicketRouterError(Exception):
    """Base class for all routing engine errors."""


class NormalizationError(TicketRouterError):
    """A source payload could not be turned into a canonical ticket event."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source} payload rejected: {reason}")
        self.source = source
        self.reason = reason


class CapabilityNotFoundError(TicketRouterError, KeyError):
    """No capability is configured for the requested agent role."""

    def __init__(self, role):
        super().__init__(f"No capability configured for role {role}")
        self.role = role

    def __str__(self) -> str:
        return self.args[0]


class AgentTimeoutError(TicketRouterError):
    """An agent's analysis step exceeded its processing budget."""

    def __init__(self, role, budget_ms: int):
        super().__init__(f"{role} analysis exceeded {budget_ms}ms")
        self.role = role
        self.budget_ms = budget_ms


class OrchestrationError(TicketRouterError):
    """Unexpected failure inside the handoff loop."""


class InvalidTransitionError(TicketRouterError):
    """A workflow execution was asked to move to a status it cannot reach."""
