"""
Unit tests for the agent capability registry (no server required).
Run: pytest tests/test_registry.py -v
"""

import pytest

from ticket_router.errors import CapabilityNotFoundError
from ticket_router.models import AgentRole
from ticket_router.services.capability_registry import AGENT_CAPABILITIES, CapabilityRegistry, get_registry


class TestDefaultTable:
    def test_every_role_has_exactly_one_entry(self):
        registry = CapabilityRegistry()
        assert registry.all_roles() == frozenset(AgentRole)
        for role in AgentRole:
            assert registry.get_capability(role).role == role

    def test_priorities_and_budgets(self):
        registry = get_registry()
        assert registry.get_capability(AgentRole.SOFTWARE_ENGINEER).priority == 1
        assert registry.get_capability(AgentRole.WORDPRESS_DEVELOPER).priority == 6
        assert registry.get_capability(AgentRole.PROJECT_MANAGER).max_processing_time_ms == 30000
        assert registry.get_capability(AgentRole.SOFTWARE_ENGINEER).confidence_threshold == 0.8

    def test_coordinator_is_not_routable(self):
        registry = get_registry()
        routable = registry.routable_roles()
        assert AgentRole.PROJECT_MANAGER not in routable
        assert len(routable) == 5

    def test_capabilities_sorted_by_priority(self):
        priorities = [c.priority for c in get_registry().capabilities()]
        assert priorities == sorted(priorities)

    def test_capability_is_immutable(self):
        cap = get_registry().get_capability(AgentRole.DEVOPS)
        with pytest.raises(Exception):
            cap.priority = 99


class TestValidation:
    def test_missing_role_rejected(self):
        table = dict(AGENT_CAPABILITIES)
        del table[AgentRole.QA_TESTER]
        with pytest.raises(ValueError, match="QA_TESTER"):
            CapabilityRegistry(table)

    def test_mismatched_key_rejected(self):
        table = dict(AGENT_CAPABILITIES)
        table[AgentRole.QA_TESTER] = AGENT_CAPABILITIES[AgentRole.DEVOPS]
        with pytest.raises(ValueError):
            CapabilityRegistry(table)

    def test_unknown_role_raises_not_found(self):
        with pytest.raises(CapabilityNotFoundError):
            get_registry().get_capability("NOT_A_ROLE")

    def test_not_found_is_a_key_error(self):
        with pytest.raises(KeyError):
            get_registry().get_capability("NOT_A_ROLE")

    def test_with_overrides_leaves_original_untouched(self):
        registry = CapabilityRegistry()
        cap = registry.get_capability(AgentRole.DEVOPS).model_copy(update={"max_processing_time_ms": 5})
        overridden = registry.with_overrides([cap])
        assert overridden.get_capability(AgentRole.DEVOPS).max_processing_time_ms == 5
        assert registry.get_capability(AgentRole.DEVOPS).max_processing_time_ms == 40000
