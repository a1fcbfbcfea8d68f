"""
Keyword rule tables shared by the agent variants.
All matching is case-insensitive substring matching against Ticket.content().
Tables are ordered; the first matching entry wins.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, TypeVar

from ticket_router.config import MAX_RECOMMENDED_ACTIONS
from ticket_router.models import AgentAnalysis, AgentCapability, AgentRole, Complexity, Ticket, TicketPriority


def contains_any(content: str, keywords: Iterable[str]) -> bool:
    """True if any keyword is a substring of `content` (both compared lower-cased)."""
    content = content.lower()
    return any(k.lower() in content for k in keywords)


@dataclass(frozen=True)
class ClassificationRule:
    """One row of an agent's classification table."""

    keywords: tuple[str, ...]
    complexity: Complexity
    estimated_time: str
    actions: tuple[str, ...] = ()
    # Second keyword group that must also match (e.g. "api" AND "error").
    requires: tuple[str, ...] = ()
    priority: Optional[TicketPriority] = None
    confidence: Optional[float] = None
    next_agent: Optional[AgentRole] = None
    summary: str = ""

    def matches(self, content: str) -> bool:
        if not contains_any(content, self.keywords):
            return False
        return not self.requires or contains_any(content, self.requires)


@dataclass(frozen=True)
class HandoffCue:
    """Keywords that point a ticket at another role; `action` is added when it fires during analysis."""

    keywords: tuple[str, ...]
    role: AgentRole
    action: Optional[str] = None

    def matches(self, content: str) -> bool:
        return contains_any(content, self.keywords)


_R = TypeVar("_R", ClassificationRule, HandoffCue)


def first_match(content: str, rules: Sequence[_R]) -> Optional[_R]:
    for rule in rules:
        if rule.matches(content):
            return rule
    return None


def keyword_confidence(content: str, keywords: Iterable[str]) -> float:
    """+0.2 per capability keyword found in the content, capped at 1.0."""
    content = content.lower()
    hits = sum(1 for k in keywords if k.lower() in content)
    return min(round(hits * 0.2, 4), 1.0)


def cap_actions(actions: Iterable[str], limit: int = MAX_RECOMMENDED_ACTIONS) -> list[str]:
    """Keep the first `limit` distinct actions in order."""
    out: list[str] = []
    for action in actions:
        if len(out) >= limit:
            break
        if action not in out:
            out.append(action)
    return out


def build_analysis(
    ticket: Ticket,
    capability: AgentCapability,
    rules: Sequence[ClassificationRule],
    fallback: ClassificationRule,
    triggers: Sequence[HandoffCue] = (),
) -> AgentAnalysis:
    """
    Classify `ticket` with the first matching rule (or `fallback`) and pick a handoff target.
    A rule's own next_agent takes precedence over the trigger table.
    """
    content = ticket.content()
    rule = first_match(content, rules) or fallback
    if rule.confidence is not None:
        confidence = rule.confidence
    else:
        confidence = keyword_confidence(content, capability.keywords)

    next_agent = rule.next_agent
    actions = list(rule.actions)
    if next_agent is None:
        trigger = first_match(content, triggers)
        if trigger is not None:
            next_agent = trigger.role
            if trigger.action:
                # Keep room for the handoff action under the cap.
                actions = cap_actions(actions, MAX_RECOMMENDED_ACTIONS - 1) + [trigger.action]

    return AgentAnalysis(
        agent_role=capability.role,
        confidence=confidence,
        complexity=rule.complexity,
        priority=rule.priority or ticket.priority,
        estimated_time=rule.estimated_time,
        recommended_actions=cap_actions(actions),
        next_agent=next_agent,
        summary=f"{capability.name}: {rule.summary}" if rule.summary else capability.name,
    )
