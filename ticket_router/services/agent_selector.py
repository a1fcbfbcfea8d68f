"""
Keyword-overlap agent selection.

For each candidate role:
  score = (|routing keywords found in subject + description| / |routing keywords|) * routing_weight
Candidates scoring <= the confidence floor are discarded; the best remaining score wins and
ties go to the lowest capability priority. None means "no specialist qualifies" and the
caller falls back to the coordinator role.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from ticket_router.config import CONFIDENCE_FLOOR
from ticket_router.models import AgentRole, Ticket
from ticket_router.services.capability_registry import CapabilityRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateScore:
    role: AgentRole
    score: float
    matched: int
    total: int
    priority: int

    @property
    def reasoning(self) -> str:
        return f"Matched {self.matched}/{self.total} keywords for {self.role.value}"


class AgentSelector:
    def __init__(self, registry: CapabilityRegistry, floor: float = CONFIDENCE_FLOOR):
        self.registry = registry
        self.floor = floor

    def _candidates(self, candidates: Optional[Iterable[AgentRole]]) -> list[AgentRole]:
        roles = self.registry.routable_roles() if candidates is None else candidates
        # Stable order so equal (score, priority) pairs resolve the same way every call.
        return sorted(set(roles), key=lambda r: r.value)

    def _match_counts(self, content: str, roles: list[AgentRole]) -> tuple[np.ndarray, np.ndarray]:
        matched = np.zeros(len(roles), dtype=np.int64)
        total = np.zeros(len(roles), dtype=np.int64)
        for i, role in enumerate(roles):
            keywords = self.registry.get_capability(role).routing_keywords
            total[i] = len(keywords)
            matched[i] = sum(1 for k in keywords if k in content)
        return matched, total

    def _compute_scores(self, content: str, roles: list[AgentRole]) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Score vector for `roles` plus the matched/total keyword counts behind it."""
        matched, total = self._match_counts(content, roles)
        weights = np.array(
            [self.registry.get_capability(r).routing_weight for r in roles], dtype=np.float64
        )
        ratio = np.divide(
            matched, total, out=np.zeros(len(roles), dtype=np.float64), where=total > 0
        )
        return ratio * weights, matched, total

    def rank(self, ticket: Ticket, candidates: Optional[Iterable[AgentRole]] = None) -> list[CandidateScore]:
        """Candidates above the floor, best first (score desc, then priority asc)."""
        roles = self._candidates(candidates)
        if not roles:
            return []
        scores, matched, total = self._compute_scores(ticket.content(), roles)
        priorities = np.array([self.registry.get_capability(r).priority for r in roles], dtype=np.int64)
        # lexsort: last key is primary.
        order = np.lexsort((priorities, -scores))
        ranked = []
        for i in order:
            if scores[i] <= self.floor:
                continue
            ranked.append(CandidateScore(
                role=roles[i],
                score=float(scores[i]),
                matched=int(matched[i]),
                total=int(total[i]),
                priority=int(priorities[i]),
            ))
        return ranked

    def select(self, ticket: Ticket, candidates: Optional[Iterable[AgentRole]] = None) -> Optional[AgentRole]:
        """Best candidate above the floor, or None when nothing qualifies."""
        ranked = self.rank(ticket, candidates)
        if not ranked:
            logger.debug("No candidate cleared floor %.2f for ticket %s.", self.floor, ticket.id)
            return None
        best = ranked[0]
        logger.debug("Selected %s for ticket %s (%.3f, %s).", best.role.value, ticket.id, best.score, best.reasoning)
        return best.role

    def score(self, ticket: Ticket, role: AgentRole) -> float:
        """Raw (un-floored) score of one role."""
        scores, _, _ = self._compute_scores(ticket.content(), [role])
        return float(scores[0])
