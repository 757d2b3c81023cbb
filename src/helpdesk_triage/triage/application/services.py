"""
Triage Application Services
============================

Application services for ticket classification and duplicate detection.

Following SOLID principles:
- Single Responsibility: classification and duplicate detection are separate
- Dependency Inversion: candidate tickets come from an abstract source
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from helpdesk_triage.config import Dimension, Level
from helpdesk_triage.shared.infrastructure.config_source import ConfigSource
from helpdesk_triage.shared.infrastructure.logging import get_logger
from helpdesk_triage.triage.domain import (
    ClassificationResult,
    DimensionClassifier,
    DimensionResult,
    DuplicateCandidate,
    KeywordMatcher,
    PriorityResolver,
    SimilarityEngine,
    TicketGroup,
    TicketText,
    TriageRuleSet,
    ValidationOutcome,
)
from helpdesk_triage.triage.domain.rules import round_half_up

logger = get_logger(__name__)

LOW_OVERALL_CONFIDENCE = "overall confidence too low"
LOW_CATEGORY_CONFIDENCE = "category confidence too low"


# ========== Repository Interfaces ==========

class ISimilarTicketSource(ABC):
    """Interface for fetching duplicate candidates."""

    @abstractmethod
    async def recent_resolved(self, category_id: int, limit: int) -> List[TicketText]:
        """Most recently resolved tickets of a category, newest first."""


# ========== Application Services ==========

class ClassificationService:
    """
    Runs the four dimension classifiers, resolves priority and applies the
    review policy.

    Rules are read from the config source on every call, so a hot reload
    takes effect on the next ticket without touching in-flight ones.
    """

    def __init__(
        self,
        rules: ConfigSource[TriageRuleSet],
        matcher: KeywordMatcher,
        overall_threshold: int = 40,
        category_threshold: int = 50,
        extracted_keywords: int = 15,
    ):
        self._rules = rules
        self._matcher = matcher
        self._overall_threshold = overall_threshold
        self._category_threshold = category_threshold
        self._extracted_keywords = extracted_keywords

    def classify(self, title: Optional[str], description: Optional[str]) -> ClassificationResult:
        """
        Classify a ticket.

        Args:
            title: Ticket title
            description: Ticket description

        Returns:
            ClassificationResult with type, category, urgency, impact and priority
        """
        rule_set = self._rules.get()
        text = f"{title or ''} {description or ''}".strip()

        results = {
            dimension: DimensionClassifier(rule_set.for_dimension(dimension), self._matcher).classify(text)
            for dimension in (Dimension.TYPE, Dimension.CATEGORY, Dimension.URGENCY, Dimension.IMPACT)
        }
        urgency = results[Dimension.URGENCY]
        impact = results[Dimension.IMPACT]

        priority_id = PriorityResolver(rule_set.priority_matrix).resolve(urgency.id, impact.id)
        priority = DimensionResult(
            id=priority_id,
            label=Level(priority_id).name,
            confidence=min(urgency.confidence, impact.confidence),
        )

        confidence = round_half_up(sum(r.confidence for r in results.values()) / len(results))

        result = ClassificationResult(
            type=results[Dimension.TYPE],
            category=results[Dimension.CATEGORY],
            urgency=urgency,
            impact=impact,
            priority=priority,
            confidence=confidence,
            requires_review=confidence < self._overall_threshold
            or results[Dimension.CATEGORY].confidence < self._category_threshold,
            keywords=tuple(self._matcher.extract_keywords(text, self._extracted_keywords)),
        )

        logger.info(
            "Ticket classified",
            extra={
                "type": result.type.label,
                "category": result.category.label,
                "urgency": result.urgency.label,
                "impact": result.impact.label,
                "priority": result.priority.id,
                "confidence": result.confidence,
                "requires_review": result.requires_review,
            }
        )
        return result

    def validate(self, result: ClassificationResult) -> ValidationOutcome:
        """Apply the review policy to a classification."""
        if result.confidence < self._overall_threshold:
            return ValidationOutcome(
                is_valid=False,
                requires_review=True,
                reason=LOW_OVERALL_CONFIDENCE,
            )
        if result.category.confidence < self._category_threshold:
            return ValidationOutcome(
                is_valid=True,
                requires_review=True,
                reason=LOW_CATEGORY_CONFIDENCE,
            )
        return ValidationOutcome(is_valid=True, requires_review=False)


class DuplicateDetector:
    """Ranks previously resolved tickets by similarity to a new one."""

    def __init__(
        self,
        similarity: SimilarityEngine,
        source: Optional[ISimilarTicketSource] = None,
        threshold: float = 0.75,
        group_threshold: float = 0.7,
        min_score: float = 0.3,
        candidate_limit: int = 50,
    ):
        self._similarity = similarity
        self._source = source
        self._threshold = threshold
        self._group_threshold = group_threshold
        self._min_score = min_score
        self._candidate_limit = candidate_limit

    def rank(self, text: str, candidates: Sequence[TicketText]) -> List[DuplicateCandidate]:
        """
        Score candidates against ``text``.

        Scores are rounded to two decimals; candidates below the minimum
        score are dropped. Ordered by score, highest first, then by ticket id.
        """
        ranked = []
        for ticket in candidates:
            score = round(self._similarity.similarity(text, ticket.full_text), 2)
            if score < self._min_score:
                continue
            ranked.append(DuplicateCandidate(
                ticket=ticket,
                score=score,
                is_duplicate=score >= self._threshold,
            ))
        ranked.sort(key=lambda c: (-c.score, c.ticket.id))
        return ranked

    async def find_duplicates(
        self,
        title: str,
        description: str,
        category_id: int,
    ) -> List[DuplicateCandidate]:
        """Rank recently resolved tickets of the same category."""
        if self._source is None:
            raise ValueError("Similar ticket source not configured")

        candidates = await self._source.recent_resolved(category_id, self._candidate_limit)
        ranked = self.rank(f"{title} {description}", candidates)

        logger.info(
            "Duplicate search completed",
            extra={
                "category_id": category_id,
                "candidates": len(candidates),
                "matches": len(ranked),
                "duplicates": sum(1 for c in ranked if c.is_duplicate),
            }
        )
        return ranked

    def is_duplicate(self, text_a: str, text_b: str) -> bool:
        return self._similarity.similarity(text_a, text_b) >= self._threshold

    def group_similar(self, tickets: Sequence[TicketText]) -> List[TicketGroup]:
        """
        Greedy grouping: each ungrouped ticket anchors a group and pulls in
        every later ungrouped ticket similar to it.
        """
        groups = []
        grouped: set[int] = set()

        for i, anchor in enumerate(tickets):
            if anchor.id in grouped:
                continue
            group = TicketGroup(anchor=anchor)
            grouped.add(anchor.id)
            for other in tickets[i + 1:]:
                if other.id in grouped:
                    continue
                if self._similarity.similarity(anchor.full_text, other.full_text) >= self._group_threshold:
                    group.members.append(other)
                    grouped.add(other.id)
            groups.append(group)

        return groups
