"""
Classification Rules
====================

Data-driven rule tables for ticket classification.

Each dimension (type, category, urgency, impact) is a ``DimensionRules``
table: an ordered tuple of weighted keyword classes plus a default class
and a confidence normalizer. ``DimensionClassifier`` evaluates one table.
The priority matrix maps (urgency, impact) to a priority level.

All rule objects are frozen so a loaded rule set can be shared safely.
"""

import math
from dataclasses import dataclass, field
from typing import Mapping, Optional

from helpdesk_triage.config import Dimension, Level
from helpdesk_triage.shared.infrastructure.logging import get_logger
from helpdesk_triage.triage.domain.entities import DimensionResult
from helpdesk_triage.triage.domain.nlp import KeywordMatcher

logger = get_logger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class ClassRule:
    """One candidate class of a dimension."""
    id: int
    label: str
    weight: int
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class DimensionRules:
    """
    Rule table for one dimension.

    ``classes`` are stored in tie-break order: when two classes reach the
    same score, the one declared first wins.
    """
    dimension: Dimension
    default_id: int
    default_label: str
    normalizer: int
    classes: tuple[ClassRule, ...] = ()

    def __post_init__(self):
        if self.normalizer <= 0:
            raise ValueError(f"{self.dimension.value}: normalizer must be positive")

    def label_for(self, class_id: int) -> str:
        for rule in self.classes:
            if rule.id == class_id:
                return rule.label
        if class_id == self.default_id:
            return self.default_label
        return str(class_id)


class DimensionClassifier:
    """
    Scores every class of one dimension and picks the winner.

    score = weight x matched keywords. Confidence grows with the number of
    matches across all classes and saturates at 100.
    """

    def __init__(self, rules: DimensionRules, matcher: KeywordMatcher):
        self._rules = rules
        self._matcher = matcher

    @property
    def dimension(self) -> Dimension:
        return self._rules.dimension

    def classify(self, text: Optional[str]) -> DimensionResult:
        best: Optional[ClassRule] = None
        best_score = 0
        best_matches: list[str] = []
        total_matches = 0

        for rule in self._rules.classes:
            matches = self._matcher.matched_keywords(text, rule.keywords)
            total_matches += len(matches)
            score = rule.weight * len(matches)
            # strict comparison keeps the earlier class on ties
            if score > best_score:
                best, best_score, best_matches = rule, score, matches

        if best is None:
            return DimensionResult(
                id=self._rules.default_id,
                label=self._rules.default_label,
                confidence=0,
                matched_keywords=(),
            )

        confidence = min(100, round_half_up(100 * total_matches / self._rules.normalizer))
        return DimensionResult(
            id=best.id,
            label=best.label,
            confidence=confidence,
            matched_keywords=tuple(best_matches),
        )


@dataclass(frozen=True)
class PriorityMatrix:
    """Complete (urgency, impact) -> priority table."""
    entries: Mapping[tuple[int, int], int] = field(default_factory=dict)
    default: Level = Level.MEDIUM

    def missing(self) -> list[tuple[int, int]]:
        return [
            (urgency.value, impact.value)
            for urgency in Level
            for impact in Level
            if (urgency.value, impact.value) not in self.entries
        ]


class PriorityResolver:
    """Looks up priority levels; a missing entry falls back to the default."""

    def __init__(self, matrix: PriorityMatrix):
        self._matrix = matrix

    def resolve(self, urgency: int, impact: int) -> int:
        priority = self._matrix.entries.get((int(urgency), int(impact)))
        if priority is None:
            logger.warning(
                "Priority matrix has no entry, using default",
                extra={
                    "urgency": int(urgency),
                    "impact": int(impact),
                    "default_priority": int(self._matrix.default),
                }
            )
            return int(self._matrix.default)
        return priority


@dataclass(frozen=True)
class TriageRuleSet:
    """Everything the classifier needs, loaded together from one file."""
    type: DimensionRules
    category: DimensionRules
    urgency: DimensionRules
    impact: DimensionRules
    priority_matrix: PriorityMatrix

    def for_dimension(self, dimension: Dimension) -> DimensionRules:
        return getattr(self, dimension.value)
