"""
Triage Domain Entities
======================

Domain entities for the ticket triage module.

Contains pure Python business objects produced by keyword-driven
classification and by duplicate detection.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class DimensionResult:
    """Winning class of one dimension and the keywords that justified it."""
    id: int
    label: str
    confidence: int  # 0 to 100
    matched_keywords: tuple[str, ...] = ()

    def __post_init__(self):
        if not 0 <= self.confidence <= 100:
            raise ValueError("Confidence must be between 0 and 100")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "confidence": self.confidence,
            "matched_keywords": list(self.matched_keywords),
        }


@dataclass(frozen=True)
class ClassificationResult:
    """
    Result of ticket classification.

    ``priority`` is derived from urgency and impact; its confidence is the
    lower of the two. ``confidence`` is the rounded mean of the four
    classifier confidences.
    """
    type: DimensionResult
    category: DimensionResult
    urgency: DimensionResult
    impact: DimensionResult
    priority: DimensionResult
    confidence: int
    requires_review: bool
    keywords: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for storage alongside the ticket."""
        return {
            "type": self.type.to_dict(),
            "category": self.category.to_dict(),
            "urgency": self.urgency.to_dict(),
            "impact": self.impact.to_dict(),
            "priority": self.priority.to_dict(),
            "confidence": self.confidence,
            "requires_review": self.requires_review,
            "keywords": list(self.keywords),
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """Verdict of the review policy on a classification."""
    is_valid: bool
    requires_review: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class TicketText:
    """A previously filed ticket offered as a duplicate candidate."""
    id: int
    title: str
    description: str = ""
    code: Optional[str] = None
    resolved_at: Optional[datetime] = None

    @property
    def full_text(self) -> str:
        return f"{self.title} {self.description}".strip()


@dataclass(frozen=True)
class DuplicateCandidate:
    """A candidate ticket with its similarity to the ticket under triage."""
    ticket: TicketText
    score: float
    is_duplicate: bool


@dataclass
class TicketGroup:
    """Tickets similar enough to the group's first member."""
    anchor: TicketText
    members: list[TicketText] = field(default_factory=list)

    @property
    def size(self) -> int:
        return 1 + len(self.members)
