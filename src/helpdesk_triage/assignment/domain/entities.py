"""
Assignment Domain Entities
==========================

Technician profiles and scoring results.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TechnicianProfile:
    """
    Technician as seen by the scorer.

    ``specialties`` holds category ids; an empty set means the technician
    takes tickets of any category.
    """
    id: int
    name: str
    current_load: int
    max_tickets: int
    available: bool = True
    specialties: frozenset = field(default_factory=frozenset)

    @property
    def has_capacity(self) -> bool:
        return self.current_load < self.max_tickets

    @property
    def is_eligible(self) -> bool:
        return self.available and self.has_capacity

    @property
    def load_ratio(self) -> float:
        if self.max_tickets <= 0:
            return 1.0
        return self.current_load / self.max_tickets

    def accepts(self, category_id: int) -> bool:
        return not self.specialties or category_id in self.specialties


@dataclass(frozen=True)
class PerformanceHistory:
    """Aggregates for one technician and category over the history window."""
    tickets: int
    sla_compliance: Optional[float] = None  # percentage, 0 to 100
    satisfaction: Optional[float] = None  # average, 1 to 5

    @property
    def is_empty(self) -> bool:
        return self.tickets <= 0


@dataclass(frozen=True)
class TechnicianScore:
    """Score of one candidate and the reasons behind it."""
    technician: TechnicianProfile
    score: int
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class TechnicianSuggestion:
    """Outcome of a suggestion; ``technician`` is None when nobody is available."""
    technician: Optional[TechnicianProfile]
    score: int
    reasons: tuple[str, ...]

    @property
    def technician_id(self) -> Optional[int]:
        return self.technician.id if self.technician else None

    def to_dict(self) -> dict:
        return {
            "technician_id": self.technician_id,
            "technician_name": self.technician.name if self.technician else None,
            "score": self.score,
            "reasons": list(self.reasons),
        }
