"""
Technician Scoring
==================

score = specialization + load factor + performance

- specialization: 40 for a specialist in the ticket's category, else 10
- load factor: by current load / capacity, <30% 30, <60% 20, <90% 10, else 5
- performance: 15 without history in the category; otherwise an SLA
  compliance tier (>=90% 15, >=70% 10, else 5) plus a satisfaction tier
  (>=4.5 15, >=3.5 10, else 5)

Candidates are ordered by score (highest first), then load ratio (lowest
first), then technician id (lowest first), so equal inputs always produce
the same choice.
"""

from typing import Mapping, Optional, Sequence

from helpdesk_triage.assignment.domain.entities import (
    PerformanceHistory,
    TechnicianProfile,
    TechnicianScore,
    TechnicianSuggestion,
)

NO_TECHNICIAN_AVAILABLE = "no technician available"

SPECIALIST_POINTS = 40
GENERALIST_POINTS = 10
NO_HISTORY_POINTS = 15

# (upper bound on load ratio, points, reason)
LOAD_TIERS = (
    (0.3, 30, "low workload"),
    (0.6, 20, "moderate workload"),
    (0.9, 10, "high workload"),
)
FULL_LOAD = (5, "near maximum capacity")

# (minimum, points, reason)
SLA_TIERS = (
    (90.0, 15, "excellent SLA compliance"),
    (70.0, 10, "good SLA compliance"),
)
SLA_FLOOR = (5, "SLA compliance needs improvement")

SATISFACTION_TIERS = (
    (4.5, 15, "high satisfaction"),
    (3.5, 10, "good satisfaction"),
)
SATISFACTION_FLOOR = (5, "low satisfaction")


def _tier(value: Optional[float], tiers, floor) -> tuple[int, str]:
    if value is not None:
        for minimum, points, reason in tiers:
            if value >= minimum:
                return points, reason
    return floor


class AssignmentScorer:
    """Pure scoring and selection of technicians for a category."""

    def score(
        self,
        technician: TechnicianProfile,
        category_id: int,
        performance: Optional[PerformanceHistory] = None,
    ) -> TechnicianScore:
        reasons = []

        if category_id in technician.specialties:
            total = SPECIALIST_POINTS
            reasons.append("specialized in this category")
        else:
            total = GENERALIST_POINTS

        ratio = technician.load_ratio
        for bound, points, reason in LOAD_TIERS:
            if ratio < bound:
                total += points
                reasons.append(reason)
                break
        else:
            total += FULL_LOAD[0]
            reasons.append(FULL_LOAD[1])

        if performance is None or performance.is_empty:
            total += NO_HISTORY_POINTS
            reasons.append("no history in this category")
        else:
            sla_points, sla_reason = _tier(performance.sla_compliance, SLA_TIERS, SLA_FLOOR)
            sat_points, sat_reason = _tier(performance.satisfaction, SATISFACTION_TIERS, SATISFACTION_FLOOR)
            total += sla_points + sat_points
            reasons.append(f"{sla_reason} and {sat_reason}")

        return TechnicianScore(technician=technician, score=total, reasons=tuple(reasons))

    def rank(
        self,
        candidates: Sequence[TechnicianProfile],
        category_id: int,
        performance: Optional[Mapping[int, Optional[PerformanceHistory]]] = None,
    ) -> list[TechnicianScore]:
        """Score every eligible candidate and return them in selection order."""
        performance = performance or {}
        scores = [
            self.score(technician, category_id, performance.get(technician.id))
            for technician in candidates
            if technician.is_eligible and technician.accepts(category_id)
        ]
        scores.sort(key=lambda s: (-s.score, s.technician.load_ratio, s.technician.id))
        return scores

    def select(
        self,
        candidates: Sequence[TechnicianProfile],
        category_id: int,
        performance: Optional[Mapping[int, Optional[PerformanceHistory]]] = None,
    ) -> TechnicianSuggestion:
        ranked = self.rank(candidates, category_id, performance)
        if not ranked:
            return TechnicianSuggestion(technician=None, score=0, reasons=(NO_TECHNICIAN_AVAILABLE,))
        best = ranked[0]
        return TechnicianSuggestion(technician=best.technician, score=best.score, reasons=best.reasons)
