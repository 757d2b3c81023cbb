"""
Assignment Domain Layer
=======================

Contains:
- Entities: TechnicianProfile, PerformanceHistory, TechnicianScore, TechnicianSuggestion
- Domain Services: AssignmentScorer

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk_triage.assignment.domain.entities import (
    TechnicianProfile,
    PerformanceHistory,
    TechnicianScore,
    TechnicianSuggestion,
)
from helpdesk_triage.assignment.domain.scoring import AssignmentScorer, NO_TECHNICIAN_AVAILABLE

__all__ = [
    "TechnicianProfile",
    "PerformanceHistory",
    "TechnicianScore",
    "TechnicianSuggestion",
    "AssignmentScorer",
    "NO_TECHNICIAN_AVAILABLE",
]
