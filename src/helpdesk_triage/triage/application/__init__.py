"""
Triage Application Layer
=========================

Contains:
- Services: ClassificationService, DuplicateDetector
- Repository Interfaces: ISimilarTicketSource
"""

from helpdesk_triage.triage.application.services import (
    ClassificationService,
    DuplicateDetector,
    ISimilarTicketSource,
    LOW_CATEGORY_CONFIDENCE,
    LOW_OVERALL_CONFIDENCE,
)

__all__ = [
    # Services
    "ClassificationService",
    "DuplicateDetector",
    # Repository Interfaces
    "ISimilarTicketSource",
    # Review reasons
    "LOW_OVERALL_CONFIDENCE",
    "LOW_CATEGORY_CONFIDENCE",
]
