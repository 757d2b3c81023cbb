"""
Triage Domain Layer
===================

Domain layer for the ticket triage module.

Contains:
- Text normalization and keyword matching (TextNormalizer, KeywordMatcher)
- Rule tables and classifiers (DimensionRules, DimensionClassifier, PriorityResolver)
- Similarity scoring (SimilarityEngine)
- Entities (ClassificationResult, ValidationOutcome, DuplicateCandidate)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk_triage.triage.domain.entities import (
    DimensionResult,
    ClassificationResult,
    ValidationOutcome,
    TicketText,
    DuplicateCandidate,
    TicketGroup,
)
from helpdesk_triage.triage.domain.nlp import TextNormalizer, KeywordMatcher, SPANISH_STOPWORDS
from helpdesk_triage.triage.domain.rules import (
    ClassRule,
    DimensionRules,
    DimensionClassifier,
    PriorityMatrix,
    PriorityResolver,
    TriageRuleSet,
)
from helpdesk_triage.triage.domain.similarity import SimilarityEngine

__all__ = [
    # Entities
    "DimensionResult",
    "ClassificationResult",
    "ValidationOutcome",
    "TicketText",
    "DuplicateCandidate",
    "TicketGroup",
    # Text processing
    "TextNormalizer",
    "KeywordMatcher",
    "SPANISH_STOPWORDS",
    # Rules
    "ClassRule",
    "DimensionRules",
    "DimensionClassifier",
    "PriorityMatrix",
    "PriorityResolver",
    "TriageRuleSet",
    # Similarity
    "SimilarityEngine",
]
