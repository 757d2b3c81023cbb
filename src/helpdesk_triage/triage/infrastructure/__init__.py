"""
Triage Infrastructure Layer
============================

Contains:
- Config: triage rule file loading and validation
- Repositories: duplicate candidates from the tickets table
"""

from helpdesk_triage.triage.infrastructure.config import (
    build_rule_set,
    load_rule_set,
    triage_rules_source,
)
from helpdesk_triage.triage.infrastructure.repositories import SQLAlchemySimilarTicketSource

__all__ = [
    "build_rule_set",
    "load_rule_set",
    "triage_rules_source",
    "SQLAlchemySimilarTicketSource",
]
