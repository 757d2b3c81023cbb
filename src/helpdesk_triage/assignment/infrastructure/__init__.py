"""
Assignment Infrastructure Layer
===============================

- Models: TechnicianModel
- Repositories: SQLAlchemyTechnicianRepository
"""

from helpdesk_triage.assignment.infrastructure.models import TechnicianModel
from helpdesk_triage.assignment.infrastructure.repositories import SQLAlchemyTechnicianRepository

__all__ = [
    "TechnicianModel",
    "SQLAlchemyTechnicianRepository",
]
