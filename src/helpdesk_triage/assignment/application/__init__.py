"""
Assignment Application Layer
============================

Contains:
- Services: AssignmentService
- Repository interface: ITechnicianRepository
"""

from helpdesk_triage.assignment.application.services import (
    AssignmentService,
    ITechnicianRepository,
)

__all__ = [
    "AssignmentService",
    "ITechnicianRepository",
]
