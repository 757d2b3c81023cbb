"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA tracking:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer and SLA matrix loading
- External: Slack notifier and the scan scheduler
"""

from helpdesk_triage.sla.infrastructure.models import SlaTrackingModel, AlertRecordModel
from helpdesk_triage.sla.infrastructure.repositories import (
    SQLAlchemySlaTrackingRepository,
    SQLAlchemyAlertRecordRepository,
    build_sla_matrix,
    load_sla_matrix,
    sla_matrix_source,
)
from helpdesk_triage.sla.infrastructure.external import (
    CircuitBreaker,
    SlackAlertNotifier,
    SlaScheduler,
)

__all__ = [
    "SlaTrackingModel",
    "AlertRecordModel",
    "SQLAlchemySlaTrackingRepository",
    "SQLAlchemyAlertRecordRepository",
    "build_sla_matrix",
    "load_sla_matrix",
    "sla_matrix_source",
    "CircuitBreaker",
    "SlackAlertNotifier",
    "SlaScheduler",
]
