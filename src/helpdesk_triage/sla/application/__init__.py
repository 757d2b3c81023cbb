"""
SLA Application Layer
======================

Application layer for the SLA tracking module.

Contains:
- Services: SlaService (clock computation and transitions), SlaMonitor (periodic scan)
- Repository and notifier interfaces

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk_triage.sla.application.services import (
    SlaService,
    SlaMonitor,
    due_alerts,
    ISlaTrackingRepository,
    IAlertRecordRepository,
    IAlertNotifier,
)

__all__ = [
    # Services
    "SlaService",
    "SlaMonitor",
    "due_alerts",
    # Interfaces
    "ISlaTrackingRepository",
    "IAlertRecordRepository",
    "IAlertNotifier",
]
