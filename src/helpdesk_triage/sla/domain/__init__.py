"""
SLA Domain Layer
================

Domain layer for the SLA tracking module.

Contains:
- Entities: SlaTracking, MonitoredTicket, AlertRecord, AlertEvent
- Value Objects: SlaConfigEntry, SlaMatrix
- Domain Services: SlaCalculator

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk_triage.sla.domain.entities import (
    SlaTracking,
    MonitoredTicket,
    AlertRecord,
    AlertEvent,
)
from helpdesk_triage.sla.domain.value_objects import (
    SlaConfigEntry,
    SlaMatrix,
    SlaCalculator,
)

__all__ = [
    # Entities
    "SlaTracking",
    "MonitoredTicket",
    "AlertRecord",
    "AlertEvent",
    # Value Objects & Services
    "SlaConfigEntry",
    "SlaMatrix",
    "SlaCalculator",
]
