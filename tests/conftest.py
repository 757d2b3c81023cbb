"""
Test Configuration
==================

Pytest fixtures for helpdesk-triage tests.

In-memory fakes implement the repository and notifier interfaces so the
application services can be exercised without a database.
"""

import os
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from helpdesk_triage.assignment.application import ITechnicianRepository
from helpdesk_triage.assignment.domain import PerformanceHistory, TechnicianProfile
from helpdesk_triage.config import DEFAULTS_DIR, AlertType, SLAType, TicketStatus
from helpdesk_triage.core import ResourceNotFoundException
from helpdesk_triage.shared.infrastructure.config_source import StaticConfigSource
from helpdesk_triage.sla.application import (
    IAlertNotifier,
    IAlertRecordRepository,
    ISlaTrackingRepository,
)
from helpdesk_triage.sla.domain import AlertEvent, AlertRecord, MonitoredTicket, SlaTracking
from helpdesk_triage.sla.infrastructure import load_sla_matrix
from helpdesk_triage.triage.application import ClassificationService, ISimilarTicketSource
from helpdesk_triage.triage.domain import KeywordMatcher, SimilarityEngine, TextNormalizer, TicketText
from helpdesk_triage.triage.infrastructure import load_rule_set

# Set test environment
os.environ["HELPDESK_ENVIRONMENT"] = "testing"

T0 = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


# ========== In-memory fakes ==========

class InMemorySlaTrackingRepository(ISlaTrackingRepository):

    def __init__(self):
        self.trackings: Dict[int, SlaTracking] = {}
        self.statuses: Dict[int, TicketStatus] = {}
        self.saves = 0

    def put(self, tracking: SlaTracking, status: TicketStatus = TicketStatus.NEW) -> None:
        self.trackings[tracking.ticket_id] = tracking
        self.statuses[tracking.ticket_id] = status

    async def add(self, tracking: SlaTracking) -> SlaTracking:
        self.put(tracking)
        return tracking

    async def get(self, ticket_id: int) -> Optional[SlaTracking]:
        return self.trackings.get(ticket_id)

    async def record_transition(self, tracking: SlaTracking, sla_type: SLAType) -> bool:
        stored = self.trackings.get(tracking.ticket_id)
        if stored is None:
            raise ResourceNotFoundException("SlaTracking", str(tracking.ticket_id))

        if sla_type == SLAType.RESPONSE:
            updated = stored.record_first_response(tracking.actual_response_time)
        else:
            updated = stored.record_resolution(tracking.actual_resolution_time)
        if updated is stored:
            return False

        self.saves += 1
        self.trackings[tracking.ticket_id] = updated
        return True

    async def list_monitored(self, now: datetime) -> List[MonitoredTicket]:
        return [
            MonitoredTicket(
                tracking=tracking,
                status=self.statuses[ticket_id],
                code=f"TCK-{ticket_id}",
                title=f"Ticket {ticket_id}",
            )
            for ticket_id, tracking in sorted(self.trackings.items())
        ]


class InMemoryAlertRecordRepository(IAlertRecordRepository):

    def __init__(self):
        self.records: List[AlertRecord] = []

    async def exists_since(self, ticket_id: int, alert_type: AlertType, since: datetime) -> bool:
        return any(
            r.ticket_id == ticket_id and r.alert_type == alert_type and r.created_at >= since
            for r in self.records
        )

    async def add(self, record: AlertRecord) -> AlertRecord:
        stored = replace(record, id=len(self.records) + 1)
        self.records.append(stored)
        return stored

    async def mark_notified(self, record_id: int) -> None:
        self.records = [
            replace(r, notified=True) if r.id == record_id else r
            for r in self.records
        ]


class RecordingNotifier(IAlertNotifier):

    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.events: List[AlertEvent] = []
        self._result = result
        self._error = error

    async def send(self, event: AlertEvent) -> bool:
        self.events.append(event)
        if self._error is not None:
            raise self._error
        return self._result


class InMemoryTechnicianRepository(ITechnicianRepository):

    def __init__(
        self,
        technicians: List[TechnicianProfile],
        history: Optional[Dict[int, PerformanceHistory]] = None,
    ):
        self.technicians = {t.id: t for t in technicians}
        self.history = history or {}
        self.reject: set[int] = set()

    async def find_candidates(self, category_id: int) -> List[TechnicianProfile]:
        return [
            t for t in self.technicians.values()
            if t.is_eligible and t.accepts(category_id)
        ]

    async def performance(self, technician_ids, category_id, since) -> Dict[int, PerformanceHistory]:
        return {i: self.history[i] for i in technician_ids if i in self.history}

    async def try_reserve(self, technician_id: int) -> bool:
        tech = self.technicians[technician_id]
        if technician_id in self.reject or not tech.is_eligible:
            return False
        self.technicians[technician_id] = TechnicianProfile(
            id=tech.id,
            name=tech.name,
            current_load=tech.current_load + 1,
            max_tickets=tech.max_tickets,
            available=tech.available,
            specialties=tech.specialties,
        )
        return True

    async def release(self, technician_id: int) -> None:
        tech = self.technicians[technician_id]
        self.technicians[technician_id] = TechnicianProfile(
            id=tech.id,
            name=tech.name,
            current_load=max(0, tech.current_load - 1),
            max_tickets=tech.max_tickets,
            available=tech.available,
            specialties=tech.specialties,
        )


class InMemorySimilarTicketSource(ISimilarTicketSource):

    def __init__(self, tickets: List[TicketText]):
        self.tickets = tickets
        self.calls = []

    async def recent_resolved(self, category_id: int, limit: int) -> List[TicketText]:
        self.calls.append((category_id, limit))
        return self.tickets[:limit]


# ========== Fixtures ==========

@pytest.fixture
def now() -> datetime:
    return T0


@pytest.fixture(scope="session")
def normalizer() -> TextNormalizer:
    return TextNormalizer()


@pytest.fixture(scope="session")
def matcher(normalizer) -> KeywordMatcher:
    return KeywordMatcher(normalizer)


@pytest.fixture(scope="session")
def similarity_engine(normalizer) -> SimilarityEngine:
    return SimilarityEngine(normalizer)


@pytest.fixture(scope="session")
def rule_set():
    return load_rule_set(DEFAULTS_DIR / "triage_rules.yaml")


@pytest.fixture(scope="session")
def sla_matrix():
    return load_sla_matrix(DEFAULTS_DIR / "sla_matrix.yaml")


@pytest.fixture
def classification_service(rule_set, matcher) -> ClassificationService:
    return ClassificationService(StaticConfigSource(rule_set), matcher)


@pytest.fixture
def tracking_repository() -> InMemorySlaTrackingRepository:
    return InMemorySlaTrackingRepository()


@pytest.fixture
def alert_repository() -> InMemoryAlertRecordRepository:
    return InMemoryAlertRecordRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_technician():
    """Factory for technician profiles with sensible defaults."""
    def _make(tech_id: int, load: int = 0, max_tickets: int = 10, specialties=(), available: bool = True):
        return TechnicianProfile(
            id=tech_id,
            name=f"Tecnico {tech_id}",
            current_load=load,
            max_tickets=max_tickets,
            available=available,
            specialties=frozenset(specialties),
        )
    return _make
