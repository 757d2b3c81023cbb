"""
SLA Application Services
=========================

Application services coordinate SLA domain logic with repositories.

- SlaService: computes SLA clocks and records the two lifecycle transitions
- SlaMonitor: periodic, run-exclusive scan that raises deduplicated alerts

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Iterator, List, Optional

from helpdesk_triage.config import AlertType, SLAType
from helpdesk_triage.shared.infrastructure.config_source import ConfigSource
from helpdesk_triage.shared.infrastructure.logging import (
    ContextLogger,
    get_context_logger,
    get_logger,
    log_latency,
)
from helpdesk_triage.sla.domain import (
    AlertEvent,
    AlertRecord,
    MonitoredTicket,
    SlaCalculator,
    SlaMatrix,
    SlaTracking,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISlaTrackingRepository(ABC):
    """Interface for SLA tracking data access."""

    @abstractmethod
    async def add(self, tracking: SlaTracking) -> SlaTracking:
        """Persist a new tracking record."""

    @abstractmethod
    async def get(self, ticket_id: int) -> Optional[SlaTracking]:
        """Get the tracking record of a ticket."""

    @abstractmethod
    async def record_transition(self, tracking: SlaTracking, sla_type: SLAType) -> bool:
        """
        Store the actual time and compliance flag of one clock of ``tracking``.

        The write only applies while that clock is still pending in storage,
        so concurrent transitions never overwrite each other.

        Returns:
            True when stored, False when the clock had already stopped

        Raises:
            ResourceNotFoundException: If the ticket is not tracked
        """

    @abstractmethod
    async def list_monitored(self, now: datetime) -> List[MonitoredTicket]:
        """
        Tracked tickets in a non-terminal status with at least one pending
        clock whose alert threshold is at or before ``now``.
        """


class IAlertRecordRepository(ABC):
    """Interface for alert record data access."""

    @abstractmethod
    async def exists_since(self, ticket_id: int, alert_type: AlertType, since: datetime) -> bool:
        """Check for an alert of this type created at or after ``since``."""

    @abstractmethod
    async def add(self, record: AlertRecord) -> AlertRecord:
        """Persist an alert record, not yet notified."""

    @abstractmethod
    async def mark_notified(self, record_id: int) -> None:
        """Flag a stored alert record as delivered."""


class IAlertNotifier(ABC):
    """Interface for alert delivery."""

    @abstractmethod
    async def send(self, event: AlertEvent) -> bool:
        """Deliver an alert. Returns True when delivered."""


# ========== Application Services ==========

class SlaService:
    """
    Service for SLA clock computation and lifecycle transitions.

    ``compute_sla`` is pure; the other operations need a tracking repository.
    """

    def __init__(
        self,
        matrix: ConfigSource[SlaMatrix],
        tracking_repository: Optional[ISlaTrackingRepository] = None,
    ):
        self._matrix = matrix
        self._trackings = tracking_repository

    def _require_repository(self) -> ISlaTrackingRepository:
        if self._trackings is None:
            raise ValueError("SLA tracking repository not configured")
        return self._trackings

    def compute_sla(self, urgency: int, impact: int, now: datetime) -> Optional[SlaTracking]:
        """Compute clocks for a ticket created at ``now``; None when unconfigured."""
        return SlaCalculator(self._matrix.get()).compute(urgency, impact, now)

    async def start_tracking(
        self,
        ticket_id: int,
        urgency: int,
        impact: int,
        now: datetime,
    ) -> Optional[SlaTracking]:
        """
        Compute and persist the SLA clocks of a new ticket.

        Returns:
            The stored tracking, or None when the ticket proceeds untracked
        """
        repository = self._require_repository()
        tracking = self.compute_sla(urgency, impact, now)
        if tracking is None:
            return None

        stored = await repository.add(tracking.for_ticket(ticket_id))
        logger.info(
            "SLA tracking started",
            extra={
                "ticket_id": ticket_id,
                "limit_response": stored.limit_response.isoformat(),
                "limit_resolution": stored.limit_resolution.isoformat(),
            }
        )
        return stored

    async def on_first_response(self, ticket_id: int, now: datetime) -> Optional[SlaTracking]:
        """Stop the response clock of a ticket."""
        return await self._transition(ticket_id, SLAType.RESPONSE, now)

    async def on_resolution(self, ticket_id: int, now: datetime) -> Optional[SlaTracking]:
        """Stop the resolution clock of a ticket."""
        return await self._transition(ticket_id, SLAType.RESOLUTION, now)

    async def _transition(
        self,
        ticket_id: int,
        sla_type: SLAType,
        now: datetime,
    ) -> Optional[SlaTracking]:
        repository = self._require_repository()
        tracking = await repository.get(ticket_id)
        if tracking is None:
            logger.warning(
                "Ticket has no SLA tracking",
                extra={"ticket_id": ticket_id, "sla_type": sla_type.value}
            )
            return None

        if sla_type == SLAType.RESPONSE:
            updated = tracking.record_first_response(now)
        else:
            updated = tracking.record_resolution(now)

        if updated is tracking:
            logger.debug(
                "SLA clock already stopped",
                extra={"ticket_id": ticket_id, "sla_type": sla_type.value}
            )
            return tracking

        if not await repository.record_transition(updated, sla_type):
            logger.debug(
                "SLA clock stopped concurrently",
                extra={"ticket_id": ticket_id, "sla_type": sla_type.value}
            )
            return await repository.get(ticket_id)

        saved = await repository.get(ticket_id)
        met = saved.response_met if sla_type == SLAType.RESPONSE else saved.resolution_met
        logger.info(
            "SLA clock stopped",
            extra={"ticket_id": ticket_id, "sla_type": sla_type.value, "met": met}
        )
        return saved


CLOCKS = (
    (SLAType.RESPONSE, AlertType.RESPONSE_NEAR, AlertType.RESPONSE_BREACHED),
    (SLAType.RESOLUTION, AlertType.RESOLUTION_NEAR, AlertType.RESOLUTION_BREACHED),
)


def due_alerts(tracking: SlaTracking, now: datetime) -> Iterator[AlertType]:
    """
    Alert types a tracking qualifies for at ``now``.

    A pending clock past its limit yields the breached type only; one past
    its threshold but not its limit yields the near type.
    """
    for sla_type, near, breached in CLOCKS:
        stopped = tracking.is_responded if sla_type == SLAType.RESPONSE else tracking.is_resolved
        if stopped:
            continue
        if now > tracking.deadline(sla_type):
            yield breached
        elif now >= (
            tracking.alert_threshold_response
            if sla_type == SLAType.RESPONSE
            else tracking.alert_threshold_resolution
        ):
            yield near


class SlaMonitor:
    """
    Periodic SLA scan with alert deduplication.

    At most one scan runs at a time; a call made while a scan is in
    progress is skipped and returns no events.
    """

    def __init__(
        self,
        tracking_repository: ISlaTrackingRepository,
        alert_repository: IAlertRecordRepository,
        notifier: Optional[IAlertNotifier] = None,
        near_window: timedelta = timedelta(hours=2),
        breach_window: timedelta = timedelta(hours=4),
    ):
        self._trackings = tracking_repository
        self._alerts = alert_repository
        self._notifier = notifier
        self._near_window = near_window
        self._breach_window = breach_window
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def window_for(self, alert_type: AlertType) -> timedelta:
        return self._breach_window if alert_type.is_breach else self._near_window

    async def run_scan(self, now: datetime) -> List[AlertEvent]:
        """
        Scan tracked tickets and raise new alerts.

        Every log record of one scan carries the same ``correlation_id``.

        Returns:
            Alert events raised by this scan (empty when skipped)
        """
        if self._lock.locked():
            logger.warning("SLA scan already running, skipping this run")
            return []

        async with self._lock:
            scan_logger = get_context_logger(__name__, f"sla-scan-{uuid.uuid4().hex[:12]}")
            with log_latency(scan_logger, "sla_scan"):
                return await self._scan(now, scan_logger)

    async def _scan(self, now: datetime, scan_logger: ContextLogger) -> List[AlertEvent]:
        tickets = await self._trackings.list_monitored(now)
        events: List[AlertEvent] = []
        suppressed = 0

        for ticket in tickets:
            if ticket.status.is_final:
                continue

            for alert_type in due_alerts(ticket.tracking, now):
                since = now - self.window_for(alert_type)
                if await self._alerts.exists_since(ticket.ticket_id, alert_type, since):
                    suppressed += 1
                    continue

                event = self._build_event(ticket, alert_type, now)
                # the record exists before delivery is attempted
                record = await self._alerts.add(AlertRecord(
                    ticket_id=ticket.ticket_id,
                    alert_type=alert_type,
                    created_at=now,
                    deadline=event.deadline,
                ))
                if await self._notify(event, scan_logger):
                    await self._alerts.mark_notified(record.id)

                scan_logger.info(
                    "SLA alert raised",
                    extra={
                        "ticket_id": event.ticket_id,
                        "alert_type": alert_type.value,
                        "minutes_remaining": event.minutes_remaining,
                    }
                )
                events.append(event)

        scan_logger.info(
            "SLA scan completed",
            extra={
                "tickets": len(tickets),
                "alerts": len(events),
                "suppressed": suppressed,
                "breaches": sum(1 for e in events if e.is_breach),
            }
        )
        return events

    @staticmethod
    def _build_event(ticket: MonitoredTicket, alert_type: AlertType, now: datetime) -> AlertEvent:
        deadline = ticket.tracking.deadline(alert_type.sla_type)
        return AlertEvent(
            ticket_id=ticket.ticket_id,
            alert_type=alert_type,
            deadline=deadline,
            minutes_remaining=int((deadline - now).total_seconds() // 60),
            triggered_at=now,
            ticket_code=ticket.code,
            ticket_title=ticket.title,
            assigned_technician_id=ticket.assigned_technician_id,
        )

    async def _notify(self, event: AlertEvent, scan_logger: ContextLogger) -> bool:
        if self._notifier is None:
            return False
        try:
            return await self._notifier.send(event)
        except Exception:
            scan_logger.exception(
                "Alert delivery failed",
                extra={"ticket_id": event.ticket_id, "alert_type": event.alert_type.value}
            )
            return False
