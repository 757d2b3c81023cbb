"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from helpdesk_triage.config import AlertType, SLAState, SLAType, TicketStatus
from helpdesk_triage.core import DomainException


def _clock_state(
    now: datetime,
    threshold: datetime,
    limit: datetime,
    actual: Optional[datetime],
) -> SLAState:
    if actual is not None:
        return SLAState.MET if actual <= limit else SLAState.BREACHED
    if now > limit:
        return SLAState.BREACHED
    if now >= threshold:
        return SLAState.AT_RISK
    return SLAState.ON_TRACK


@dataclass(frozen=True)
class SlaTracking:
    """
    Response and resolution clocks of one ticket.

    Limits and thresholds are fixed at creation. The two transitions
    (first response, resolution) each happen at most once and return a new
    instance.
    """

    start_time: datetime
    limit_response: datetime
    limit_resolution: datetime
    alert_threshold_response: datetime
    alert_threshold_resolution: datetime
    ticket_id: Optional[int] = None
    actual_response_time: Optional[datetime] = None
    actual_resolution_time: Optional[datetime] = None
    response_met: Optional[bool] = None
    resolution_met: Optional[bool] = None

    def __post_init__(self):
        """Validate clock ordering on initialization."""
        if self.alert_threshold_response > self.limit_response:
            raise DomainException("alert_threshold_response cannot be after limit_response")
        if self.alert_threshold_resolution > self.limit_resolution:
            raise DomainException("alert_threshold_resolution cannot be after limit_resolution")
        if self.limit_response < self.start_time or self.limit_resolution < self.start_time:
            raise DomainException("SLA limits cannot be before start_time")

    def for_ticket(self, ticket_id: int) -> "SlaTracking":
        return replace(self, ticket_id=ticket_id)

    @property
    def is_responded(self) -> bool:
        return self.actual_response_time is not None

    @property
    def is_resolved(self) -> bool:
        return self.actual_resolution_time is not None

    def record_first_response(self, at: datetime) -> "SlaTracking":
        """Stop the response clock. A second call leaves the record unchanged."""
        if self.is_responded:
            return self
        return replace(
            self,
            actual_response_time=at,
            response_met=at <= self.limit_response,
        )

    def record_resolution(self, at: datetime) -> "SlaTracking":
        """Stop the resolution clock. A second call leaves the record unchanged."""
        if self.is_resolved:
            return self
        return replace(
            self,
            actual_resolution_time=at,
            resolution_met=at <= self.limit_resolution,
        )

    def response_state(self, now: datetime) -> SLAState:
        return _clock_state(
            now, self.alert_threshold_response, self.limit_response, self.actual_response_time
        )

    def resolution_state(self, now: datetime) -> SLAState:
        return _clock_state(
            now, self.alert_threshold_resolution, self.limit_resolution, self.actual_resolution_time
        )

    def state(self, sla_type: SLAType, now: datetime) -> SLAState:
        if sla_type == SLAType.RESPONSE:
            return self.response_state(now)
        return self.resolution_state(now)

    def deadline(self, sla_type: SLAType) -> datetime:
        if sla_type == SLAType.RESPONSE:
            return self.limit_response
        return self.limit_resolution

    def to_dict(self) -> dict:
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "ticket_id": self.ticket_id,
            "start_time": iso(self.start_time),
            "response": {
                "limit": iso(self.limit_response),
                "alert_threshold": iso(self.alert_threshold_response),
                "actual": iso(self.actual_response_time),
                "met": self.response_met,
            },
            "resolution": {
                "limit": iso(self.limit_resolution),
                "alert_threshold": iso(self.alert_threshold_resolution),
                "actual": iso(self.actual_resolution_time),
                "met": self.resolution_met,
            },
        }


@dataclass(frozen=True)
class MonitoredTicket:
    """A tracked ticket as seen by the monitor: tracking plus ticket context."""
    tracking: SlaTracking
    status: TicketStatus
    code: Optional[str] = None
    title: Optional[str] = None
    assigned_technician_id: Optional[int] = None

    @property
    def ticket_id(self) -> int:
        return self.tracking.ticket_id


@dataclass(frozen=True)
class AlertRecord:
    """Persisted trace of an alert, used to suppress repeats."""
    ticket_id: int
    alert_type: AlertType
    created_at: datetime
    deadline: Optional[datetime] = None
    notified: bool = False
    id: Optional[int] = None


@dataclass(frozen=True)
class AlertEvent:
    """
    SLA alert raised by a scan.

    ``minutes_remaining`` is negative once the deadline has passed.
    """
    ticket_id: int
    alert_type: AlertType
    deadline: datetime
    minutes_remaining: int
    triggered_at: datetime
    ticket_code: Optional[str] = None
    ticket_title: Optional[str] = None
    assigned_technician_id: Optional[int] = None

    @property
    def sla_type(self) -> SLAType:
        return self.alert_type.sla_type

    @property
    def is_breach(self) -> bool:
        return self.alert_type.is_breach
