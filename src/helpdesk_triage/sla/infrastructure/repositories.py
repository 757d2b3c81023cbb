"""
SLA Infrastructure Repositories
=================================

Concrete implementations of the SLA repository interfaces using SQLAlchemy.

Repositories are long-lived (the monitor keeps them between scans), so each
operation opens its own unit of work on the shared ``Database``.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, exists, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from helpdesk_triage.config import FINAL_STATUSES, AlertType, SLAType, TicketStatus
from helpdesk_triage.core import ConfigurationException, RepositoryException, ResourceNotFoundException
from helpdesk_triage.infrastructure.database import Database, ensure_utc
from helpdesk_triage.infrastructure.database.models import TicketModel
from helpdesk_triage.shared.infrastructure.config_source import (
    ConfigSource,
    StaticConfigSource,
    WatchedConfigSource,
    read_yaml,
)
from helpdesk_triage.sla.application import IAlertRecordRepository, ISlaTrackingRepository
from helpdesk_triage.sla.domain import AlertRecord, MonitoredTicket, SlaMatrix, SlaTracking
from helpdesk_triage.sla.infrastructure.models import AlertRecordModel, SlaTrackingModel
from helpdesk_triage.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _to_entity(model: SlaTrackingModel) -> SlaTracking:
    return SlaTracking(
        ticket_id=model.ticket_id,
        start_time=ensure_utc(model.start_time),
        limit_response=ensure_utc(model.limit_response),
        limit_resolution=ensure_utc(model.limit_resolution),
        alert_threshold_response=ensure_utc(model.alert_threshold_response),
        alert_threshold_resolution=ensure_utc(model.alert_threshold_resolution),
        actual_response_time=ensure_utc(model.actual_response_time),
        actual_resolution_time=ensure_utc(model.actual_resolution_time),
        response_met=model.response_met,
        resolution_met=model.resolution_met,
    )


class SQLAlchemySlaTrackingRepository(ISlaTrackingRepository):
    """SQLAlchemy implementation of the SLA tracking repository."""

    def __init__(self, database: Database):
        self._database = database

    async def add(self, tracking: SlaTracking) -> SlaTracking:
        if tracking.ticket_id is None:
            raise RepositoryException("Cannot store SLA tracking without a ticket id")

        model = SlaTrackingModel(
            ticket_id=tracking.ticket_id,
            start_time=tracking.start_time,
            limit_response=tracking.limit_response,
            limit_resolution=tracking.limit_resolution,
            alert_threshold_response=tracking.alert_threshold_response,
            alert_threshold_resolution=tracking.alert_threshold_resolution,
            actual_response_time=tracking.actual_response_time,
            actual_resolution_time=tracking.actual_resolution_time,
            response_met=tracking.response_met,
            resolution_met=tracking.resolution_met,
        )
        try:
            async with self._database.session() as session:
                session.add(model)
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to store SLA tracking for ticket {tracking.ticket_id}",
                {"error": str(e)}
            ) from e
        return tracking

    async def get(self, ticket_id: int) -> Optional[SlaTracking]:
        async with self._database.session() as session:
            model = await session.get(SlaTrackingModel, ticket_id)
            return _to_entity(model) if model else None

    async def record_transition(self, tracking: SlaTracking, sla_type: SLAType) -> bool:
        if sla_type == SLAType.RESPONSE:
            stmt = (
                update(SlaTrackingModel)
                .where(
                    SlaTrackingModel.ticket_id == tracking.ticket_id,
                    SlaTrackingModel.actual_response_time.is_(None),
                )
                .values(
                    actual_response_time=tracking.actual_response_time,
                    response_met=tracking.response_met,
                )
            )
        else:
            stmt = (
                update(SlaTrackingModel)
                .where(
                    SlaTrackingModel.ticket_id == tracking.ticket_id,
                    SlaTrackingModel.actual_resolution_time.is_(None),
                )
                .values(
                    actual_resolution_time=tracking.actual_resolution_time,
                    resolution_met=tracking.resolution_met,
                )
            )

        try:
            async with self._database.session() as session:
                result = await session.execute(stmt)
                if result.rowcount == 1:
                    return True
                if await session.get(SlaTrackingModel, tracking.ticket_id) is None:
                    raise ResourceNotFoundException("SlaTracking", str(tracking.ticket_id))
                return False
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to update SLA tracking for ticket {tracking.ticket_id}",
                {"error": str(e), "sla_type": sla_type.value}
            ) from e

    async def list_monitored(self, now: datetime) -> List[MonitoredTicket]:
        response_due = and_(
            SlaTrackingModel.actual_response_time.is_(None),
            SlaTrackingModel.alert_threshold_response <= now,
        )
        resolution_due = and_(
            SlaTrackingModel.actual_resolution_time.is_(None),
            SlaTrackingModel.alert_threshold_resolution <= now,
        )
        stmt = (
            select(SlaTrackingModel, TicketModel)
            .join(TicketModel, TicketModel.id == SlaTrackingModel.ticket_id)
            .where(
                TicketModel.status_id.not_in([int(s) for s in FINAL_STATUSES]),
                or_(response_due, resolution_due),
            )
            .order_by(SlaTrackingModel.ticket_id)
        )

        async with self._database.session() as session:
            rows = (await session.execute(stmt)).all()

        return [
            MonitoredTicket(
                tracking=_to_entity(tracking),
                status=TicketStatus(ticket.status_id),
                code=ticket.code,
                title=ticket.title,
                assigned_technician_id=ticket.assigned_technician_id,
            )
            for tracking, ticket in rows
        ]


class SQLAlchemyAlertRecordRepository(IAlertRecordRepository):
    """SQLAlchemy implementation of the alert record repository."""

    def __init__(self, database: Database):
        self._database = database

    async def exists_since(self, ticket_id: int, alert_type: AlertType, since: datetime) -> bool:
        stmt = select(
            exists().where(
                AlertRecordModel.ticket_id == ticket_id,
                AlertRecordModel.alert_type == alert_type.value,
                AlertRecordModel.created_at >= since,
            )
        )
        async with self._database.session() as session:
            return bool((await session.execute(stmt)).scalar())

    async def add(self, record: AlertRecord) -> AlertRecord:
        model = AlertRecordModel(
            ticket_id=record.ticket_id,
            alert_type=record.alert_type.value,
            created_at=record.created_at,
            deadline=record.deadline,
            notified=record.notified,
        )
        try:
            async with self._database.session() as session:
                session.add(model)
                await session.flush()
                record_id = model.id
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to store alert for ticket {record.ticket_id}",
                {"error": str(e), "alert_type": record.alert_type.value}
            ) from e

        return AlertRecord(
            id=record_id,
            ticket_id=record.ticket_id,
            alert_type=record.alert_type,
            created_at=record.created_at,
            deadline=record.deadline,
            notified=record.notified,
        )

    async def mark_notified(self, record_id: int) -> None:
        stmt = (
            update(AlertRecordModel)
            .where(AlertRecordModel.id == record_id)
            .values(notified=True)
        )
        try:
            async with self._database.session() as session:
                await session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to flag alert {record_id} as notified",
                {"error": str(e)}
            ) from e


# ========== Configuration ==========

def build_sla_matrix(data: dict) -> SlaMatrix:
    """
    Build the SLA matrix from parsed YAML.

    Raises:
        ConfigurationException: If the file defines no entries
    """
    matrix = SlaMatrix(**data)
    if not matrix.entries:
        raise ConfigurationException("SLA matrix defines no entries")

    missing = matrix.missing()
    if missing:
        logger.warning(
            "SLA matrix is incomplete, tickets with these pairs will not be tracked",
            extra={"missing": [f"{u}/{i}" for u, i in missing]}
        )
    return matrix


def load_sla_matrix(path) -> SlaMatrix:
    """Load and validate the SLA matrix file once."""
    try:
        return build_sla_matrix(read_yaml(path))
    except ValueError as e:
        raise ConfigurationException(
            f"Invalid SLA matrix in {path}: {e}",
            {"path": str(path)}
        ) from e


def sla_matrix_source(path, watch: bool = False) -> ConfigSource[SlaMatrix]:
    """Static source, or a watched one that reloads on file changes."""
    if not watch:
        return StaticConfigSource(load_sla_matrix(path))
    source = WatchedConfigSource(path, build_sla_matrix)
    source.start_watching()
    return source
