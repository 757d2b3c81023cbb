"""
Assignment Infrastructure Repositories
======================================

SQLAlchemy implementation of the technician repository.

Load reservation is a single conditional UPDATE, so two concurrent
assignments can never push a technician past ``max_tickets``.
"""

from datetime import datetime
from typing import Dict, List

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from helpdesk_triage.assignment.application import ITechnicianRepository
from helpdesk_triage.assignment.domain import PerformanceHistory, TechnicianProfile
from helpdesk_triage.assignment.infrastructure.models import TechnicianModel
from helpdesk_triage.core import RepositoryException
from helpdesk_triage.infrastructure.database import Database
from helpdesk_triage.infrastructure.database.models import TicketModel
from helpdesk_triage.shared.infrastructure.logging import get_logger
from helpdesk_triage.sla.infrastructure.models import SlaTrackingModel

logger = get_logger(__name__)


def _to_entity(model: TechnicianModel) -> TechnicianProfile:
    return TechnicianProfile(
        id=model.id,
        name=model.name,
        current_load=model.current_load,
        max_tickets=model.max_tickets,
        available=model.available,
        specialties=frozenset(model.specialties or ()),
    )


class SQLAlchemyTechnicianRepository(ITechnicianRepository):
    """SQLAlchemy implementation of the technician repository."""

    def __init__(self, database: Database):
        self._database = database

    async def find_candidates(self, category_id: int) -> List[TechnicianProfile]:
        stmt = (
            select(TechnicianModel)
            .where(
                TechnicianModel.active.is_(True),
                TechnicianModel.available.is_(True),
                TechnicianModel.current_load < TechnicianModel.max_tickets,
            )
            .order_by(TechnicianModel.id)
        )
        async with self._database.session() as session:
            models = (await session.execute(stmt)).scalars().all()

        # specialties are JSON, so the category filter runs here
        return [
            profile for profile in map(_to_entity, models)
            if profile.accepts(category_id)
        ]

    async def performance(
        self,
        technician_ids: List[int],
        category_id: int,
        since: datetime,
    ) -> Dict[int, PerformanceHistory]:
        if not technician_ids:
            return {}

        stmt = (
            select(
                TicketModel.assigned_technician_id,
                func.count(TicketModel.id),
                func.avg(case((SlaTrackingModel.resolution_met.is_(True), 100.0), else_=0.0)),
                func.avg(TicketModel.satisfaction_score),
            )
            .outerjoin(SlaTrackingModel, SlaTrackingModel.ticket_id == TicketModel.id)
            .where(
                TicketModel.assigned_technician_id.in_(technician_ids),
                TicketModel.category_id == category_id,
                TicketModel.created_at >= since,
            )
            .group_by(TicketModel.assigned_technician_id)
        )

        async with self._database.session() as session:
            rows = (await session.execute(stmt)).all()

        return {
            technician_id: PerformanceHistory(
                tickets=tickets,
                sla_compliance=float(compliance) if compliance is not None else None,
                satisfaction=float(satisfaction) if satisfaction is not None else None,
            )
            for technician_id, tickets, compliance, satisfaction in rows
        }

    async def try_reserve(self, technician_id: int) -> bool:
        stmt = (
            update(TechnicianModel)
            .where(
                TechnicianModel.id == technician_id,
                TechnicianModel.active.is_(True),
                TechnicianModel.available.is_(True),
                TechnicianModel.current_load < TechnicianModel.max_tickets,
            )
            .values(current_load=TechnicianModel.current_load + 1)
        )
        try:
            async with self._database.session() as session:
                result = await session.execute(stmt)
                reserved = result.rowcount == 1
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to reserve capacity for technician {technician_id}",
                {"error": str(e)}
            ) from e

        if not reserved:
            logger.debug("Reservation rejected", extra={"technician_id": technician_id})
        return reserved

    async def release(self, technician_id: int) -> None:
        stmt = (
            update(TechnicianModel)
            .where(
                TechnicianModel.id == technician_id,
                TechnicianModel.current_load > 0,
            )
            .values(current_load=TechnicianModel.current_load - 1)
        )
        try:
            async with self._database.session() as session:
                await session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to release capacity for technician {technician_id}",
                {"error": str(e)}
            ) from e
