"""
Triage Infrastructure Repositories
====================================

SQLAlchemy implementation of the duplicate candidate source.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from helpdesk_triage.config import TicketStatus
from helpdesk_triage.core import RepositoryException
from helpdesk_triage.infrastructure.database import Database, ensure_utc
from helpdesk_triage.infrastructure.database.models import TicketModel
from helpdesk_triage.triage.application import ISimilarTicketSource
from helpdesk_triage.triage.domain import TicketText

RESOLVED_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)


class SQLAlchemySimilarTicketSource(ISimilarTicketSource):
    """Reads resolved tickets of a category from the tickets table."""

    def __init__(self, database: Database):
        self._database = database

    async def recent_resolved(self, category_id: int, limit: int) -> List[TicketText]:
        stmt = (
            select(TicketModel)
            .where(
                TicketModel.category_id == category_id,
                TicketModel.status_id.in_([int(s) for s in RESOLVED_STATUSES]),
            )
            .order_by(TicketModel.resolved_at.desc(), TicketModel.id.desc())
            .limit(limit)
        )
        try:
            async with self._database.session() as session:
                models = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to load resolved tickets for category {category_id}",
                {"error": str(e)}
            ) from e

        return [
            TicketText(
                id=model.id,
                title=model.title,
                description=model.description or "",
                code=model.code,
                resolved_at=ensure_utc(model.resolved_at),
            )
            for model in models
        ]
