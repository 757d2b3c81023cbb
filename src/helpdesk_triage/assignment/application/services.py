"""
Assignment Application Services
===============================

Coordinates the technician repository with the pure scorer.

Capacity is enforced by the repository: ``try_reserve`` increments a
technician's load only while it is below capacity, in a single conditional
update. When a reservation loses a race, the next-ranked candidate is
tried.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from helpdesk_triage.assignment.domain import (
    AssignmentScorer,
    NO_TECHNICIAN_AVAILABLE,
    PerformanceHistory,
    TechnicianProfile,
    TechnicianScore,
    TechnicianSuggestion,
)
from helpdesk_triage.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class ITechnicianRepository(ABC):
    """Interface for technician roster, history and load."""

    @abstractmethod
    async def find_candidates(self, category_id: int) -> List[TechnicianProfile]:
        """Available technicians below capacity who take this category."""

    @abstractmethod
    async def performance(
        self,
        technician_ids: List[int],
        category_id: int,
        since: datetime,
    ) -> Dict[int, PerformanceHistory]:
        """History per technician; technicians without tickets may be omitted."""

    @abstractmethod
    async def try_reserve(self, technician_id: int) -> bool:
        """Atomically increment load if below capacity. True on success."""

    @abstractmethod
    async def release(self, technician_id: int) -> None:
        """Decrement load, never below zero."""


# ========== Application Services ==========

class AssignmentService:
    """Suggests and assigns technicians for classified tickets."""

    def __init__(
        self,
        repository: ITechnicianRepository,
        scorer: Optional[AssignmentScorer] = None,
        history_days: int = 90,
        max_attempts: int = 3,
    ):
        self._repository = repository
        self._scorer = scorer or AssignmentScorer()
        self._history = timedelta(days=history_days)
        self._max_attempts = max_attempts

    async def _ranked(self, category_id: int, now: Optional[datetime]) -> List[TechnicianScore]:
        now = now or datetime.now(timezone.utc)
        candidates = await self._repository.find_candidates(category_id)
        if not candidates:
            return []

        history = await self._repository.performance(
            [c.id for c in candidates], category_id, now - self._history
        )
        return self._scorer.rank(candidates, category_id, history)

    async def suggest_technician(
        self,
        category_id: int,
        now: Optional[datetime] = None,
    ) -> TechnicianSuggestion:
        """
        Pick the best technician for a category without reserving capacity.

        Returns:
            TechnicianSuggestion; ``technician`` is None when nobody is eligible
        """
        ranked = await self._ranked(category_id, now)
        if not ranked:
            logger.info("No technician available", extra={"category_id": category_id})
            return TechnicianSuggestion(technician=None, score=0, reasons=(NO_TECHNICIAN_AVAILABLE,))

        best = ranked[0]
        logger.info(
            "Technician suggested",
            extra={
                "category_id": category_id,
                "technician_id": best.technician.id,
                "score": best.score,
                "candidates": len(ranked),
            }
        )
        return TechnicianSuggestion(technician=best.technician, score=best.score, reasons=best.reasons)

    async def top_technicians(
        self,
        category_id: int,
        limit: int = 5,
        now: Optional[datetime] = None,
    ) -> List[TechnicianScore]:
        """Best candidates for a category, in selection order."""
        return (await self._ranked(category_id, now))[:limit]

    async def assign(
        self,
        category_id: int,
        now: Optional[datetime] = None,
    ) -> TechnicianSuggestion:
        """
        Choose a technician and reserve one unit of their capacity.

        Returns:
            The technician whose reservation succeeded, or an unassigned
            suggestion when every attempt failed
        """
        ranked = await self._ranked(category_id, now)

        for candidate in ranked[:self._max_attempts]:
            if await self._repository.try_reserve(candidate.technician.id):
                logger.info(
                    "Technician assigned",
                    extra={
                        "category_id": category_id,
                        "technician_id": candidate.technician.id,
                        "score": candidate.score,
                    }
                )
                return TechnicianSuggestion(
                    technician=candidate.technician,
                    score=candidate.score,
                    reasons=candidate.reasons,
                )

            logger.warning(
                "Technician reached capacity before reservation",
                extra={"technician_id": candidate.technician.id}
            )

        return TechnicianSuggestion(technician=None, score=0, reasons=(NO_TECHNICIAN_AVAILABLE,))

    async def release(self, technician_id: int) -> None:
        """Give back one unit of capacity when a ticket is closed or reassigned."""
        await self._repository.release(technician_id)
