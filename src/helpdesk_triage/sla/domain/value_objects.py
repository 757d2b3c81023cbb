"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

The SLA matrix is keyed by (urgency, impact); each entry gives response and
resolution targets plus how long before each deadline the alert threshold
sits.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from helpdesk_triage.config import Level
from helpdesk_triage.shared.infrastructure.logging import get_logger
from helpdesk_triage.sla.domain.entities import SlaTracking

logger = get_logger(__name__)


class SlaConfigEntry(BaseModel):
    """SLA targets for one (urgency, impact) pair, in minutes."""

    model_config = ConfigDict(frozen=True)

    urgency: int = Field(ge=1, le=4)
    impact: int = Field(ge=1, le=4)
    response_minutes: int = Field(gt=0)
    resolution_minutes: int = Field(gt=0)
    alert_offset_response: int = Field(default=0, ge=0)
    alert_offset_resolution: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def offsets_within_targets(self) -> "SlaConfigEntry":
        if self.alert_offset_response > self.response_minutes:
            raise ValueError("alert_offset_response cannot exceed response_minutes")
        if self.alert_offset_resolution > self.resolution_minutes:
            raise ValueError("alert_offset_resolution cannot exceed resolution_minutes")
        return self


class SlaMatrix(BaseModel):
    """
    SLA configuration loaded from YAML.

    This is a value object - immutable and defined by its attributes.
    """

    model_config = ConfigDict(frozen=True)

    entries: List[SlaConfigEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_pairs(self) -> "SlaMatrix":
        pairs = [(e.urgency, e.impact) for e in self.entries]
        if len(pairs) != len(set(pairs)):
            raise ValueError("duplicate (urgency, impact) entries in SLA matrix")
        return self

    def _index(self) -> Dict[tuple, SlaConfigEntry]:
        return {(e.urgency, e.impact): e for e in self.entries}

    def get(self, urgency: int, impact: int) -> Optional[SlaConfigEntry]:
        return self._index().get((int(urgency), int(impact)))

    def missing(self) -> List[tuple]:
        index = self._index()
        return [
            (u.value, i.value)
            for u in Level
            for i in Level
            if (u.value, i.value) not in index
        ]


class SlaCalculator:
    """Derives deadlines and alert thresholds from the SLA matrix."""

    def __init__(self, matrix: SlaMatrix):
        self._matrix = matrix

    def compute(self, urgency: int, impact: int, now: datetime) -> Optional[SlaTracking]:
        """
        Compute the SLA clocks of a ticket created at ``now``.

        Returns:
            SlaTracking, or None when the matrix has no entry for the pair
        """
        entry = self._matrix.get(urgency, impact)
        if entry is None:
            logger.warning(
                "No SLA configured for urgency/impact, ticket will not be tracked",
                extra={"urgency": int(urgency), "impact": int(impact)}
            )
            return None

        limit_response = now + timedelta(minutes=entry.response_minutes)
        limit_resolution = now + timedelta(minutes=entry.resolution_minutes)

        return SlaTracking(
            start_time=now,
            limit_response=limit_response,
            limit_resolution=limit_resolution,
            alert_threshold_response=limit_response - timedelta(minutes=entry.alert_offset_response),
            alert_threshold_resolution=limit_resolution - timedelta(minutes=entry.alert_offset_resolution),
        )
