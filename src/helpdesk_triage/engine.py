"""
Triage Engine
=============

Single entry point consumed by the HTTP layer and the SLA monitor process.

All components are built once by ``build_engine`` and handed to the
``TriageEngine``; nothing is held in module globals. Without a database the
engine still classifies, compares texts and computes SLA clocks; operations
that need persistence raise ``ValueError`` until one is supplied.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from helpdesk_triage.assignment.application import AssignmentService
from helpdesk_triage.assignment.domain import AssignmentScorer, TechnicianScore, TechnicianSuggestion
from helpdesk_triage.assignment.infrastructure import SQLAlchemyTechnicianRepository
from helpdesk_triage.config import Settings
from helpdesk_triage.infrastructure.database import Database
from helpdesk_triage.shared.infrastructure.config_source import ConfigSource, WatchedConfigSource
from helpdesk_triage.shared.infrastructure.logging import get_logger
from helpdesk_triage.sla.application import IAlertNotifier, SlaMonitor, SlaService
from helpdesk_triage.sla.domain import AlertEvent, SlaTracking
from helpdesk_triage.sla.infrastructure import (
    SQLAlchemyAlertRecordRepository,
    SQLAlchemySlaTrackingRepository,
    SlackAlertNotifier,
    sla_matrix_source,
)
from helpdesk_triage.triage.application import ClassificationService, DuplicateDetector
from helpdesk_triage.triage.domain import (
    ClassificationResult,
    DuplicateCandidate,
    KeywordMatcher,
    SimilarityEngine,
    TextNormalizer,
    ValidationOutcome,
)
from helpdesk_triage.triage.infrastructure import SQLAlchemySimilarTicketSource, triage_rules_source

logger = get_logger(__name__)


@dataclass(frozen=True)
class TriageOutcome:
    """Everything the intake pipeline derives for a new ticket."""
    classification: ClassificationResult
    validation: ValidationOutcome
    suggestion: Optional[TechnicianSuggestion] = None
    sla: Optional[SlaTracking] = None

    def to_dict(self) -> dict:
        return {
            "classification": self.classification.to_dict(),
            "validation": asdict(self.validation),
            "suggestion": self.suggestion.to_dict() if self.suggestion else None,
            "sla": self.sla.to_dict() if self.sla else None,
        }


@dataclass
class TriageEngine:
    """
    Facade over the triage, assignment and SLA services.

    Args:
        classification: Keyword classifier and review policy
        similarity_engine: Pairwise text similarity
        sla_service: SLA clock computation and transitions
        duplicates: Duplicate detector (needs a ticket source for lookups)
        assignment: Technician assignment (needs a technician repository)
        monitor: Periodic SLA scan (needs tracking and alert repositories)
        config_sources: Rule sources to stop on ``close``
    """
    classification: ClassificationService
    similarity_engine: SimilarityEngine
    sla_service: SlaService
    duplicates: DuplicateDetector
    assignment: Optional[AssignmentService] = None
    monitor: Optional[SlaMonitor] = None
    config_sources: List[ConfigSource] = field(default_factory=list)

    # ========== Classification ==========

    def classify(self, title: Optional[str], description: Optional[str]) -> ClassificationResult:
        return self.classification.classify(title, description)

    def validate_classification(self, result: ClassificationResult) -> ValidationOutcome:
        return self.classification.validate(result)

    def similarity(self, text_a: Optional[str], text_b: Optional[str]) -> float:
        """Similarity of two texts in [0, 1]."""
        return self.similarity_engine.similarity(text_a, text_b)

    async def find_duplicates(
        self,
        title: str,
        description: str,
        category_id: int,
    ) -> List[DuplicateCandidate]:
        return await self.duplicates.find_duplicates(title, description, category_id)

    # ========== Assignment ==========

    def _require_assignment(self) -> AssignmentService:
        if self.assignment is None:
            raise ValueError("Technician assignment not configured")
        return self.assignment

    async def suggest_technician(
        self,
        category_id: int,
        now: Optional[datetime] = None,
    ) -> TechnicianSuggestion:
        return await self._require_assignment().suggest_technician(category_id, now)

    async def top_technicians(
        self,
        category_id: int,
        limit: int = 5,
        now: Optional[datetime] = None,
    ) -> List[TechnicianScore]:
        return await self._require_assignment().top_technicians(category_id, limit, now)

    async def assign_technician(
        self,
        category_id: int,
        now: Optional[datetime] = None,
    ) -> TechnicianSuggestion:
        """Pick a technician and reserve their capacity."""
        return await self._require_assignment().assign(category_id, now)

    async def release_technician(self, technician_id: int) -> None:
        await self._require_assignment().release(technician_id)

    # ========== SLA ==========

    def compute_sla(self, urgency: int, impact: int, now: datetime) -> Optional[SlaTracking]:
        return self.sla_service.compute_sla(urgency, impact, now)

    async def start_tracking(
        self,
        ticket_id: int,
        urgency: int,
        impact: int,
        now: datetime,
    ) -> Optional[SlaTracking]:
        return await self.sla_service.start_tracking(ticket_id, urgency, impact, now)

    async def on_first_response(self, ticket_id: int, now: datetime) -> Optional[SlaTracking]:
        return await self.sla_service.on_first_response(ticket_id, now)

    async def on_resolution(self, ticket_id: int, now: datetime) -> Optional[SlaTracking]:
        return await self.sla_service.on_resolution(ticket_id, now)

    async def run_sla_scan(self, now: Optional[datetime] = None) -> List[AlertEvent]:
        """Run one SLA scan; returns no events when another scan is in progress."""
        if self.monitor is None:
            raise ValueError("SLA monitor not configured")
        return await self.monitor.run_scan(now or datetime.now(timezone.utc))

    # ========== Intake ==========

    async def triage(
        self,
        title: Optional[str],
        description: Optional[str],
        now: Optional[datetime] = None,
    ) -> TriageOutcome:
        """
        Classify a new ticket, apply the review policy, suggest a technician
        and compute its SLA clocks.

        The suggestion is skipped when assignment is not configured; the SLA
        is None when the matrix has no entry for the ticket's levels.
        """
        now = now or datetime.now(timezone.utc)

        classification = self.classify(title, description)
        validation = self.validate_classification(classification)

        suggestion = None
        if self.assignment is not None:
            suggestion = await self.assignment.suggest_technician(classification.category.id, now)

        sla = self.compute_sla(classification.urgency.id, classification.impact.id, now)

        return TriageOutcome(
            classification=classification,
            validation=validation,
            suggestion=suggestion,
            sla=sla,
        )

    def close(self) -> None:
        """Stop watching rule files."""
        for source in self.config_sources:
            if isinstance(source, WatchedConfigSource):
                source.stop_watching()


def build_engine(
    settings: Settings,
    database: Optional[Database] = None,
    notifier: Optional[IAlertNotifier] = None,
) -> TriageEngine:
    """
    Wire every component from settings.

    Args:
        settings: Application settings
        database: Enables duplicate lookup, assignment and SLA persistence
        notifier: Alert notifier; defaults to Slack when a webhook is configured

    Raises:
        ConfigurationException: If a rule file is missing or invalid
    """
    rules = triage_rules_source(settings.triage_rules_path, watch=settings.watch_config)
    matrix = sla_matrix_source(settings.sla_matrix_path, watch=settings.watch_config)

    normalizer = TextNormalizer()
    similarity_engine = SimilarityEngine(normalizer)

    classification = ClassificationService(
        rules,
        KeywordMatcher(normalizer),
        overall_threshold=settings.review_overall_threshold,
        category_threshold=settings.review_category_threshold,
        extracted_keywords=settings.extracted_keywords,
    )
    duplicate_options = dict(
        threshold=settings.duplicate_threshold,
        group_threshold=settings.duplicate_group_threshold,
        min_score=settings.duplicate_min_score,
        candidate_limit=settings.duplicate_candidate_limit,
    )

    if database is None:
        logger.info("Triage engine built without a database")
        return TriageEngine(
            classification=classification,
            similarity_engine=similarity_engine,
            sla_service=SlaService(matrix),
            duplicates=DuplicateDetector(similarity_engine, **duplicate_options),
            config_sources=[rules, matrix],
        )

    trackings = SQLAlchemySlaTrackingRepository(database)

    if notifier is None and settings.slack_webhook_url:
        notifier = SlackAlertNotifier(
            webhook_url=settings.slack_webhook_url,
            channel=settings.slack_channel,
            timeout_seconds=settings.slack_timeout_seconds,
            ticket_url_template=settings.ticket_url_template,
        )

    engine = TriageEngine(
        classification=classification,
        similarity_engine=similarity_engine,
        sla_service=SlaService(matrix, trackings),
        duplicates=DuplicateDetector(
            similarity_engine,
            SQLAlchemySimilarTicketSource(database),
            **duplicate_options,
        ),
        assignment=AssignmentService(
            SQLAlchemyTechnicianRepository(database),
            AssignmentScorer(),
            history_days=settings.assignment_history_days,
            max_attempts=settings.assignment_max_attempts,
        ),
        monitor=SlaMonitor(
            trackings,
            SQLAlchemyAlertRecordRepository(database),
            notifier,
            near_window=timedelta(minutes=settings.near_alert_window_minutes),
            breach_window=timedelta(minutes=settings.breach_alert_window_minutes),
        ),
        config_sources=[rules, matrix],
    )

    logger.info(
        "Triage engine built",
        extra={
            "notifier": type(notifier).__name__ if notifier else None,
            "watch_config": settings.watch_config,
        }
    )
    return engine
