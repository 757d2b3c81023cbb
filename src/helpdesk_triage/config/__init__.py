"""
Configuration Module
====================

Application settings and domain constants.

Settings are loaded from environment variables (and an optional ``.env``
file) using pydantic-settings. Rule files for the triage engine and the SLA
matrix ship with the package and can be overridden by path.
"""

from enum import Enum, IntEnum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULTS_DIR = Path(__file__).parent / "defaults"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-triage", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Rule Files ==========
    triage_rules_path: Path = Field(
        default=DEFAULTS_DIR / "triage_rules.yaml",
        description="YAML file with keyword rules and the priority matrix"
    )
    sla_matrix_path: Path = Field(
        default=DEFAULTS_DIR / "sla_matrix.yaml",
        description="YAML file with SLA targets keyed by urgency and impact"
    )
    watch_config: bool = Field(
        default=False,
        description="Reload rule files when they change on disk"
    )

    # ========== Classification ==========
    review_overall_threshold: int = Field(
        default=40,
        description="Overall confidence below which a classification is invalid",
        ge=0,
        le=100
    )
    review_category_threshold: int = Field(
        default=50,
        description="Category confidence below which a classification needs review",
        ge=0,
        le=100
    )
    extracted_keywords: int = Field(
        default=15,
        description="Number of generic keywords attached to a classification",
        ge=0
    )

    # ========== Duplicate Detection ==========
    duplicate_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    duplicate_group_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    duplicate_min_score: float = Field(
        default=0.3,
        description="Candidates scoring below this are not reported",
        ge=0.0,
        le=1.0
    )
    duplicate_candidate_limit: int = Field(default=50, ge=1)

    # ========== Assignment ==========
    assignment_history_days: int = Field(
        default=90,
        description="Window for technician performance history",
        ge=1
    )
    assignment_max_attempts: int = Field(
        default=3,
        description="Candidates tried when a capacity reservation loses a race",
        ge=1
    )

    # ========== SLA Monitor ==========
    sla_scan_interval_seconds: int = Field(
        default=3600,
        description="Seconds between SLA scans",
        ge=10
    )
    near_alert_window_minutes: int = Field(default=120, ge=1)
    breach_alert_window_minutes: int = Field(default=240, ge=1)

    # ========== Slack Integration ==========
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for notifications"
    )
    slack_channel: str = Field(
        default="#soporte-sla",
        description="Slack channel for SLA notifications"
    )
    slack_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Slack API calls",
        ge=0.1,
        le=30
    )
    ticket_url_template: str = Field(
        default="https://helpdesk.example.com/tickets/{ticket_id}",
        description="Link used in alert messages"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HELPDESK_",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class Level(IntEnum):
    """Shared scale for urgency, impact and priority (1 is the most severe)."""
    CRITICAL = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4


class TicketType(IntEnum):
    """Ticket types."""
    INCIDENTE = 1
    SOLICITUD = 2
    CONSULTA = 3


class Category(IntEnum):
    """Ticket categories."""
    GOOGLE_SHEETS = 1
    LOCKER = 2
    CERTIFICADOS = 3
    BOT = 4
    ACCESOS = 5
    EMAIL = 6
    HARDWARE = 7
    SOFTWARE = 8
    RED = 9
    CONSULTA = 10


class TicketStatus(IntEnum):
    """Ticket lifecycle statuses."""
    NEW = 1
    ASSIGNED = 2
    IN_PROGRESS = 3
    WAITING = 4
    RESOLVED = 5
    CLOSED = 6
    CANCELLED = 7
    REOPENED = 8

    @property
    def is_final(self) -> bool:
        return self in FINAL_STATUSES


class Dimension(str, Enum):
    """Classification dimensions."""
    TYPE = "type"
    CATEGORY = "category"
    URGENCY = "urgency"
    IMPACT = "impact"


class SLAType(str, Enum):
    """Types of SLA clocks."""
    RESPONSE = "response"
    RESOLUTION = "resolution"


class SLAState(str, Enum):
    """SLA clock states."""
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BREACHED = "breached"
    MET = "met"


class AlertType(str, Enum):
    """SLA alert types."""
    RESPONSE_NEAR = "response_near"
    RESOLUTION_NEAR = "resolution_near"
    RESPONSE_BREACHED = "response_breached"
    RESOLUTION_BREACHED = "resolution_breached"

    @property
    def sla_type(self) -> SLAType:
        if self in (AlertType.RESPONSE_NEAR, AlertType.RESPONSE_BREACHED):
            return SLAType.RESPONSE
        return SLAType.RESOLUTION

    @property
    def is_breach(self) -> bool:
        return self in (AlertType.RESPONSE_BREACHED, AlertType.RESOLUTION_BREACHED)


# ========== Lists for validation ==========

FINAL_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED, TicketStatus.CANCELLED})
LEVELS = [Level.CRITICAL, Level.HIGH, Level.MEDIUM, Level.LOW]
DIMENSIONS = [Dimension.TYPE, Dimension.CATEGORY, Dimension.URGENCY, Dimension.IMPACT]
