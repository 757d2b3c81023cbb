"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_triage.infrastructure.database import Base


class SlaTrackingModel(Base):
    """
    Database model for SlaTracking.

    Maps to the 'sla_tracking' table, one row per ticket.
    """
    __tablename__ = "sla_tracking"

    ticket_id: Mapped[int] = mapped_column(Integer, ForeignKey("tickets.id"), primary_key=True)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    limit_response: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    limit_resolution: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    alert_threshold_response: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    alert_threshold_resolution: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    actual_response_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_resolution_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    response_met: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    resolution_met: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)


class AlertRecordModel(Base):
    """
    Database model for AlertRecord.

    Maps to the 'sla_alerts' table.
    """
    __tablename__ = "sla_alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(Integer, ForeignKey("tickets.id"), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_sla_alerts_dedup", "ticket_id", "alert_type", "created_at"),
    )
