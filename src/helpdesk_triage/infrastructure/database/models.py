"""
Shared Ticket Model
===================

The ``tickets`` table is owned by the ticketing platform; the triage engine
reads and writes only the classification, assignment and SLA related
columns. Every bounded context queries it, so it lives here rather than in
one of them.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_triage.config import TicketStatus
from helpdesk_triage.infrastructure.database import Base


class TicketModel(Base):
    """
    Database model for a support ticket.

    Maps to the 'tickets' table.
    """
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Classification
    type_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    urgency_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    impact_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    priority_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status_id: Mapped[int] = mapped_column(Integer, nullable=False, default=int(TicketStatus.NEW), index=True)
    assigned_technician_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    first_response_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Requester feedback, 1 to 5
    satisfaction_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
