"""
Assignment Infrastructure Models
================================

SQLAlchemy ORM model for technicians.
"""

from typing import List

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_triage.infrastructure.database import Base


class TechnicianModel(Base):
    """
    Database model for a technician.

    Maps to the 'technicians' table. ``specialties`` is a list of category
    ids; an empty list means the technician takes any category.
    """
    __tablename__ = "technicians"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    specialties: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)

    current_load: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_tickets: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
