"""
Construction phase database model.
"""

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class PhaseStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    DELAYED = "delayed"


class ProjectPhase(Base, TimestampMixin):
    """Numbered stage of a project with planned and actual dates."""

    __tablename__ = "project_phases"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phase_number: Mapped[int] = mapped_column(Integer, nullable=False)
    phase_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    planned_start_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    planned_end_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    actual_start_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    actual_end_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PhaseStatus.PLANNED.value, nullable=False
    )

    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_project_phases_progress"),
        Index("ix_project_phases_project_number", "project_id", "phase_number"),
    )

    def __repr__(self) -> str:
        return f"<ProjectPhase(id={self.id}, number={self.phase_number}, name={self.name})>"
