"""
Project timeline event database model.
"""

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class EventCategory(str, Enum):
    MILESTONE = "milestone"
    MEETING = "meeting"
    INSPECTION = "inspection"
    ISSUE = "issue"
    OTHER = "other"


class ProjectEvent(Base, TimestampMixin):
    """Timeline entry on a project."""

    __tablename__ = "project_events"

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
    created_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), default=EventCategory.OTHER.value, nullable=False
    )

    deleted_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_project_events_project_date", "project_id", "date"),)

    def __repr__(self) -> str:
        return f"<ProjectEvent(id={self.id}, title={self.title}, date={self.date})>"
