"""
Project cost database model.
"""

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class CostCategory(str, Enum):
    """Cost categories used for breakdowns and reports."""

    MATERIALS = "materials"
    LABOR = "labor"
    PERMITS = "permits"
    PROFESSIONAL_FEES = "professional_fees"
    EQUIPMENT = "equipment"
    UTILITIES = "utilities"
    INSURANCE = "insurance"
    FINANCING = "financing"
    OTHER = "other"


class Cost(Base, TimestampMixin):
    """A single expense recorded against a project. Amounts are integer cents."""

    __tablename__ = "costs"

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
    contact_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("contacts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), default=CostCategory.OTHER.value, nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    deleted_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    contact = relationship("Contact", lazy="joined")

    __table_args__ = (
        Index("ix_costs_project_date", "project_id", "date"),
        Index("ix_costs_project_category", "project_id", "category"),
    )

    def __repr__(self) -> str:
        return f"<Cost(id={self.id}, project_id={self.project_id}, amount={self.amount})>"

    @property
    def contact_name(self) -> Optional[str]:
        return self.contact.display_name if self.contact is not None else None
