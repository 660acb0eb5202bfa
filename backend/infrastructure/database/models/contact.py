"""
Contact (address book) database model.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ContactCategory(str, Enum):
    CONTRACTOR = "contractor"
    SUPPLIER = "supplier"
    CONSULTANT = "consultant"
    PROFESSIONAL = "professional"
    OTHER = "other"


class Contact(Base, TimestampMixin):
    """Per-user contact. Only the owning user can see or change it."""

    __tablename__ = "contacts"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    category: Mapped[str] = mapped_column(
        String(50), default=ContactCategory.OTHER.value, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_contacts_user_email", "user_id", "email"),)

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.display_name})>"

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        if self.company:
            return f"{full} ({self.company})"
        return full
