"""
Audit log database model.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

# Path values are audited as given, so they are cut to fit
ENTITY_ID_MAX_LENGTH = 64


class AuditAction(str, Enum):
    """Audit log action types."""

    ACCESSED = "accessed"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AuditEntityType(str, Enum):
    """Audit log entity types."""

    PROJECT = "project"
    PROJECT_ACCESS = "project_access"
    COST = "cost"
    CONTACT = "contact"
    DOCUMENT = "document"
    EVENT = "event"
    VENDOR_RATING = "vendor_rating"
    COMMENT = "comment"
    PHASE = "phase"


class AuditLog(Base):
    """Append-only record of access decisions and entity mutations.

    Rows are only ever inserted; nothing in the codebase updates or deletes them.
    """

    __tablename__ = "audit_logs"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # SET NULL so removing a user keeps the trail
    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Not a foreign key: entries outlive the project row
    project_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False), nullable=True, index=True
    )

    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(
        String(ENTITY_ID_MAX_LENGTH), nullable=True
    )

    # "metadata" is reserved on declarative classes
    details: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    user = relationship("User", foreign_keys=[user_id], lazy="joined")

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id", "action"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"entity={self.entity_type}:{self.entity_id})>"
        )
