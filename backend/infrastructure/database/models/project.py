"""
Project and partner access database models.
"""

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, as_utc


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ProjectType(str, Enum):
    """Kind of development work."""

    RENOVATION = "renovation"
    NEW_BUILD = "new_build"
    DEVELOPMENT = "development"
    MAINTENANCE = "maintenance"


class AccessPermission(str, Enum):
    """Permission held by an invited partner."""

    READ = "read"
    WRITE = "write"


class InvitationStatus(str, Enum):
    """Invitation state, derived from ProjectAccess columns at read time."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class Project(Base, TimestampMixin):
    """Real-estate development project owned by exactly one user."""

    __tablename__ = "projects"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    project_type: Mapped[str] = mapped_column(
        String(50), default=ProjectType.RENOVATION.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(50), default=ProjectStatus.PLANNING.value, nullable=False
    )

    # Location
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    suburb: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    postcode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Schedule and budget
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_budget: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)  # cents
    size_sqm: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Owner (creator of the project)
    owner_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Soft delete
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id], lazy="joined")

    __table_args__ = (Index("ix_projects_owner_status", "owner_id", "status"),)

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"

    @property
    def is_active(self) -> bool:
        """Check if project is active (not deleted)."""
        return self.deleted_at is None


class ProjectAccess(Base, TimestampMixin):
    """Partner grant on a project.

    A row starts as a pending invitation addressed to ``invited_email``. On
    acceptance the user is bound, ``accepted_at`` is set and the token is
    cleared. Revocation and cancellation are soft deletes.
    """

    __tablename__ = "project_access"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Foreign keys
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Null until the invitation is accepted
    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    # SET NULL so deleting the inviter preserves the audit trail
    invited_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    invited_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    permission: Mapped[str] = mapped_column(
        String(20), default=AccessPermission.READ.value, nullable=False
    )

    # Cleared on acceptance
    invitation_token: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True, index=True
    )

    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Soft delete (revoke / cancel)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    project = relationship("Project", lazy="joined")
    user = relationship("User", foreign_keys=[user_id], lazy="joined")
    inviter = relationship("User", foreign_keys=[invited_by], lazy="joined")

    __table_args__ = (
        Index("ix_project_access_project_user", "project_id", "user_id"),
        Index("ix_project_access_project_email", "project_id", "invited_email"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectAccess(id={self.id}, project_id={self.project_id}, "
            f"email={self.invited_email}, permission={self.permission})>"
        )

    @property
    def is_expired(self) -> bool:
        """Unaccepted and past its expiry, whatever the token says."""
        if self.accepted_at is not None or self.expires_at is None:
            return False
        return datetime.now(timezone.utc) > as_utc(self.expires_at)

    @property
    def status(self) -> str:
        if self.deleted_at is not None:
            return InvitationStatus.REVOKED.value
        if self.accepted_at is not None:
            return InvitationStatus.ACCEPTED.value
        if self.is_expired:
            return InvitationStatus.EXPIRED.value
        return InvitationStatus.PENDING.value

    @property
    def days_remaining(self) -> Optional[int]:
        """Days left on a pending invitation, counting a part day as a full one."""
        if self.status != InvitationStatus.PENDING.value or self.expires_at is None:
            return None
        delta = as_utc(self.expires_at) - datetime.now(timezone.utc)
        return max(math.ceil(delta.total_seconds() / 86400), 0)
