"""
Notification preference and revoked token database models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

DEFAULT_TIMEZONE = "Australia/Sydney"


class DigestFrequency(str, Enum):
    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"
    NEVER = "never"


class NotificationPreference(Base):
    """Per-user email settings. Rows are created with defaults on first read."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    email_on_cost: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_on_large_expense: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_on_document: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_on_timeline: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_on_comment: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_digest_frequency: Mapped[str] = mapped_column(
        String(20), default=DigestFrequency.IMMEDIATE.value, nullable=False
    )
    timezone: Mapped[str] = mapped_column(String(64), default=DEFAULT_TIMEZONE, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationPreference(user_id={self.user_id}, "
            f"digest={self.email_digest_frequency})>"
        )


class RevokedToken(Base):
    """Single-use tokens that have been spent, keyed by their ``jti`` claim."""

    __tablename__ = "revoked_tokens"

    jti: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    purpose: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<RevokedToken(jti={self.jti}, purpose={self.purpose})>"
