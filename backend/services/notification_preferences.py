"""
Email notification preferences and one-click unsubscribe.

Unsubscribe links carry a signed token with a ``jti``. Using a link turns email
off and then revokes the token. Revocation is best effort: when it fails the
preference change stands and the failure is logged.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import BadRequestError, ForbiddenError
from core.security.tokens import UNSUBSCRIBE_TOKEN_TYPE, TokenService
from infrastructure.database.models import (
    DigestFrequency,
    NotificationPreference,
    NotificationType,
    RevokedToken,
    User,
)

logger = logging.getLogger(__name__)

UNSUBSCRIBE_REASON = "User unsubscribed via email link"

# Notification types that can also go out by email, and the flag gating each
EMAIL_FLAGS = {
    NotificationType.COST_ADDED: "email_on_cost",
    NotificationType.LARGE_EXPENSE: "email_on_large_expense",
    NotificationType.DOCUMENT_UPLOADED: "email_on_document",
    NotificationType.TIMELINE_EVENT: "email_on_timeline",
    NotificationType.COMMENT_ADDED: "email_on_comment",
}


def default_preferences(user_id: str) -> NotificationPreference:
    """Unsaved row with every email enabled and immediate delivery."""
    return NotificationPreference(
        user_id=user_id,
        email_on_cost=True,
        email_on_large_expense=True,
        email_on_document=True,
        email_on_timeline=True,
        email_on_comment=True,
        email_digest_frequency=DigestFrequency.IMMEDIATE.value,
    )


def wants_immediate_email(
    preferences: NotificationPreference, notification_type: NotificationType
) -> bool:
    flag = EMAIL_FLAGS.get(notification_type)
    if flag is None:
        return False
    if preferences.email_digest_frequency != DigestFrequency.IMMEDIATE.value:
        return False
    return bool(getattr(preferences, flag))


async def load_preferences(
    db: AsyncSession, user_ids: set[str]
) -> dict[str, NotificationPreference]:
    """Stored rows for *user_ids*; users without one get unsaved defaults."""
    stored = {}
    if user_ids:
        result = await db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id.in_(user_ids))
        )
        stored = {p.user_id: p for p in result.scalars().all()}
    return {user_id: stored.get(user_id) or default_preferences(user_id) for user_id in user_ids}


async def get_preferences(db: AsyncSession, user: User) -> NotificationPreference:
    """The caller's preferences, created with defaults on first access."""
    preferences = await db.get(NotificationPreference, user.id)
    if preferences is None:
        preferences = default_preferences(user.id)
        db.add(preferences)
        await db.commit()
        await db.refresh(preferences)
    return preferences


async def update_preferences(
    db: AsyncSession, user: User, changes: dict[str, Any]
) -> NotificationPreference:
    if not changes:
        raise BadRequestError("At least one preference field must be provided")

    preferences = await get_preferences(db, user)
    for field, value in changes.items():
        setattr(preferences, field, value.value if isinstance(value, DigestFrequency) else value)
    await db.commit()
    await db.refresh(preferences)

    logger.info("Notification preferences updated for user %s: %s", user.id, sorted(changes))
    return preferences


async def is_token_revoked(db: AsyncSession, jti: str) -> bool:
    return await db.get(RevokedToken, jti) is not None


async def revoke_token(
    db: AsyncSession, jti: str, user_id: str, expires_at, reason: Optional[str] = None
) -> None:
    db.add(
        RevokedToken(
            jti=jti,
            user_id=user_id,
            purpose=UNSUBSCRIBE_TOKEN_TYPE,
            reason=reason,
            expires_at=expires_at,
        )
    )
    await db.commit()


async def unsubscribe(
    db: AsyncSession, user: User, token: str, token_service: TokenService
) -> NotificationPreference:
    """
    Stop all notification email for the token's user.

    Raises:
        BadRequestError: invalid, expired, wrong-purpose or already used token.
        ForbiddenError: the token was issued to a different user.
    """
    payload = token_service.verify_unsubscribe_token(token)
    if payload is None:
        raise BadRequestError("Invalid or expired unsubscribe link")
    if payload.sub != user.id:
        raise ForbiddenError("This unsubscribe link belongs to a different account")
    if await is_token_revoked(db, payload.jti):
        raise BadRequestError("This unsubscribe link has already been used")

    preferences = await get_preferences(db, user)
    preferences.email_digest_frequency = DigestFrequency.NEVER.value
    await db.commit()
    await db.refresh(preferences)
    logger.info("User %s unsubscribed from notification email", user.id)

    try:
        await revoke_token(db, payload.jti, payload.sub, payload.exp, UNSUBSCRIBE_REASON)
    except Exception as e:
        await db.rollback()
        await db.refresh(preferences)
        logger.warning("Failed to revoke unsubscribe token for user %s: %s", payload.sub, e)

    return preferences
