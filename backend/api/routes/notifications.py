"""User notification API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user, token_service
from api.schemas.notification import (
    MarkReadResponse,
    NotificationListResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    NotificationResponse,
    UnreadCountResponse,
    UnsubscribeRequest,
    UnsubscribeResponse,
)
from core.errors import NotFoundError
from infrastructure.database.connection import get_db
from infrastructure.database.models import Notification, User
from infrastructure.database.models.base import is_uuid
from services import notification_preferences

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["Notifications"])


async def _unread_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            and_(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
    )
    return result.scalar() or 0


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """The caller's notifications, newest first."""
    conditions = [Notification.user_id == current_user.id]
    if unread_only:
        conditions.append(Notification.is_read.is_(False))

    total = (
        await db.execute(select(func.count(Notification.id)).where(and_(*conditions)))
    ).scalar() or 0
    result = await db.execute(
        select(Notification)
        .where(and_(*conditions))
        .order_by(Notification.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in result.scalars().all()],
        total=total,
        unread=await _unread_count(db, current_user.id),
        page=page,
        page_size=page_size,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(unread=await _unread_count(db, current_user.id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = None
    if is_uuid(notification_id):
        notification = (
            await db.execute(
                select(Notification).where(
                    and_(
                        Notification.id == notification_id,
                        Notification.user_id == current_user.id,
                    )
                )
            )
        ).scalars().first()
    if notification is None:
        raise NotFoundError("Notification not found")

    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification


@router.post("/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    project_id: Optional[str] = None,
):
    """Mark every unread notification read, optionally for one project only."""
    conditions = [Notification.user_id == current_user.id, Notification.is_read.is_(False)]
    if project_id is not None:
        if not is_uuid(project_id):
            return MarkReadResponse(updated=0)
        conditions.append(Notification.project_id == project_id)

    result = await db.execute(
        update(Notification).where(and_(*conditions)).values(is_read=True)
    )
    await db.commit()

    logger.debug("Marked %d notifications read for user %s", result.rowcount, current_user.id)
    return MarkReadResponse(updated=result.rowcount)


@router.get("/preferences", response_model=NotificationPreferencesResponse)
async def get_preferences(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Email preferences, created with defaults on first read."""
    return await notification_preferences.get_preferences(db, current_user)


@router.put("/preferences", response_model=NotificationPreferencesResponse)
async def update_preferences(
    data: NotificationPreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await notification_preferences.update_preferences(
        db, current_user, data.model_dump(exclude_unset=True)
    )


@router.post("/unsubscribe", response_model=UnsubscribeResponse)
async def unsubscribe(
    data: UnsubscribeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Turn off notification email using the token from an email footer link."""
    preferences = await notification_preferences.unsubscribe(
        db, current_user, data.token, token_service
    )
    return UnsubscribeResponse(
        message="You have been unsubscribed from email notifications",
        preferences=NotificationPreferencesResponse.model_validate(preferences),
    )
