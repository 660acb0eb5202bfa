"""
In-app notification service, with email for members who opt in.

Notifications are a best-effort side effect: callers use the ``notify_*``
helpers, which log and swallow failures so the parent mutation still succeeds.
"""

import logging
from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from core.security.tokens import TokenService
from infrastructure.config.settings import settings
from infrastructure.database.models import (
    Notification,
    NotificationType,
    Project,
    ProjectAccess,
    User,
)
from services import notification_preferences

logger = logging.getLogger(__name__)

# Signs unsubscribe links with the same key the auth routes verify against
_tokens = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    unsubscribe_token_expire_days=settings.unsubscribe_token_expire_days,
)


def format_cents(amount: int) -> str:
    """Format an integer amount of cents as dollars, e.g. ``$1,234.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount) / 100:,.2f}"


MESSAGE_TEMPLATES = {
    NotificationType.COST_ADDED: "New cost added: {description} ({amount}) in {project_name}",
    NotificationType.LARGE_EXPENSE: "Large expense alert: {description} ({amount}) in {project_name}",
    NotificationType.DOCUMENT_UPLOADED: "New document uploaded: {file_name} in {project_name}",
    NotificationType.TIMELINE_EVENT: "New timeline event: {event_title} in {project_name}",
    NotificationType.PARTNER_INVITED: "{inviter_name} invited you to collaborate on {project_name}",
    NotificationType.COMMENT_ADDED: "{author_name} commented on a {entity_label} in {project_name}",
}


def render_message(notification_type: NotificationType, **data) -> str:
    template = MESSAGE_TEMPLATES.get(notification_type)
    if template is None:
        return "New activity"
    return template.format(**data)


async def create_notification(
    db: AsyncSession,
    user_id: str,
    notification_type: NotificationType,
    entity_type: str,
    entity_id: str,
    message: str,
    project_id: Optional[str] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        project_id=project_id,
        type=notification_type.value,
        entity_type=entity_type,
        entity_id=entity_id,
        message=message,
    )
    db.add(notification)
    await db.flush()
    return notification


async def get_project_member_ids(db: AsyncSession, project: Project) -> set[str]:
    """Owner plus every partner with an accepted, live grant."""
    result = await db.execute(
        select(ProjectAccess.user_id).where(
            and_(
                ProjectAccess.project_id == project.id,
                ProjectAccess.accepted_at.is_not(None),
                ProjectAccess.deleted_at.is_(None),
                ProjectAccess.user_id.is_not(None),
            )
        )
    )
    member_ids = {project.owner_id}
    member_ids.update(result.scalars().all())
    return member_ids


async def _email_members(
    db: AsyncSession,
    project: Project,
    notification_type: NotificationType,
    recipient_ids: set[str],
    message: str,
) -> int:
    """Email recipients whose preferences ask for immediate mail of this type."""
    preferences = await notification_preferences.load_preferences(db, recipient_ids)
    wanted = [
        user_id
        for user_id, prefs in preferences.items()
        if notification_preferences.wants_immediate_email(prefs, notification_type)
    ]
    if not wanted:
        return 0

    result = await db.execute(
        select(User).where(and_(User.id.in_(wanted), User.deleted_at.is_(None)))
    )
    sent = 0
    for user in result.scalars().all():
        if await email_service.send_notification_email(
            to_email=user.email,
            project_name=project.name,
            message=message,
            unsubscribe_token=_tokens.create_unsubscribe_token(user.id),
        ):
            sent += 1
    return sent


async def notify_project_members(
    db: AsyncSession,
    project: Project,
    notification_type: NotificationType,
    entity_type: str,
    entity_id: str,
    exclude_user_id: Optional[str] = None,
    **message_data,
) -> int:
    """Notify every project member except the actor. Returns the number notified.

    Members who opted in to immediate email also get the message by email.
    """
    try:
        recipients = await get_project_member_ids(db, project)
        recipients.discard(exclude_user_id)
        message = render_message(
            notification_type, project_name=project.name, **message_data
        )
        for user_id in recipients:
            await create_notification(
                db,
                user_id=user_id,
                notification_type=notification_type,
                entity_type=entity_type,
                entity_id=entity_id,
                message=message,
                project_id=project.id,
            )
    except Exception as e:
        logger.error(
            "Failed to notify members of project %s (%s): %s",
            project.id,
            notification_type.value,
            e,
            extra={"project_id": project.id},
        )
        return 0

    try:
        await _email_members(db, project, notification_type, recipients, message)
    except Exception as e:
        logger.error(
            "Failed to email members of project %s (%s): %s",
            project.id,
            notification_type.value,
            e,
            extra={"project_id": project.id},
        )
    return len(recipients)


async def notify_cost_created(
    db: AsyncSession, project: Project, cost_id: str, description: str, amount: int, actor_id: str
) -> None:
    """Notify members of a new cost, escalating to a large-expense alert over the threshold."""
    if amount >= settings.large_expense_threshold_cents:
        notification_type = NotificationType.LARGE_EXPENSE
    else:
        notification_type = NotificationType.COST_ADDED
    await notify_project_members(
        db,
        project,
        notification_type,
        entity_type="cost",
        entity_id=cost_id,
        exclude_user_id=actor_id,
        description=description,
        amount=format_cents(amount),
    )


async def notify_partner_invited(
    db: AsyncSession, user_id: str, project: Project, inviter_name: str
) -> None:
    try:
        await create_notification(
            db,
            user_id=user_id,
            notification_type=NotificationType.PARTNER_INVITED,
            entity_type="project",
            entity_id=project.id,
            message=render_message(
                NotificationType.PARTNER_INVITED,
                project_name=project.name,
                inviter_name=inviter_name,
            ),
            project_id=project.id,
        )
    except Exception as e:
        logger.error("Failed to notify invited partner %s: %s", user_id, e)
