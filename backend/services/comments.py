"""
Comments on costs, documents and timeline events.

Anyone who can read the project can comment. Replies nest one level deep.
Authors edit their own comments; authors and the project owner delete them.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from core.domain.access import Permission, is_owner
from core.errors import BadRequestError, ForbiddenError, NotFoundError
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    Comment,
    CommentEntityType,
    Cost,
    Document,
    NotificationType,
    ProjectEvent,
    User,
)
from infrastructure.database.models.base import is_uuid
from services import audit_log, notifications
from services.access_control import ProjectWithAccess, verify_entity_access, verify_project_access

logger = logging.getLogger(__name__)

COMMENTABLE = {
    CommentEntityType.COST: (Cost, "Cost"),
    CommentEntityType.DOCUMENT: (Document, "Document"),
    CommentEntityType.EVENT: (ProjectEvent, "Event"),
}


async def verify_commentable(
    db: AsyncSession,
    user: User,
    entity_type: CommentEntityType,
    entity_id: str,
    request: Optional[Request] = None,
) -> ProjectWithAccess:
    """Read access to the project owning the commented entity."""
    model, label = COMMENTABLE[entity_type]
    _, access = await verify_entity_access(
        db, user, model, entity_id, label, Permission.READ, request
    )
    return access


def _live(*conditions):
    return and_(Comment.deleted_at.is_(None), *conditions)


def _comment_payload(comment: Comment, author: Optional[User]) -> dict[str, Any]:
    return {
        "id": comment.id,
        "project_id": comment.project_id,
        "entity_type": comment.entity_type,
        "entity_id": comment.entity_id,
        "parent_comment_id": comment.parent_comment_id,
        "user_id": comment.user_id,
        "author_name": author.name if author else None,
        "content": comment.content,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
    }


async def list_comments(
    db: AsyncSession,
    user: User,
    entity_type: CommentEntityType,
    entity_id: str,
    request: Optional[Request] = None,
) -> list[dict[str, Any]]:
    """Live comments on the entity, oldest first."""
    await verify_commentable(db, user, entity_type, entity_id, request)
    result = await db.execute(
        select(Comment, User)
        .outerjoin(User, User.id == Comment.user_id)
        .where(_live(Comment.entity_type == entity_type.value, Comment.entity_id == entity_id))
        .order_by(Comment.created_at, Comment.id)
    )
    return [_comment_payload(comment, author) for comment, author in result.all()]


async def count_comments(
    db: AsyncSession,
    user: User,
    entity_type: CommentEntityType,
    entity_id: str,
    request: Optional[Request] = None,
) -> int:
    await verify_commentable(db, user, entity_type, entity_id, request)
    result = await db.execute(
        select(func.count(Comment.id)).where(
            _live(Comment.entity_type == entity_type.value, Comment.entity_id == entity_id)
        )
    )
    return result.scalar_one()


async def _check_parent(
    db: AsyncSession, parent_id: str, entity_type: CommentEntityType, entity_id: str
) -> None:
    parent = await db.get(Comment, parent_id) if is_uuid(parent_id) else None
    if parent is None or parent.entity_type != entity_type.value or parent.entity_id != entity_id:
        raise NotFoundError("Parent comment not found")
    if parent.deleted_at is not None:
        raise BadRequestError("Cannot reply to a deleted comment")
    if parent.parent_comment_id is not None:
        raise BadRequestError("Cannot reply to a reply, only one level of nesting is allowed")


async def create_comment(
    db: AsyncSession,
    user: User,
    entity_type: CommentEntityType,
    entity_id: str,
    content: str,
    parent_comment_id: Optional[str] = None,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """
    Comment on an entity and notify the other project members.

    Raises:
        NotFoundError: the entity or the parent comment does not exist.
        BadRequestError: the parent is deleted or is itself a reply.
        ForbiddenError: the caller cannot read the project.
    """
    access = await verify_commentable(db, user, entity_type, entity_id, request)
    project = access.project
    if parent_comment_id is not None:
        await _check_parent(db, parent_comment_id, entity_type, entity_id)

    comment = Comment(
        user_id=user.id,
        project_id=project.id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        parent_comment_id=parent_comment_id,
        content=content,
    )
    db.add(comment)
    await db.flush()

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.COMMENT,
        entity_id=comment.id,
        details={"entity_type": entity_type.value, "entity_id": entity_id},
        project_id=project.id,
        request=request,
    )
    await notifications.notify_project_members(
        db,
        project,
        NotificationType.COMMENT_ADDED,
        entity_type=entity_type.value,
        entity_id=entity_id,
        exclude_user_id=user.id,
        author_name=user.name,
        entity_label=entity_type.value,
    )
    await db.commit()
    await db.refresh(comment)

    logger.info("User %s commented on %s %s", user.id, entity_type.value, entity_id)
    return _comment_payload(comment, user)


async def _live_comment(db: AsyncSession, comment_id: str) -> Comment:
    comment = None
    if is_uuid(comment_id):
        result = await db.execute(select(Comment).where(_live(Comment.id == comment_id)))
        comment = result.scalars().first()
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


async def update_comment(
    db: AsyncSession,
    user: User,
    comment_id: str,
    content: str,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    comment = await _live_comment(db, comment_id)
    if comment.user_id != user.id:
        raise ForbiddenError("You can only edit your own comments")
    await verify_project_access(db, user, comment.project_id, Permission.READ, request)

    comment.content = content
    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.COMMENT,
        entity_id=comment.id,
        project_id=comment.project_id,
        request=request,
    )
    await db.commit()
    await db.refresh(comment)
    return _comment_payload(comment, user)


async def delete_comment(
    db: AsyncSession, user: User, comment_id: str, request: Optional[Request] = None
) -> None:
    """Soft delete by the author or the project owner. Replies stay visible."""
    comment = await _live_comment(db, comment_id)
    access = await verify_project_access(
        db, user, comment.project_id, Permission.READ, request
    )
    if comment.user_id != user.id and not is_owner(access.grant):
        raise ForbiddenError("You can only delete your own comments or be the project owner")

    comment.deleted_at = datetime.now(timezone.utc)
    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.COMMENT,
        entity_id=comment.id,
        project_id=comment.project_id,
        request=request,
    )
    await db.commit()
