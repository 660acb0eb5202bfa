"""
Partner invitation lifecycle.

States are derived from ProjectAccess columns:

- pending: token set, not accepted, not past ``expires_at``
- accepted: ``accepted_at`` set, token cleared, user bound
- expired: unaccepted and past ``expires_at`` (derived at read time, never swept)
- revoked / cancelled: soft-deleted; the address can be re-invited with a new row

Every owner-side transition goes through the access verifier, so each one is
also recorded as an access decision.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from adapters.email.resend_adapter import email_service
from core.domain.access import Permission
from core.errors import BadRequestError, NotFoundError
from infrastructure.config.settings import settings
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    Project,
    ProjectAccess,
    User,
)
from infrastructure.database.models.base import is_uuid
from services import audit_log, notifications
from services.access_control import (
    assert_project_owner,
    get_accepted_access,
    verify_project_access,
)

logger = logging.getLogger(__name__)


class InviteStatus(str, Enum):
    """Outcome of an invite request."""

    ALREADY_PARTNER = "already_partner"
    PENDING_INVITATION = "pending_invitation"
    REINVITE_SENT = "reinvite_sent"
    INVITATION_SENT = "invitation_sent"


MSG_INVALID_LINK = "Invalid invitation link."
MSG_EXPIRED = "This invitation has expired. Please request a new one."
MSG_ALREADY_ACCEPTED = "This invitation has already been accepted."
MSG_EMAIL_MISMATCH = (
    "This invitation was sent to a different email address. "
    "Please log out and use the correct account."
)


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _new_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=settings.invitation_expire_days)


async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(and_(User.email == email, User.deleted_at.is_(None)))
    )
    return result.scalars().first()


async def _get_invitation(db: AsyncSession, access_id: str) -> ProjectAccess:
    """Live access row by id, or NOT_FOUND."""
    if not is_uuid(access_id):
        raise NotFoundError("Invitation not found")
    result = await db.execute(
        select(ProjectAccess).where(
            and_(ProjectAccess.id == access_id, ProjectAccess.deleted_at.is_(None))
        )
    )
    access = result.scalars().first()
    if access is None:
        raise NotFoundError("Invitation not found")
    return access


async def _get_by_token(db: AsyncSession, token: str) -> ProjectAccess:
    result = await db.execute(
        select(ProjectAccess).where(
            and_(
                ProjectAccess.invitation_token == token,
                ProjectAccess.deleted_at.is_(None),
            )
        )
    )
    access = result.scalars().first()
    if access is None:
        raise NotFoundError(MSG_INVALID_LINK)
    return access


async def _send_invitation_email(
    access: ProjectAccess, project: Project, inviter: User
) -> None:
    try:
        await email_service.send_partner_invitation_email(
            to_email=access.invited_email,
            inviter_name=inviter.name,
            project_name=project.name,
            permission=access.permission,
            invitation_token=access.invitation_token,
            expires_in_days=settings.invitation_expire_days,
        )
    except Exception as e:
        logger.error(
            "Failed to send invitation email to %s: %s",
            access.invited_email,
            e,
            extra={"project_id": project.id},
        )


async def invite_partner(
    db: AsyncSession,
    user: User,
    project_id: str,
    email: str,
    permission: Permission = Permission.READ,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """Invite *email* to a project as a partner. Owner only."""
    access = await verify_project_access(db, user, project_id, Permission.READ, request)
    assert_project_owner(access, "invite partners")
    project = access.project

    email = email.strip().lower()
    if email == user.email.lower():
        raise BadRequestError("You cannot invite yourself to your own project")

    invitee = await _get_user_by_email(db, email)

    if invitee is not None:
        existing = await get_accepted_access(db, project_id, invitee.id)
        if existing is not None:
            return {
                "status": InviteStatus.ALREADY_PARTNER.value,
                "message": "This person already has access to this project.",
                "access": existing,
            }

    pending = (
        await db.execute(
            select(ProjectAccess).where(
                and_(
                    ProjectAccess.project_id == project_id,
                    ProjectAccess.invited_email == email,
                    ProjectAccess.invitation_token.is_not(None),
                    ProjectAccess.accepted_at.is_(None),
                    ProjectAccess.deleted_at.is_(None),
                )
            )
        )
    ).scalars().first()
    if pending is not None:
        return {
            "status": InviteStatus.PENDING_INVITATION.value,
            "message": "An invitation is already pending.",
            "access": pending,
            "access_id": pending.id,
            "can_resend": True,
        }

    revoked_match = [ProjectAccess.invited_email == email]
    if invitee is not None:
        revoked_match.append(ProjectAccess.user_id == invitee.id)
    revoked = (
        await db.execute(
            select(ProjectAccess.id).where(
                and_(
                    ProjectAccess.project_id == project_id,
                    ProjectAccess.deleted_at.is_not(None),
                    or_(*revoked_match),
                )
            )
        )
    ).scalars().first()

    now = datetime.now(timezone.utc)
    invitation = ProjectAccess(
        project_id=project_id,
        user_id=None,
        invited_email=email,
        permission=permission.value,
        invited_by=user.id,
        invited_at=now,
        invitation_token=_new_token(),
        expires_at=_new_expiry(),
    )
    db.add(invitation)
    await db.flush()

    details: dict[str, Any] = {"email": email, "permission": permission.value}
    if revoked is not None:
        details["reinvitation"] = True
    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.PROJECT_ACCESS,
        entity_id=invitation.id,
        details=details,
        project_id=project_id,
        request=request,
    )

    if invitee is not None:
        await notifications.notify_partner_invited(db, invitee.id, project, user.name)

    await db.commit()
    await _send_invitation_email(invitation, project, user)

    logger.info(
        "Partner invitation %s created for project %s",
        invitation.id,
        project_id,
        extra={"user_id": user.id, "project_id": project_id, "access_id": invitation.id},
    )

    if revoked is not None:
        return {
            "status": InviteStatus.REINVITE_SENT.value,
            "message": "Invitation sent to previously revoked partner.",
            "access": invitation,
        }
    return {
        "status": InviteStatus.INVITATION_SENT.value,
        "message": (
            f"Invitation sent to {email}. "
            f"They have {settings.invitation_expire_days} days to accept."
        ),
        "access": invitation,
    }


async def get_invitation_details(db: AsyncSession, token: str) -> dict[str, Any]:
    """Public preview of an invitation for the acceptance page."""
    access = await _get_by_token(db, token)

    if access.accepted_at is not None:
        raise BadRequestError(MSG_ALREADY_ACCEPTED)
    if access.is_expired:
        raise BadRequestError("This invitation has expired.")

    project = access.project
    inviter = access.inviter
    invitee = await _get_user_by_email(db, access.invited_email)

    return {
        "email": access.invited_email,
        "project_id": access.project_id,
        "project_name": project.name if project else None,
        "inviter_name": inviter.name if inviter else None,
        "permission": access.permission,
        "expires_at": access.expires_at,
        "user_exists": invitee is not None,
    }


async def _accept(
    db: AsyncSession,
    access: ProjectAccess,
    user: User,
    auto_accepted: bool,
    request: Optional[Request],
) -> dict[str, Any]:
    # Expired wins over everything else, whatever the token
    if access.is_expired:
        raise BadRequestError(MSG_EXPIRED)
    if access.accepted_at is not None:
        raise BadRequestError(MSG_ALREADY_ACCEPTED)
    if user.email.lower() != access.invited_email.lower():
        raise BadRequestError(MSG_EMAIL_MISMATCH)

    access.user_id = user.id
    access.accepted_at = datetime.now(timezone.utc)
    access.invitation_token = None
    user.email_verified = True

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.PROJECT_ACCESS,
        entity_id=access.id,
        details={"accepted": True, "auto_accepted": auto_accepted},
        project_id=access.project_id,
        request=request,
    )
    await db.commit()

    logger.info(
        "Invitation %s accepted",
        access.id,
        extra={"user_id": user.id, "project_id": access.project_id, "access_id": access.id},
    )
    return {
        "success": True,
        "message": "Invitation accepted successfully.",
        "project_id": access.project_id,
    }


async def accept_invitation(
    db: AsyncSession,
    token: str,
    user_id: str,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """Bind an invitation to *user_id*, e.g. right after sign-up."""
    access = await _get_by_token(db, token)

    user = None
    if is_uuid(user_id):
        user = (
            await db.execute(
                select(User).where(and_(User.id == user_id, User.deleted_at.is_(None)))
            )
        ).scalars().first()
    if user is None:
        raise NotFoundError("User not found")

    return await _accept(db, access, user, auto_accepted=False, request=request)


async def auto_accept_invitation(
    db: AsyncSession,
    user: User,
    token: str,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """Accept on behalf of the logged-in user."""
    access = await _get_by_token(db, token)
    return await _accept(db, access, user, auto_accepted=True, request=request)


async def list_invitations(
    db: AsyncSession,
    user: User,
    project_id: str,
    request: Optional[Request] = None,
) -> list[ProjectAccess]:
    """Every live access row on the project, newest first. Owner only."""
    access = await verify_project_access(db, user, project_id, Permission.READ, request)
    assert_project_owner(access, "view invitations")

    result = await db.execute(
        select(ProjectAccess)
        .where(
            and_(
                ProjectAccess.project_id == project_id,
                ProjectAccess.deleted_at.is_(None),
            )
        )
        .order_by(ProjectAccess.invited_at.desc())
    )
    return list(result.scalars().all())


async def revoke_access(
    db: AsyncSession,
    user: User,
    project_id: str,
    access_id: str,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """Soft-delete a partner grant or pending invitation. Owner only."""
    access = await verify_project_access(db, user, project_id, Permission.READ, request)
    assert_project_owner(access, "revoke access")

    row = await _get_invitation(db, access_id)
    if row.project_id != project_id:
        raise NotFoundError("Invitation not found")

    row.deleted_at = datetime.now(timezone.utc)
    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.PROJECT_ACCESS,
        entity_id=row.id,
        details={"email": row.invited_email, "revoked": True},
        project_id=project_id,
        request=request,
    )
    await db.commit()
    return {"success": True, "message": "Access revoked successfully."}


async def resend_invitation(
    db: AsyncSession,
    user: User,
    access_id: str,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """Issue a new token and expiry, returning the invitation to pending. Owner only."""
    row = await _get_invitation(db, access_id)
    access = await verify_project_access(db, user, row.project_id, Permission.READ, request)
    assert_project_owner(access, "resend invitations")

    if row.accepted_at is not None:
        raise BadRequestError("Cannot resend invitation that has already been accepted")

    row.invitation_token = _new_token()
    row.expires_at = _new_expiry()
    row.invited_at = datetime.now(timezone.utc)

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.PROJECT_ACCESS,
        entity_id=row.id,
        details={"resent": True},
        project_id=row.project_id,
        request=request,
    )
    await db.commit()
    await _send_invitation_email(row, access.project, user)

    return {
        "success": True,
        "message": "Invitation resent successfully.",
        "access": row,
    }


async def cancel_invitation(
    db: AsyncSession,
    user: User,
    access_id: str,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """Soft-delete an unaccepted invitation. Owner only."""
    row = await _get_invitation(db, access_id)
    access = await verify_project_access(db, user, row.project_id, Permission.READ, request)
    assert_project_owner(access, "cancel invitations")

    if row.accepted_at is not None:
        raise BadRequestError(
            "Cannot cancel invitation that has already been accepted. Use revoke instead."
        )

    row.deleted_at = datetime.now(timezone.utc)
    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.PROJECT_ACCESS,
        entity_id=row.id,
        details={"email": row.invited_email, "cancelled": True},
        project_id=row.project_id,
        request=request,
    )
    await db.commit()
    return {"success": True, "message": "Invitation cancelled successfully."}
