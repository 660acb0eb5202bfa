"""
Project access repository and verifier.

Every project-scoped operation calls :func:`verify_project_access` before it
reads or mutates anything. The verifier resolves the caller's grant from the
project and partner-access tables and writes exactly one audit entry per
call, success or failure, before returning or raising.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, NoReturn, Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from core.domain.access import (
    AccessGrant,
    OwnerGrant,
    PartnerGrant,
    Permission,
    PermissionLevel,
    permission_level,
    satisfies,
)
from core.errors import ForbiddenError, NotFoundError, UnauthorizedError
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    Project,
    ProjectAccess,
    User,
)
from infrastructure.database.models.base import as_utc, is_uuid
from services import audit_log

logger = logging.getLogger(__name__)

REASON_PROJECT_NOT_FOUND = "Project not found"
REASON_NO_ACCESS = "User does not have access to this project"
REASON_INVITATION_EXPIRED = "Invitation expired"
REASON_READ_ONLY = "Partner has read-only access"

# Client-facing messages, one per failure category
_FORBIDDEN_MESSAGES = {
    REASON_PROJECT_NOT_FOUND: "Project not found or you do not have access",
    REASON_NO_ACCESS: "Project not found or you do not have access",
    REASON_INVITATION_EXPIRED: "Your invitation to this project has expired",
    REASON_READ_ONLY: "You have read-only access to this project",
}


@dataclass
class ProjectWithAccess:
    """Result of a successful access check."""

    project: Project
    grant: AccessGrant


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


async def get_active_project(db: AsyncSession, project_id: str) -> Optional[Project]:
    """Fetch a project, excluding soft-deleted rows."""
    if not is_uuid(project_id):
        return None
    result = await db.execute(
        select(Project).where(
            and_(Project.id == project_id, Project.deleted_at.is_(None))
        )
    )
    return result.scalars().first()


async def get_accepted_access(
    db: AsyncSession, project_id: str, user_id: str
) -> Optional[ProjectAccess]:
    """Accepted, non-revoked partner grant of *user_id* on *project_id*."""
    result = await db.execute(
        select(ProjectAccess)
        .where(
            and_(
                ProjectAccess.project_id == project_id,
                ProjectAccess.user_id == user_id,
                ProjectAccess.accepted_at.is_not(None),
                ProjectAccess.deleted_at.is_(None),
            )
        )
        .order_by(ProjectAccess.accepted_at.desc())
    )
    return result.scalars().first()


async def get_expired_invitation(
    db: AsyncSession, project_id: str, email: str
) -> Optional[ProjectAccess]:
    """Live, unaccepted invitation for *email* that is past its expiry."""
    result = await db.execute(
        select(ProjectAccess).where(
            and_(
                ProjectAccess.project_id == project_id,
                ProjectAccess.invited_email == email.lower(),
                ProjectAccess.accepted_at.is_(None),
                ProjectAccess.deleted_at.is_(None),
                ProjectAccess.expires_at.is_not(None),
            )
        )
    )
    now = datetime.now(timezone.utc)
    for row in result.scalars().all():
        if as_utc(row.expires_at) < now:
            return row
    return None


async def list_accessible_project_ids(db: AsyncSession, user_id: str) -> list[str]:
    """Ids of live projects the user owns or holds an accepted grant on."""
    partner_ids = select(ProjectAccess.project_id).where(
        and_(
            ProjectAccess.user_id == user_id,
            ProjectAccess.accepted_at.is_not(None),
            ProjectAccess.deleted_at.is_(None),
        )
    )
    result = await db.execute(
        select(Project.id).where(
            and_(
                Project.deleted_at.is_(None),
                or_(Project.owner_id == user_id, Project.id.in_(partner_ids)),
            )
        )
    )
    return [row for row in result.scalars().all()]


async def resolve_grant(
    db: AsyncSession, user: User, project: Project
) -> tuple[Optional[AccessGrant], Optional[str]]:
    """Work out the caller's grant on a live project.

    Returns ``(grant, None)`` or ``(None, reason)``.
    """
    if project.owner_id == user.id:
        return OwnerGrant(), None

    access = await get_accepted_access(db, project.id, user.id)
    if access is not None:
        return PartnerGrant(Permission(access.permission)), None

    if await get_expired_invitation(db, project.id, user.email) is not None:
        return None, REASON_INVITATION_EXPIRED
    return None, REASON_NO_ACCESS


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------


async def _audit_decision(
    db: AsyncSession,
    user: User,
    project_id: str,
    required: Permission,
    success: bool,
    grant: Optional[AccessGrant] = None,
    reason: Optional[str] = None,
    request: Optional[Request] = None,
) -> None:
    details: dict[str, Any] = {
        "success": success,
        "required_permission": required.value,
    }
    if grant is not None:
        details["role"] = grant.role.value
        details["permission"] = grant.permission.value
    if reason:
        details["reason"] = reason

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.ACCESSED,
        entity_type=AuditEntityType.PROJECT,
        entity_id=project_id,
        details=details,
        project_id=project_id if is_uuid(project_id) else None,
        request=request,
    )
    # Commit here so the entry survives a failed check and read-only requests
    await db.commit()


async def verify_project_access(
    db: AsyncSession,
    user: Optional[User],
    project_id: str,
    required: Permission = Permission.READ,
    request: Optional[Request] = None,
) -> ProjectWithAccess:
    """Gate a project-scoped operation.

    Raises:
        UnauthorizedError: no authenticated caller.
        ForbiddenError: project missing or soft-deleted, no live grant, an
            expired invitation, or a read-only partner asking for write.
    """
    if user is None:
        raise UnauthorizedError()

    project = await get_active_project(db, project_id)
    if project is None:
        await _deny(db, user, project_id, required, REASON_PROJECT_NOT_FOUND, None, request)

    grant, reason = await resolve_grant(db, user, project)
    if grant is None:
        await _deny(db, user, project_id, required, reason, None, request)

    if not satisfies(grant, required):
        await _deny(db, user, project_id, required, REASON_READ_ONLY, grant, request)

    await _audit_decision(db, user, project_id, required, True, grant=grant, request=request)
    return ProjectWithAccess(project=project, grant=grant)


async def _deny(
    db: AsyncSession,
    user: User,
    project_id: str,
    required: Permission,
    reason: str,
    grant: Optional[AccessGrant],
    request: Optional[Request],
) -> NoReturn:
    await _audit_decision(
        db, user, project_id, required, False, grant=grant, reason=reason, request=request
    )
    logger.info(
        "Access denied to project %s for user %s: %s",
        project_id,
        user.id,
        reason,
        extra={
            "user_id": user.id,
            "project_id": project_id,
            "required_permission": required.value,
            "access_granted": False,
        },
    )
    raise ForbiddenError(_FORBIDDEN_MESSAGES[reason])


def assert_project_owner(access: ProjectWithAccess, operation: str) -> None:
    """Reject partners from owner-only operations, whatever their permission."""
    match access.grant:
        case OwnerGrant():
            return
        case PartnerGrant():
            raise ForbiddenError(f"Only project owners can {operation}")


async def verify_multiple_projects_access(
    db: AsyncSession,
    user: User,
    project_ids: Sequence[str],
    required: Permission = Permission.READ,
    request: Optional[Request] = None,
) -> list[ProjectWithAccess]:
    """Check each project and return only those the caller may use."""
    accessible = []
    for project_id in dict.fromkeys(project_ids):
        try:
            accessible.append(
                await verify_project_access(db, user, project_id, required, request)
            )
        except ForbiddenError:
            continue
    return accessible


async def verify_entity_access(
    db: AsyncSession,
    user: Optional[User],
    model: Any,
    entity_id: str,
    entity_label: str,
    required: Permission = Permission.READ,
    request: Optional[Request] = None,
) -> tuple[Any, ProjectWithAccess]:
    """Load a project-owned entity and verify access to its project.

    Raises NotFoundError when the entity is missing or soft-deleted.
    """
    if user is None:
        raise UnauthorizedError()

    if not is_uuid(entity_id):
        raise NotFoundError(f"{entity_label} not found")

    stmt = select(model).where(model.id == entity_id)
    if hasattr(model, "deleted_at"):
        stmt = stmt.where(model.deleted_at.is_(None))
    entity = (await db.execute(stmt)).scalars().first()
    if entity is None:
        raise NotFoundError(f"{entity_label} not found")

    access = await verify_project_access(db, user, entity.project_id, required, request)
    return entity, access


async def get_project_permission_level(
    db: AsyncSession, user: User, project_id: str
) -> PermissionLevel:
    """Effective permission without auditing, for UI hints."""
    project = await get_active_project(db, project_id)
    if project is None:
        return PermissionLevel.NONE
    grant, _ = await resolve_grant(db, user, project)
    return permission_level(grant)
