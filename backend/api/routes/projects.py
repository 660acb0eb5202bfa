"""
Project API routes.
"""

import logging
import math
from enum import Enum
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_project import require_project_owner, require_project_read, require_project_write
from api.routes.auth import get_current_user
from api.schemas.project import (
    AccessDescriptor,
    PermissionLevelResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from core.domain.access import AccessGrant, OwnerGrant, PartnerGrant, Permission, describe
from core.errors import BadRequestError
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    Project,
    ProjectAccess,
    ProjectStatus,
    User,
)
from services import audit_log
from services.access_control import (
    ProjectWithAccess,
    assert_project_owner,
    get_project_permission_level,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])


def _to_response(project: Project, grant: AccessGrant) -> ProjectResponse:
    response = ProjectResponse.model_validate(project)
    response.access = AccessDescriptor(**describe(grant))
    return response


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: Request,
    data: ProjectCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Create a new project.

    The current user becomes the owner. New projects start in ``planning``.
    """
    project = Project(
        **data.model_dump(exclude={"project_type"}),
        project_type=data.project_type.value,
        status=ProjectStatus.PLANNING.value,
        owner_id=current_user.id,
    )
    db.add(project)
    await db.flush()

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.PROJECT,
        entity_id=project.id,
        details={"name": project.name},
        project_id=project.id,
        request=request,
    )
    await db.commit()
    await db.refresh(project)

    logger.info(
        "Project %s created",
        project.id,
        extra={"user_id": current_user.id, "project_id": project.id},
    )
    return _to_response(project, OwnerGrant())


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
):
    """
    List projects the caller owns or holds an accepted partner grant on.

    Each project carries the caller's ``access`` descriptor.
    """
    partner_rows = (
        await db.execute(
            select(ProjectAccess.project_id, ProjectAccess.permission).where(
                and_(
                    ProjectAccess.user_id == current_user.id,
                    ProjectAccess.accepted_at.is_not(None),
                    ProjectAccess.deleted_at.is_(None),
                )
            )
        )
    ).all()
    partner_permissions = {row.project_id: row.permission for row in partner_rows}

    conditions = [
        Project.deleted_at.is_(None),
        or_(
            Project.owner_id == current_user.id,
            Project.id.in_(list(partner_permissions)),
        ),
    ]
    if status_filter is not None:
        conditions.append(Project.status == status_filter.value)

    total = (
        await db.execute(select(func.count(Project.id)).where(and_(*conditions)))
    ).scalar() or 0

    result = await db.execute(
        select(Project)
        .where(and_(*conditions))
        .order_by(Project.updated_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    projects = result.scalars().unique().all()

    items = []
    for project in projects:
        if project.owner_id == current_user.id:
            grant: AccessGrant = OwnerGrant()
        else:
            grant = PartnerGrant(Permission(partner_permissions[project.id]))
        items.append(_to_response(project, grant))

    return ProjectListResponse(
        projects=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total > 0 else 0,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
):
    return _to_response(access.project, access.grant)


@router.get("/{project_id}/permission", response_model=PermissionLevelResponse)
async def get_permission_level(
    project_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Caller's effective permission, for UI hints. Not audited and never fails."""
    level = await get_project_permission_level(db, current_user, project_id)
    return PermissionLevelResponse(project_id=project_id, permission=level.value)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    request: Request,
    data: ProjectUpdate,
    access: Annotated[ProjectWithAccess, Depends(require_project_write)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Update project fields. Owners and write partners may update; only the
    owner may archive.
    """
    changes = data.model_dump(exclude_unset=True)
    if changes.get("status") == ProjectStatus.ARCHIVED:
        assert_project_owner(access, "archive projects")

    project = access.project
    start = changes.get("start_date", project.start_date)
    end = changes.get("end_date", project.end_date)
    if start and end and end < start:
        raise BadRequestError("end_date must be on or after start_date")
    for field, value in changes.items():
        setattr(project, field, value.value if isinstance(value, Enum) else value)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.PROJECT,
        entity_id=project.id,
        details={"fields": sorted(changes)},
        project_id=project.id,
        request=request,
    )
    await db.commit()
    await db.refresh(project)
    return _to_response(project, access.grant)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    request: Request,
    access: Annotated[ProjectWithAccess, Depends(require_project_owner("delete projects"))],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Soft-delete a project. Owner only."""
    project = access.project
    project.deleted_at = datetime.now(timezone.utc)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.PROJECT,
        entity_id=project.id,
        project_id=project.id,
        request=request,
    )
    await db.commit()

    logger.info(
        "Project %s deleted",
        project.id,
        extra={"user_id": current_user.id, "project_id": project.id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
