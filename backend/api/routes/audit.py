"""
Project audit log API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_project import require_project_read
from api.schemas.audit import AccessAttemptListResponse
from infrastructure.database.connection import get_db
from services import audit_log
from services.access_control import ProjectWithAccess

router = APIRouter(prefix="/projects/{project_id}/audit", tags=["Audit"])


@router.get("/access-attempts", response_model=AccessAttemptListResponse)
async def list_access_attempts(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """
    List access decisions recorded for a project, newest first.

    Includes denied attempts by users without access.
    """
    attempts, total = await audit_log.list_access_attempts(
        db, access.project.id, limit=limit, offset=offset
    )
    return AccessAttemptListResponse(
        access_attempts=attempts,
        total=total,
        limit=limit,
        offset=offset,
    )
