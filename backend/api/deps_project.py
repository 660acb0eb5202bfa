"""
Project access dependencies.

Routes with a ``project_id`` path parameter depend on one of these instead of
loading the project themselves, so every project-scoped request passes through
the verifier and leaves an audit entry.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from core.domain.access import Permission
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User
from services.access_control import (
    ProjectWithAccess,
    assert_project_owner,
    verify_project_access,
)


async def require_project_read(
    project_id: str,
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProjectWithAccess:
    """
    Dependency to require read access to the project in the path.

    Raises:
        ForbiddenError: project missing, deleted or not shared with the caller
    """
    return await verify_project_access(db, current_user, project_id, Permission.READ, request)


async def require_project_write(
    project_id: str,
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProjectWithAccess:
    """
    Dependency to require write access (owner or write partner).
    """
    return await verify_project_access(db, current_user, project_id, Permission.WRITE, request)


def require_project_owner(operation: str):
    """
    Build a dependency that admits only the project owner.

    Partners of either permission are rejected with
    "Only project owners can <operation>".
    """

    async def dependency(
        access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    ) -> ProjectWithAccess:
        assert_project_owner(access, operation)
        return access

    return dependency
