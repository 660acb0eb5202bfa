"""
Construction phase API routes.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_project import require_project_read, require_project_write
from api.routes.auth import get_current_user
from api.schemas.phase import (
    PhaseCreate,
    PhaseInitialize,
    PhaseListResponse,
    PhaseProgressUpdate,
    PhaseReorder,
    PhaseResponse,
    PhaseUpdate,
)
from infrastructure.database.connection import get_db
from infrastructure.database.models import PhaseStatus, User
from services import phases
from services.access_control import ProjectWithAccess

router = APIRouter(tags=["Phases"])


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    return {
        name: value.value if isinstance(value, PhaseStatus) else value
        for name, value in fields.items()
    }


def _phase_list(items) -> PhaseListResponse:
    return PhaseListResponse(
        phases=[PhaseResponse.model_validate(p) for p in items],
        total=len(items),
    )


@router.get("/projects/{project_id}/phases", response_model=PhaseListResponse)
async def list_phases(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Phases in phase number order."""
    return _phase_list(await phases.list_phases(db, access.project.id))


@router.post(
    "/projects/{project_id}/phases/initialize",
    response_model=PhaseListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def initialize_phases(
    request: Request,
    data: PhaseInitialize,
    access: Annotated[ProjectWithAccess, Depends(require_project_write)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    created = await phases.initialize_from_template(
        db, current_user, access.project, data.template, request
    )
    return _phase_list(created)


@router.post(
    "/projects/{project_id}/phases",
    response_model=PhaseResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_phase(
    request: Request,
    data: PhaseCreate,
    access: Annotated[ProjectWithAccess, Depends(require_project_write)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    fields = _column_values(data.model_dump(exclude_none=True))
    return await phases.create_phase(db, current_user, access.project, fields, request)


@router.put("/projects/{project_id}/phases/reorder", response_model=PhaseListResponse)
async def reorder_phases(
    request: Request,
    data: PhaseReorder,
    access: Annotated[ProjectWithAccess, Depends(require_project_write)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    reordered = await phases.reorder_phases(
        db, current_user, access.project, data.phase_ids, request
    )
    return _phase_list(reordered)


@router.put("/phases/{phase_id}", response_model=PhaseResponse)
async def update_phase(
    request: Request,
    phase_id: str,
    data: PhaseUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    phase = await phases.get_writable_phase(db, current_user, phase_id, request)
    changes = _column_values(data.model_dump(exclude_unset=True))
    return await phases.update_phase(db, current_user, phase, changes, request)


@router.put("/phases/{phase_id}/progress", response_model=PhaseResponse)
async def update_phase_progress(
    request: Request,
    phase_id: str,
    data: PhaseProgressUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Set progress; status follows it unless one is given."""
    phase = await phases.get_writable_phase(db, current_user, phase_id, request)
    changes = _column_values(data.model_dump(exclude_none=True))
    return await phases.update_phase(db, current_user, phase, changes, request)


@router.delete("/phases/{phase_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_phase(
    request: Request,
    phase_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    phase = await phases.get_writable_phase(db, current_user, phase_id, request)
    await phases.delete_phase(db, current_user, phase, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
