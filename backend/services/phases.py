"""
Construction phases of a project.

Phases are numbered 1..n within a project. They can be seeded from a template
once, edited individually, and reordered as a whole.
"""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from core.domain.access import Permission
from core.domain.phases import (
    PhaseTemplateType,
    default_template_type,
    status_for_progress,
    template_for,
)
from core.errors import BadRequestError
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    PhaseStatus,
    Project,
    ProjectPhase,
    User,
)
from services import audit_log
from services.access_control import verify_entity_access

logger = logging.getLogger(__name__)


async def list_phases(db: AsyncSession, project_id: str) -> list[ProjectPhase]:
    result = await db.execute(
        select(ProjectPhase)
        .where(ProjectPhase.project_id == project_id)
        .order_by(ProjectPhase.phase_number, ProjectPhase.created_at)
    )
    return list(result.scalars().all())


async def initialize_from_template(
    db: AsyncSession,
    user: User,
    project: Project,
    template_type: Optional[PhaseTemplateType] = None,
    request: Optional[Request] = None,
) -> list[ProjectPhase]:
    """
    Seed an empty project with a template's phases.

    Without an explicit template the project type picks one.

    Raises:
        BadRequestError: the project already has phases.
    """
    if await list_phases(db, project.id):
        raise BadRequestError(
            "Project already has phases. Delete existing phases before "
            "initializing from a template."
        )

    template_type = template_type or default_template_type(project.project_type)
    phases = [
        ProjectPhase(
            project_id=project.id,
            name=template.name,
            phase_number=template.phase_number,
            phase_type=template.phase_type,
            description=template.description,
            progress=0,
            status=PhaseStatus.PLANNED.value,
        )
        for template in template_for(template_type)
    ]
    db.add_all(phases)
    await db.flush()

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.PHASE,
        entity_id=project.id,
        details={"template": template_type.value, "phases": len(phases)},
        project_id=project.id,
        request=request,
    )
    await db.commit()

    logger.info(
        "Project %s initialised with %d %s phases", project.id, len(phases), template_type.value
    )
    return await list_phases(db, project.id)


async def create_phase(
    db: AsyncSession,
    user: User,
    project: Project,
    fields: dict[str, Any],
    request: Optional[Request] = None,
) -> ProjectPhase:
    phase = ProjectPhase(project_id=project.id, **fields)
    if "status" not in fields:
        phase.status = status_for_progress(phase.progress or 0)
    db.add(phase)
    await db.flush()

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.PHASE,
        entity_id=phase.id,
        details={"name": phase.name, "phase_number": phase.phase_number},
        project_id=project.id,
        request=request,
    )
    await db.commit()
    await db.refresh(phase)
    return phase


async def get_writable_phase(
    db: AsyncSession, user: User, phase_id: str, request: Optional[Request] = None
) -> ProjectPhase:
    phase, _ = await verify_entity_access(
        db, user, ProjectPhase, phase_id, "Phase", Permission.WRITE, request
    )
    return phase


async def update_phase(
    db: AsyncSession,
    user: User,
    phase: ProjectPhase,
    changes: dict[str, Any],
    request: Optional[Request] = None,
) -> ProjectPhase:
    """Apply *changes*; a progress change without a status re-derives it."""
    for field, value in changes.items():
        setattr(phase, field, value)
    if "progress" in changes and "status" not in changes:
        phase.status = status_for_progress(phase.progress)

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.PHASE,
        entity_id=phase.id,
        details={"fields": sorted(changes)},
        project_id=phase.project_id,
        request=request,
    )
    await db.commit()
    await db.refresh(phase)
    return phase


async def delete_phase(
    db: AsyncSession, user: User, phase: ProjectPhase, request: Optional[Request] = None
) -> None:
    project_id = phase.project_id
    phase_id = phase.id
    await db.delete(phase)

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.PHASE,
        entity_id=phase_id,
        project_id=project_id,
        request=request,
    )
    await db.commit()


async def reorder_phases(
    db: AsyncSession,
    user: User,
    project: Project,
    phase_ids: Sequence[str],
    request: Optional[Request] = None,
) -> list[ProjectPhase]:
    """
    Renumber the project's phases 1..n in the order given.

    Raises:
        BadRequestError: *phase_ids* is not exactly the project's phases.
    """
    existing = {phase.id: phase for phase in await list_phases(db, project.id)}
    if len(set(phase_ids)) != len(phase_ids) or set(phase_ids) != set(existing):
        raise BadRequestError("Phase ids must list every phase of the project exactly once")

    for number, phase_id in enumerate(phase_ids, start=1):
        existing[phase_id].phase_number = number

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.PHASE,
        entity_id=project.id,
        details={"reordered": len(phase_ids)},
        project_id=project.id,
        request=request,
    )
    await db.commit()
    return await list_phases(db, project.id)
