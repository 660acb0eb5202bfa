"""
Project timeline event API routes.
"""

import datetime as dt
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_project import require_project_read, require_project_write
from api.routes.auth import get_current_user
from api.schemas.event import EventCreate, EventListResponse, EventResponse, EventUpdate
from core.domain.access import Permission
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    EventCategory,
    NotificationType,
    ProjectEvent,
    User,
)
from services import audit_log, notifications
from services.access_control import ProjectWithAccess, verify_entity_access

router = APIRouter(tags=["Timeline"])


@router.post(
    "/projects/{project_id}/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_event(
    request: Request,
    data: EventCreate,
    access: Annotated[ProjectWithAccess, Depends(require_project_write)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    project = access.project
    event = ProjectEvent(
        project_id=project.id,
        created_by=current_user.id,
        title=data.title,
        description=data.description,
        date=data.date,
        category=data.category.value,
    )
    db.add(event)
    await db.flush()

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.EVENT,
        entity_id=event.id,
        project_id=project.id,
        request=request,
    )
    await notifications.notify_project_members(
        db,
        project,
        NotificationType.TIMELINE_EVENT,
        entity_type="event",
        entity_id=event.id,
        exclude_user_id=current_user.id,
        event_title=event.title,
    )
    await db.commit()
    await db.refresh(event)
    return event


@router.get("/projects/{project_id}/events", response_model=EventListResponse)
async def list_events(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    category: Optional[EventCategory] = None,
):
    """Timeline events in date order."""
    conditions = [
        ProjectEvent.project_id == access.project.id,
        ProjectEvent.deleted_at.is_(None),
    ]
    if start_date is not None:
        conditions.append(ProjectEvent.date >= start_date)
    if end_date is not None:
        conditions.append(ProjectEvent.date <= end_date)
    if category is not None:
        conditions.append(ProjectEvent.category == category.value)

    result = await db.execute(
        select(ProjectEvent)
        .where(and_(*conditions))
        .order_by(ProjectEvent.date, ProjectEvent.created_at)
    )
    events = result.scalars().all()
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=len(events),
    )


@router.put("/events/{event_id}", response_model=EventResponse)
async def update_event(
    request: Request,
    event_id: str,
    data: EventUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    event, _ = await verify_entity_access(
        db, current_user, ProjectEvent, event_id, "Event", Permission.WRITE, request
    )
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(event, field, value.value if isinstance(value, EventCategory) else value)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.EVENT,
        entity_id=event.id,
        details={"fields": sorted(changes)},
        project_id=event.project_id,
        request=request,
    )
    await db.commit()
    await db.refresh(event)
    return event


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    request: Request,
    event_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    event, _ = await verify_entity_access(
        db, current_user, ProjectEvent, event_id, "Event", Permission.WRITE, request
    )
    event.deleted_at = dt.datetime.now(dt.timezone.utc)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.EVENT,
        entity_id=event.id,
        project_id=event.project_id,
        request=request,
    )
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
