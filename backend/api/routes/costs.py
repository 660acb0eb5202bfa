"""
Project cost API routes. Amounts are integer cents.
"""

import datetime as dt
import logging
import math
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy import and_, false, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_project import require_project_read, require_project_write
from api.routes.auth import get_current_user
from api.schemas.cost import (
    CategoryTotal,
    CostCreate,
    CostListResponse,
    CostResponse,
    CostTotalResponse,
    CostUpdate,
)
from core.domain.access import Permission
from core.errors import BadRequestError
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    Contact,
    Cost,
    CostCategory,
    Project,
    User,
)
from infrastructure.database.models.base import is_uuid
from services import audit_log, notifications
from services.access_control import ProjectWithAccess, verify_entity_access
from services.search import escape_like

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Costs"])


async def _check_contact(
    db: AsyncSession, contact_id: Optional[str], user: User, project: Project
) -> None:
    """A cost may reference the caller's or the project owner's contacts."""
    if contact_id is None:
        return
    contact = None
    if is_uuid(contact_id):
        contact = (
            await db.execute(
                select(Contact).where(
                    and_(Contact.id == contact_id, Contact.deleted_at.is_(None))
                )
            )
        ).scalars().first()
    if contact is None or contact.user_id not in (user.id, project.owner_id):
        raise BadRequestError("Contact not found")


@router.post(
    "/projects/{project_id}/costs",
    response_model=CostResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_cost(
    request: Request,
    data: CostCreate,
    access: Annotated[ProjectWithAccess, Depends(require_project_write)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Record a cost against a project.

    Other project members are notified; amounts at or above the large-expense
    threshold raise a ``large_expense`` notification instead of ``cost_added``.
    """
    project = access.project
    await _check_contact(db, data.contact_id, current_user, project)

    cost = Cost(
        project_id=project.id,
        contact_id=data.contact_id,
        created_by=current_user.id,
        amount=data.amount,
        description=data.description,
        category=data.category.value,
        date=data.date,
        notes=data.notes,
    )
    db.add(cost)
    await db.flush()

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.COST,
        entity_id=cost.id,
        details={"amount": cost.amount, "category": cost.category},
        project_id=project.id,
        request=request,
    )
    await notifications.notify_cost_created(
        db, project, cost.id, cost.description, cost.amount, current_user.id
    )
    await db.commit()
    await db.refresh(cost)

    logger.info(
        "Cost %s added to project %s",
        cost.id,
        project.id,
        extra={"user_id": current_user.id, "project_id": project.id},
    )
    return cost


@router.get("/projects/{project_id}/costs", response_model=CostListResponse)
async def list_costs(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    category: Optional[CostCategory] = None,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    contact_id: Optional[str] = None,
    min_amount: Optional[int] = Query(None, ge=0),
    max_amount: Optional[int] = Query(None, ge=0),
    search: Optional[str] = Query(None, max_length=100),
):
    """List a project's costs, newest first, with optional filters."""
    conditions = [Cost.project_id == access.project.id, Cost.deleted_at.is_(None)]
    if category is not None:
        conditions.append(Cost.category == category.value)
    if start_date is not None:
        conditions.append(Cost.date >= start_date)
    if end_date is not None:
        conditions.append(Cost.date <= end_date)
    if contact_id is not None:
        # Unknown ids match nothing rather than failing the UUID cast
        conditions.append(Cost.contact_id == contact_id if is_uuid(contact_id) else false())
    if min_amount is not None:
        conditions.append(Cost.amount >= min_amount)
    if max_amount is not None:
        conditions.append(Cost.amount <= max_amount)
    if search:
        conditions.append(Cost.description.ilike(f"%{escape_like(search)}%", escape="\\"))

    total = (
        await db.execute(select(func.count(Cost.id)).where(and_(*conditions)))
    ).scalar() or 0

    result = await db.execute(
        select(Cost)
        .where(and_(*conditions))
        .order_by(Cost.date.desc(), Cost.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return CostListResponse(
        costs=[CostResponse.model_validate(c) for c in result.scalars().unique().all()],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total > 0 else 0,
    )


@router.get("/projects/{project_id}/costs/total", response_model=CostTotalResponse)
async def get_cost_total(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Cost breakdown by category, with budget remaining when a budget is set."""
    project = access.project
    result = await db.execute(
        select(Cost.category, func.sum(Cost.amount), func.count(Cost.id))
        .where(and_(Cost.project_id == project.id, Cost.deleted_at.is_(None)))
        .group_by(Cost.category)
        .order_by(func.sum(Cost.amount).desc())
    )
    by_category = [
        CategoryTotal(category=category, total=int(total or 0), count=count)
        for category, total, count in result.all()
    ]
    total = sum(item.total for item in by_category)

    return CostTotalResponse(
        project_id=project.id,
        total=total,
        count=sum(item.count for item in by_category),
        budget=project.total_budget,
        budget_remaining=(
            project.total_budget - total if project.total_budget is not None else None
        ),
        by_category=by_category,
    )


@router.get("/costs/{cost_id}", response_model=CostResponse)
async def get_cost(
    request: Request,
    cost_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    cost, _ = await verify_entity_access(
        db, current_user, Cost, cost_id, "Cost", Permission.READ, request
    )
    return cost


@router.put("/costs/{cost_id}", response_model=CostResponse)
async def update_cost(
    request: Request,
    cost_id: str,
    data: CostUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update a cost. Requires write access to its project."""
    cost, access = await verify_entity_access(
        db, current_user, Cost, cost_id, "Cost", Permission.WRITE, request
    )
    changes = data.model_dump(exclude_unset=True)
    if "contact_id" in changes:
        await _check_contact(db, changes["contact_id"], current_user, access.project)
    for field, value in changes.items():
        setattr(cost, field, value.value if isinstance(value, CostCategory) else value)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.COST,
        entity_id=cost.id,
        details={"fields": sorted(changes)},
        project_id=cost.project_id,
        request=request,
    )
    await db.commit()
    await db.refresh(cost)
    return cost


@router.delete("/costs/{cost_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cost(
    request: Request,
    cost_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Soft-delete a cost. Requires write access to its project."""
    cost, _ = await verify_entity_access(
        db, current_user, Cost, cost_id, "Cost", Permission.WRITE, request
    )
    cost.deleted_at = dt.datetime.now(dt.timezone.utc)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.COST,
        entity_id=cost.id,
        project_id=cost.project_id,
        request=request,
    )
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
