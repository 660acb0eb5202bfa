"""
Vendor performance: spend metrics and per-project ratings of contacts.

A contact becomes a vendor once a cost references it. Callers see a vendor
through the projects they can access, and every figure here is computed over
those projects only.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from core.domain.access import Permission
from core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    Contact,
    Cost,
    Project,
    User,
    VendorRating,
)
from infrastructure.database.models.base import is_uuid
from services import audit_log
from services.access_control import list_accessible_project_ids, verify_project_access

logger = logging.getLogger(__name__)

TOP_CATEGORY_LIMIT = 3

VENDOR_NOT_FOUND = "Vendor not found or has no associated projects"


async def _live_contact(db: AsyncSession, contact_id: str) -> Optional[Contact]:
    if not is_uuid(contact_id):
        return None
    result = await db.execute(
        select(Contact).where(and_(Contact.id == contact_id, Contact.deleted_at.is_(None)))
    )
    return result.scalars().first()


async def vendor_project_ids(db: AsyncSession, contact_id: str) -> set[str]:
    """Live projects with at least one live cost referencing the contact."""
    result = await db.execute(
        select(Cost.project_id)
        .join(Project, Project.id == Cost.project_id)
        .where(
            and_(
                Cost.contact_id == contact_id,
                Cost.deleted_at.is_(None),
                Project.deleted_at.is_(None),
            )
        )
        .distinct()
    )
    return set(result.scalars().all())


async def verify_vendor_access(
    db: AsyncSession, user: User, contact_id: str
) -> tuple[Contact, list[str]]:
    """Return the vendor and the ids of its projects the caller can access.

    Raises:
        NotFoundError: unknown contact, or no cost references it.
        ForbiddenError: none of the vendor's projects is accessible.
    """
    contact = await _live_contact(db, contact_id)
    if contact is None:
        raise NotFoundError(VENDOR_NOT_FOUND)
    project_ids = await vendor_project_ids(db, contact.id)
    if not project_ids:
        raise NotFoundError(VENDOR_NOT_FOUND)

    accessible = project_ids.intersection(await list_accessible_project_ids(db, user.id))
    if not accessible:
        raise ForbiddenError("You do not have access to this vendor")
    return contact, sorted(accessible)


async def _rating_stats(
    db: AsyncSession, contact_id: str, project_ids: Sequence[str]
) -> tuple[Optional[float], int]:
    result = await db.execute(
        select(VendorRating.rating).where(
            and_(
                VendorRating.contact_id == contact_id,
                VendorRating.project_id.in_(project_ids),
                VendorRating.deleted_at.is_(None),
            )
        )
    )
    ratings = result.scalars().all()
    if not ratings:
        return None, 0
    return round(sum(ratings) / len(ratings), 1), len(ratings)


async def _metrics(
    db: AsyncSession, contact: Contact, project_ids: Sequence[str], today: Optional[date] = None
) -> dict[str, Any]:
    result = await db.execute(
        select(Cost).where(
            and_(
                Cost.contact_id == contact.id,
                Cost.project_id.in_(project_ids),
                Cost.deleted_at.is_(None),
            )
        )
    )
    costs = result.scalars().unique().all()

    total_spent = sum(cost.amount for cost in costs)
    projects = {cost.project_id for cost in costs}
    by_category: dict[str, int] = defaultdict(int)
    for cost in costs:
        by_category[cost.category] += cost.amount

    frequency = 0.0
    if costs:
        today = today or datetime.now(timezone.utc).date()
        years_active = (today - min(cost.date for cost in costs)).days / 365
        frequency = round(len(projects) / max(years_active, 1), 2)

    average_rating, rating_count = await _rating_stats(db, contact.id, project_ids)
    return {
        "contact_id": contact.id,
        "name": contact.display_name,
        "company": contact.company,
        "total_projects": len(projects),
        "total_spent": total_spent,
        "average_cost": total_spent // len(costs) if costs else 0,
        "frequency": frequency,
        "last_used": max((cost.date for cost in costs), default=None),
        "category_specialization": [
            {"category": category, "total_spent": total}
            for category, total in sorted(
                by_category.items(), key=lambda item: item[1], reverse=True
            )[:TOP_CATEGORY_LIMIT]
        ],
        "average_rating": average_rating,
        "rating_count": rating_count,
    }


async def get_vendor_metrics(db: AsyncSession, user: User, contact_id: str) -> dict[str, Any]:
    contact, project_ids = await verify_vendor_access(db, user, contact_id)
    return await _metrics(db, contact, project_ids)


async def list_vendor_ratings(db: AsyncSession, user: User, contact_id: str) -> list[dict]:
    """Ratings on accessible projects, newest first, with project and rater names."""
    contact, project_ids = await verify_vendor_access(db, user, contact_id)
    result = await db.execute(
        select(VendorRating, Project.name, User)
        .join(Project, Project.id == VendorRating.project_id)
        .join(User, User.id == VendorRating.user_id)
        .where(
            and_(
                VendorRating.contact_id == contact.id,
                VendorRating.project_id.in_(project_ids),
                VendorRating.deleted_at.is_(None),
            )
        )
        .order_by(VendorRating.created_at.desc())
    )
    return [
        _rating_payload(rating, project_name=project_name, user_name=rater.name)
        for rating, project_name, rater in result.all()
    ]


def _rating_payload(
    rating: VendorRating, project_name: Optional[str] = None, user_name: Optional[str] = None
) -> dict[str, Any]:
    return {
        "id": rating.id,
        "user_id": rating.user_id,
        "contact_id": rating.contact_id,
        "project_id": rating.project_id,
        "project_name": project_name,
        "user_name": user_name,
        "rating": rating.rating,
        "review": rating.review,
        "created_at": rating.created_at,
        "updated_at": rating.updated_at,
    }


async def _live_rating(
    db: AsyncSession, user_id: str, contact_id: str, project_id: str
) -> Optional[VendorRating]:
    result = await db.execute(
        select(VendorRating).where(
            and_(
                VendorRating.user_id == user_id,
                VendorRating.contact_id == contact_id,
                VendorRating.project_id == project_id,
                VendorRating.deleted_at.is_(None),
            )
        )
    )
    return result.scalars().first()


async def create_rating(
    db: AsyncSession,
    user: User,
    contact_id: str,
    project_id: str,
    rating: int,
    review: Optional[str] = None,
    request: Optional[Request] = None,
) -> dict[str, Any]:
    """
    Rate a vendor's work on one project.

    Raises:
        ForbiddenError: the caller cannot read the project.
        BadRequestError: no live cost on the project references the vendor.
        ConflictError: the caller already rated this vendor for this project.
    """
    access = await verify_project_access(db, user, project_id, Permission.READ, request)
    project = access.project

    contact = await _live_contact(db, contact_id)
    if contact is None or project.id not in await vendor_project_ids(db, contact.id):
        raise BadRequestError("Vendor is not associated with this project")

    conflict = "You have already rated this vendor for this project"
    if await _live_rating(db, user.id, contact.id, project.id) is not None:
        raise ConflictError(conflict)

    entry = VendorRating(
        user_id=user.id,
        contact_id=contact.id,
        project_id=project.id,
        rating=rating,
        review=review,
    )
    db.add(entry)
    try:
        await db.flush()
    except IntegrityError:
        # Concurrent duplicate caught by the partial unique index
        await db.rollback()
        raise ConflictError(conflict)

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.VENDOR_RATING,
        entity_id=entry.id,
        details={"contact_id": contact.id, "rating": rating},
        project_id=project.id,
        request=request,
    )
    await db.commit()
    await db.refresh(entry)

    logger.info(
        "User %s rated vendor %s %d/5 on project %s", user.id, contact.id, rating, project.id
    )
    return _rating_payload(entry, project_name=project.name, user_name=user.name)


async def _owned_rating(db: AsyncSession, user: User, rating_id: str) -> VendorRating:
    rating = None
    if is_uuid(rating_id):
        result = await db.execute(
            select(VendorRating).where(
                and_(VendorRating.id == rating_id, VendorRating.deleted_at.is_(None))
            )
        )
        rating = result.scalars().first()
    if rating is None:
        raise NotFoundError("Rating not found")
    if rating.user_id != user.id:
        raise ForbiddenError("You do not own this rating")
    return rating


async def update_rating(
    db: AsyncSession,
    user: User,
    rating_id: str,
    changes: dict[str, Any],
    request: Optional[Request] = None,
) -> dict[str, Any]:
    rating = await _owned_rating(db, user, rating_id)
    for field, value in changes.items():
        setattr(rating, field, value)

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.VENDOR_RATING,
        entity_id=rating.id,
        details={"fields": sorted(changes)},
        project_id=rating.project_id,
        request=request,
    )
    await db.commit()
    await db.refresh(rating)
    return _rating_payload(rating, user_name=user.name)


async def delete_rating(
    db: AsyncSession, user: User, rating_id: str, request: Optional[Request] = None
) -> None:
    """Soft delete, which frees the slot for a new rating on the same project."""
    rating = await _owned_rating(db, user, rating_id)
    rating.deleted_at = datetime.now(timezone.utc)

    await audit_log.record(
        db,
        user_id=user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.VENDOR_RATING,
        entity_id=rating.id,
        project_id=rating.project_id,
        request=request,
    )
    await db.commit()


async def _has_category(
    db: AsyncSession, contact_id: str, project_ids: Sequence[str], category: str
) -> bool:
    result = await db.execute(
        select(Cost.id)
        .where(
            and_(
                Cost.contact_id == contact_id,
                Cost.project_id.in_(project_ids),
                Cost.category == category,
                Cost.deleted_at.is_(None),
            )
        )
        .limit(1)
    )
    return result.first() is not None


async def compare_vendors(
    db: AsyncSession,
    user: User,
    contact_ids: Sequence[str],
    category: Optional[str] = None,
    min_rating: Optional[float] = None,
) -> list[dict[str, Any]]:
    """Side-by-side metrics. Every vendor must be accessible, then filters apply."""
    checked = [
        await verify_vendor_access(db, user, contact_id)
        for contact_id in dict.fromkeys(contact_ids)
    ]

    compared = []
    for contact, project_ids in checked:
        metrics = await _metrics(db, contact, project_ids)
        if min_rating is not None and (
            metrics["average_rating"] is None or metrics["average_rating"] < min_rating
        ):
            continue
        if category is not None and not await _has_category(
            db, contact.id, project_ids, category
        ):
            continue
        compared.append(metrics)
    return compared
