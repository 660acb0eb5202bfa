"""
Contact (address book) API routes.

Contacts belong to the user who created them and are never shared through
project access.
"""

import math
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from api.schemas.contact import (
    ContactCreate,
    ContactListResponse,
    ContactResponse,
    ContactUpdate,
)
from core.errors import ConflictError, NotFoundError
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    Contact,
    ContactCategory,
    User,
)
from infrastructure.database.models.base import is_uuid
from services import audit_log
from services.search import escape_like

router = APIRouter(prefix="/contacts", tags=["Contacts"])


async def _get_own_contact(db: AsyncSession, contact_id: str, user: User) -> Contact:
    contact = None
    if is_uuid(contact_id):
        contact = (
            await db.execute(
                select(Contact).where(
                    and_(
                        Contact.id == contact_id,
                        Contact.user_id == user.id,
                        Contact.deleted_at.is_(None),
                    )
                )
            )
        ).scalars().first()
    if contact is None:
        raise NotFoundError("Contact not found")
    return contact


async def _ensure_unique_email(
    db: AsyncSession, user: User, email: Optional[str], exclude_id: Optional[str] = None
) -> None:
    if not email:
        return
    stmt = select(Contact.id).where(
        and_(
            Contact.user_id == user.id,
            func.lower(Contact.email) == email.lower(),
            Contact.deleted_at.is_(None),
        )
    )
    if exclude_id:
        stmt = stmt.where(Contact.id != exclude_id)
    if (await db.execute(stmt)).scalars().first() is not None:
        raise ConflictError("A contact with this email already exists")


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def create_contact(
    request: Request,
    data: ContactCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await _ensure_unique_email(db, current_user, data.email)

    contact = Contact(
        user_id=current_user.id,
        **data.model_dump(exclude={"category"}),
        category=data.category.value,
    )
    db.add(contact)
    await db.flush()

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.CONTACT,
        entity_id=contact.id,
        request=request,
    )
    await db.commit()
    await db.refresh(contact)
    return contact


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    category: Optional[ContactCategory] = None,
    search: Optional[str] = Query(None, max_length=100),
):
    """List the caller's contacts, optionally filtered by category or text."""
    conditions = [Contact.user_id == current_user.id, Contact.deleted_at.is_(None)]
    if category is not None:
        conditions.append(Contact.category == category.value)
    if search:
        pattern = f"%{escape_like(search)}%"
        conditions.append(
            or_(
                Contact.first_name.ilike(pattern, escape="\\"),
                Contact.last_name.ilike(pattern, escape="\\"),
                Contact.company.ilike(pattern, escape="\\"),
                Contact.email.ilike(pattern, escape="\\"),
            )
        )

    total = (
        await db.execute(select(func.count(Contact.id)).where(and_(*conditions)))
    ).scalar() or 0
    result = await db.execute(
        select(Contact)
        .where(and_(*conditions))
        .order_by(Contact.first_name, Contact.last_name)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return ContactListResponse(
        contacts=[ContactResponse.model_validate(c) for c in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total > 0 else 0,
    )


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await _get_own_contact(db, contact_id, current_user)


@router.put("/{contact_id}", response_model=ContactResponse)
async def update_contact(
    request: Request,
    contact_id: str,
    data: ContactUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    contact = await _get_own_contact(db, contact_id, current_user)
    changes = data.model_dump(exclude_unset=True)
    if "email" in changes:
        await _ensure_unique_email(db, current_user, changes["email"], exclude_id=contact.id)

    for field, value in changes.items():
        setattr(contact, field, value.value if isinstance(value, ContactCategory) else value)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        entity_type=AuditEntityType.CONTACT,
        entity_id=contact.id,
        details={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    await db.refresh(contact)
    return contact


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    request: Request,
    contact_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Soft-delete a contact. Costs keep their reference."""
    contact = await _get_own_contact(db, contact_id, current_user)
    contact.deleted_at = datetime.now(timezone.utc)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.CONTACT,
        entity_id=contact.id,
        request=request,
    )
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
