"""
Cross-entity search scoped to the caller's accessible projects.
"""

import logging
from enum import Enum
from typing import Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Contact, Cost, Document, Project, User
from services.access_control import list_accessible_project_ids

logger = logging.getLogger(__name__)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally (use with ``escape="\\\\"``)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SearchEntityType(str, Enum):
    PROJECT = "project"
    COST = "cost"
    CONTACT = "contact"
    DOCUMENT = "document"


def _rank(title: str, query: str) -> int:
    """Position of the first match in the title; non-title matches sort last."""
    position = title.lower().find(query.lower())
    return position if position >= 0 else len(title) + 1


def _hit(
    entity_type: SearchEntityType,
    entity_id: str,
    title: str,
    project_id: Optional[str] = None,
    project_name: Optional[str] = None,
    subtitle: Optional[str] = None,
) -> dict:
    return {
        "entity_type": entity_type.value,
        "id": entity_id,
        "title": title,
        "subtitle": subtitle,
        "project_id": project_id,
        "project_name": project_name,
    }


async def search(
    db: AsyncSession,
    user: User,
    query: str,
    entity_types: Optional[Sequence[SearchEntityType]] = None,
    project_id: Optional[str] = None,
    limit: int = 20,
) -> list[dict]:
    """Case-insensitive substring search over projects, costs, contacts and documents.

    Project-owned entities are restricted to projects the caller can read.
    Contacts are restricted to the caller's own address book.
    """
    types = set(entity_types or SearchEntityType)
    pattern = f"%{escape_like(query)}%"

    project_ids = await list_accessible_project_ids(db, user.id)
    if project_id is not None:
        project_ids = [pid for pid in project_ids if pid == project_id]

    hits: list[dict] = []

    if project_ids and SearchEntityType.PROJECT in types:
        result = await db.execute(
            select(Project)
            .where(
                and_(
                    Project.id.in_(project_ids),
                    or_(
                        Project.name.ilike(pattern, escape="\\"),
                        Project.address.ilike(pattern, escape="\\"),
                        Project.suburb.ilike(pattern, escape="\\"),
                    ),
                )
            )
            .limit(limit)
        )
        for project in result.scalars().unique().all():
            hits.append(
                _hit(
                    SearchEntityType.PROJECT,
                    project.id,
                    project.name,
                    project_id=project.id,
                    project_name=project.name,
                    subtitle=project.address,
                )
            )

    if project_ids and SearchEntityType.COST in types:
        result = await db.execute(
            select(Cost, Project.name)
            .join(Project, Project.id == Cost.project_id)
            .where(
                and_(
                    Cost.project_id.in_(project_ids),
                    Cost.deleted_at.is_(None),
                    or_(
                        Cost.description.ilike(pattern, escape="\\"),
                        Cost.notes.ilike(pattern, escape="\\"),
                    ),
                )
            )
            .limit(limit)
        )
        for cost, project_name in result.unique().all():
            hits.append(
                _hit(
                    SearchEntityType.COST,
                    cost.id,
                    cost.description,
                    project_id=cost.project_id,
                    project_name=project_name,
                    subtitle=cost.category,
                )
            )

    if project_ids and SearchEntityType.DOCUMENT in types:
        result = await db.execute(
            select(Document, Project.name)
            .join(Project, Project.id == Document.project_id)
            .where(
                and_(
                    Document.project_id.in_(project_ids),
                    Document.deleted_at.is_(None),
                    Document.file_name.ilike(pattern, escape="\\"),
                )
            )
            .limit(limit)
        )
        for document, project_name in result.unique().all():
            hits.append(
                _hit(
                    SearchEntityType.DOCUMENT,
                    document.id,
                    document.file_name,
                    project_id=document.project_id,
                    project_name=project_name,
                    subtitle=document.category,
                )
            )

    # Contacts are not project-scoped
    if SearchEntityType.CONTACT in types and project_id is None:
        result = await db.execute(
            select(Contact)
            .where(
                and_(
                    Contact.user_id == user.id,
                    Contact.deleted_at.is_(None),
                    or_(
                        Contact.first_name.ilike(pattern, escape="\\"),
                        Contact.last_name.ilike(pattern, escape="\\"),
                        Contact.company.ilike(pattern, escape="\\"),
                        Contact.email.ilike(pattern, escape="\\"),
                    ),
                )
            )
            .limit(limit)
        )
        for contact in result.scalars().all():
            hits.append(
                _hit(
                    SearchEntityType.CONTACT,
                    contact.id,
                    contact.display_name,
                    subtitle=contact.email,
                )
            )

    hits.sort(key=lambda hit: (_rank(hit["title"], query), hit["title"].lower()))
    logger.debug("Search for user %s returned %d hits", user.id, len(hits))
    return hits[:limit]
