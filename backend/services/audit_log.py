"""
Audit logger.

Append-only sink for access decisions and entity mutations. Entries are
flushed into the caller's transaction; nothing here updates or deletes rows.
"""

import logging
from typing import Any, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from api.middleware.rate_limit import client_ip
from infrastructure.database.models import AuditAction, AuditEntityType, AuditLog
from infrastructure.database.models.audit_log import ENTITY_ID_MAX_LENGTH

logger = logging.getLogger(__name__)


def _client_info(request: Optional[Request]) -> tuple[Optional[str], Optional[str]]:
    if request is None:
        return None, None
    user_agent = request.headers.get("user-agent")
    return client_ip(request), user_agent[:500] if user_agent else None


async def record(
    db: AsyncSession,
    *,
    user_id: Optional[str],
    action: AuditAction | str,
    entity_type: AuditEntityType | str,
    entity_id: Optional[str],
    details: Optional[dict[str, Any]] = None,
    project_id: Optional[str] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    """Append one audit entry to the current transaction."""
    ip_address, user_agent = _client_info(request)
    entry = AuditLog(
        user_id=user_id,
        project_id=project_id,
        action=action.value if isinstance(action, AuditAction) else action,
        entity_type=(
            entity_type.value if isinstance(entity_type, AuditEntityType) else entity_type
        ),
        entity_id=entity_id[:ENTITY_ID_MAX_LENGTH] if entity_id else entity_id,
        details=details or {},
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    await db.flush()
    logger.debug(
        "audit %s %s:%s by %s",
        entry.action,
        entry.entity_type,
        entity_id,
        user_id,
        extra={"user_id": user_id, "project_id": project_id},
    )
    return entry


async def list_access_attempts(
    db: AsyncSession,
    project_id: str,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """Return ``accessed`` entries for a project, newest first, with user display info."""
    conditions = and_(
        AuditLog.entity_type == AuditEntityType.PROJECT.value,
        AuditLog.action == AuditAction.ACCESSED.value,
        AuditLog.entity_id == project_id,
    )

    total = (
        await db.execute(select(func.count()).select_from(AuditLog).where(conditions))
    ).scalar() or 0

    result = await db.execute(
        select(AuditLog)
        .where(conditions)
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    attempts = []
    for entry in result.scalars().all():
        user = entry.user
        details = entry.details or {}
        attempts.append(
            {
                "id": entry.id,
                "user_id": entry.user_id,
                "user_name": user.name if user else None,
                "user_email": user.email if user else None,
                "user_role": user.role if user else None,
                "role": details.get("role"),
                "permission": details.get("permission"),
                "required_permission": details.get("required_permission"),
                "success": bool(details.get("success")),
                "reason": details.get("reason"),
                "ip_address": entry.ip_address,
                "timestamp": entry.created_at,
            }
        )
    return attempts, total
