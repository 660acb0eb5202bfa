"""
Project document API routes.

Clients upload file bytes directly to blob storage and register the result
here. Only metadata and the blob URL are stored.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_project import require_project_read, require_project_write
from api.routes.auth import get_current_user
from api.schemas.document import DocumentCreate, DocumentListResponse, DocumentResponse
from core.domain.access import Permission
from core.errors import BadRequestError
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AuditAction,
    AuditEntityType,
    Document,
    DocumentCategory,
    NotificationType,
    User,
)
from services import audit_log, notifications
from services.access_control import ProjectWithAccess, verify_entity_access

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Documents"])


@router.post(
    "/projects/{project_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_document(
    request: Request,
    data: DocumentCreate,
    access: Annotated[ProjectWithAccess, Depends(require_project_write)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Register an uploaded file against a project.

    Files over the size limit are rejected.
    """
    if data.size_bytes > settings.document_max_size_bytes:
        max_mb = settings.document_max_size_bytes // (1024 * 1024)
        raise BadRequestError(f"File exceeds the {max_mb} MB limit")

    project = access.project
    document = Document(
        project_id=project.id,
        uploaded_by=current_user.id,
        file_name=data.file_name,
        mime_type=data.mime_type,
        size_bytes=data.size_bytes,
        blob_url=data.blob_url,
        category=data.category.value,
    )
    db.add(document)
    await db.flush()

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        entity_type=AuditEntityType.DOCUMENT,
        entity_id=document.id,
        details={"file_name": document.file_name, "size_bytes": document.size_bytes},
        project_id=project.id,
        request=request,
    )
    await notifications.notify_project_members(
        db,
        project,
        NotificationType.DOCUMENT_UPLOADED,
        entity_type="document",
        entity_id=document.id,
        exclude_user_id=current_user.id,
        file_name=document.file_name,
    )
    await db.commit()
    await db.refresh(document)

    logger.info(
        "Document %s registered on project %s",
        document.id,
        project.id,
        extra={"user_id": current_user.id, "project_id": project.id},
    )
    return document


@router.get("/projects/{project_id}/documents", response_model=DocumentListResponse)
async def list_documents(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
    category: Optional[DocumentCategory] = None,
):
    conditions = [Document.project_id == access.project.id, Document.deleted_at.is_(None)]
    if category is not None:
        conditions.append(Document.category == category.value)

    result = await db.execute(
        select(Document).where(and_(*conditions)).order_by(Document.created_at.desc())
    )
    documents = result.scalars().all()
    return DocumentListResponse(
        documents=[DocumentResponse.model_validate(d) for d in documents],
        total=len(documents),
    )


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    request: Request,
    document_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Soft-delete a document record. The blob itself is left in storage."""
    document, _ = await verify_entity_access(
        db, current_user, Document, document_id, "Document", Permission.WRITE, request
    )
    document.deleted_at = datetime.now(timezone.utc)

    await audit_log.record(
        db,
        user_id=current_user.id,
        action=AuditAction.DELETE,
        entity_type=AuditEntityType.DOCUMENT,
        entity_id=document.id,
        project_id=document.project_id,
        request=request,
    )
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
