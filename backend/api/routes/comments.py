"""
Comment API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from api.schemas.comment import (
    CommentCountResponse,
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentUpdate,
)
from infrastructure.database.connection import get_db
from infrastructure.database.models import CommentEntityType, User
from services import comments

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.get("", response_model=CommentListResponse)
async def list_comments(
    request: Request,
    entity_type: CommentEntityType,
    entity_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    items = await comments.list_comments(db, current_user, entity_type, entity_id, request)
    return CommentListResponse(comments=items, total=len(items))


@router.get("/count", response_model=CommentCountResponse)
async def count_comments(
    request: Request,
    entity_type: CommentEntityType,
    entity_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    count = await comments.count_comments(db, current_user, entity_type, entity_id, request)
    return CommentCountResponse(count=count)


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    request: Request,
    data: CommentCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await comments.create_comment(
        db,
        current_user,
        data.entity_type,
        data.entity_id,
        data.content,
        parent_comment_id=data.parent_comment_id,
        request=request,
    )


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    request: Request,
    comment_id: str,
    data: CommentUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await comments.update_comment(db, current_user, comment_id, data.content, request)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    request: Request,
    comment_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await comments.delete_comment(db, current_user, comment_id, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
