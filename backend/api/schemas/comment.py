"""
Comment API schemas.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from infrastructure.database.models.comment import CommentEntityType

CONTENT_MAX_LENGTH = 2000


class CommentCreate(BaseModel):
    entity_type: CommentEntityType
    entity_id: str
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH)
    parent_comment_id: Optional[str] = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH)


class CommentResponse(BaseModel):
    id: str
    project_id: str
    entity_type: str
    entity_id: str
    parent_comment_id: Optional[str] = None
    user_id: str
    author_name: Optional[str] = None
    content: str
    created_at: dt.datetime
    updated_at: dt.datetime


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    total: int


class CommentCountResponse(BaseModel):
    count: int
