"""
Notification API schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from api.schemas.common import PartialUpdate
from infrastructure.database.models.notification_preference import DigestFrequency


class NotificationResponse(BaseModel):
    id: str
    type: str
    entity_type: str
    entity_id: str
    project_id: Optional[str] = None
    message: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    unread: int
    page: int
    page_size: int


class UnreadCountResponse(BaseModel):
    unread: int


class MarkReadResponse(BaseModel):
    updated: int


class NotificationPreferencesResponse(BaseModel):
    email_on_cost: bool
    email_on_large_expense: bool
    email_on_document: bool
    email_on_timeline: bool
    email_on_comment: bool
    email_digest_frequency: str
    timezone: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationPreferencesUpdate(PartialUpdate):
    non_nullable = (
        "email_on_cost",
        "email_on_large_expense",
        "email_on_document",
        "email_on_timeline",
        "email_on_comment",
        "email_digest_frequency",
        "timezone",
    )

    email_on_cost: Optional[bool] = None
    email_on_large_expense: Optional[bool] = None
    email_on_document: Optional[bool] = None
    email_on_timeline: Optional[bool] = None
    email_on_comment: Optional[bool] = None
    email_digest_frequency: Optional[DigestFrequency] = None
    timezone: Optional[str] = Field(None, min_length=1, max_length=64)


class UnsubscribeRequest(BaseModel):
    token: str = Field(..., min_length=1)


class UnsubscribeResponse(BaseModel):
    message: str
    preferences: NotificationPreferencesResponse
