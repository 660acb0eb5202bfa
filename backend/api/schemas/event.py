"""
Timeline event API schemas.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from api.schemas.common import PartialUpdate
from infrastructure.database.models.event import EventCategory


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    date: dt.date
    category: EventCategory = EventCategory.OTHER


class EventUpdate(PartialUpdate):
    non_nullable = ("title", "date", "category")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    date: Optional[dt.date] = None
    category: Optional[EventCategory] = None


class EventResponse(BaseModel):
    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    date: dt.date
    category: str
    created_by: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
