"""
Contact API schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from api.schemas.common import PartialUpdate
from infrastructure.database.models.contact import ContactCategory


class ContactCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    category: ContactCategory = ContactCategory.OTHER
    notes: Optional[str] = Field(None, max_length=5000)


class ContactUpdate(PartialUpdate):
    non_nullable = ("first_name", "category")

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    category: Optional[ContactCategory] = None
    notes: Optional[str] = Field(None, max_length=5000)


class ContactResponse(BaseModel):
    id: str
    first_name: str
    last_name: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    category: str
    notes: Optional[str] = None
    display_name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContactListResponse(BaseModel):
    contacts: list[ContactResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
