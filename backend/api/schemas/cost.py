"""
Cost API schemas. Amounts are integer cents.
"""

import datetime as dt
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from api.schemas.common import PartialUpdate
from infrastructure.database.models.cost import CostCategory


def _not_in_future(v: Optional[dt.date]) -> Optional[dt.date]:
    if v is not None and v > dt.datetime.now(dt.timezone.utc).date():
        raise ValueError("Cost date cannot be in the future")
    return v


CostDate = Annotated[dt.date, AfterValidator(_not_in_future)]


class CostCreate(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in cents")
    description: str = Field(..., min_length=1, max_length=500)
    category: CostCategory = CostCategory.OTHER
    date: CostDate
    contact_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=5000)


class CostUpdate(PartialUpdate):
    non_nullable = ("amount", "description", "category", "date")

    amount: Optional[int] = Field(None, gt=0)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    category: Optional[CostCategory] = None
    date: Optional[CostDate] = None
    contact_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=5000)


class CostResponse(BaseModel):
    id: str
    project_id: str
    amount: int
    description: str
    category: str
    date: dt.date
    contact_id: Optional[str] = None
    contact_name: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class CostListResponse(BaseModel):
    costs: list[CostResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class CategoryTotal(BaseModel):
    category: str
    total: int
    count: int


class CostTotalResponse(BaseModel):
    """Cost breakdown for a project."""

    project_id: str
    total: int
    count: int
    budget: Optional[int] = None
    budget_remaining: Optional[int] = None
    by_category: list[CategoryTotal]
