"""
Vendor metrics and rating API schemas.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from api.schemas.common import PartialUpdate
from infrastructure.database.models.cost import CostCategory
from infrastructure.database.models.vendor_rating import RATING_MAX, RATING_MIN


class CategorySpend(BaseModel):
    category: str
    total_spent: int


class VendorMetricsResponse(BaseModel):
    contact_id: str
    name: str
    company: Optional[str] = None
    total_projects: int
    total_spent: int
    average_cost: int
    frequency: float  # projects per year
    last_used: Optional[dt.date] = None
    category_specialization: list[CategorySpend]
    average_rating: Optional[float] = None
    rating_count: int


class VendorRatingCreate(BaseModel):
    project_id: str
    rating: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    review: Optional[str] = Field(None, max_length=500)


class VendorRatingUpdate(PartialUpdate):
    non_nullable = ("rating",)

    rating: Optional[int] = Field(None, ge=RATING_MIN, le=RATING_MAX)
    review: Optional[str] = Field(None, max_length=500)


class VendorRatingResponse(BaseModel):
    id: str
    user_id: str
    contact_id: str
    project_id: str
    project_name: Optional[str] = None
    user_name: Optional[str] = None
    rating: int
    review: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class VendorRatingListResponse(BaseModel):
    ratings: list[VendorRatingResponse]
    total: int


class VendorCompareRequest(BaseModel):
    contact_ids: list[str] = Field(..., min_length=1, max_length=5)
    category: Optional[CostCategory] = None
    min_rating: Optional[float] = Field(None, ge=RATING_MIN, le=RATING_MAX)


class VendorCompareResponse(BaseModel):
    vendors: list[VendorMetricsResponse]
