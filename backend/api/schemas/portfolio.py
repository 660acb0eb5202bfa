"""
Portfolio analytics schemas. Money values are integer cents.
"""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from infrastructure.database.models.project import ProjectStatus


class PortfolioProject(BaseModel):
    id: str
    name: str
    status: str
    total_budget: Optional[int] = None
    size_sqm: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class PortfolioProjectsResponse(BaseModel):
    projects: list[PortfolioProject]


class PortfolioAnalyticsRequest(BaseModel):
    project_ids: list[str] = Field(..., min_length=1, max_length=50)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    statuses: list[ProjectStatus] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class PortfolioExportRequest(PortfolioAnalyticsRequest):
    format: Literal["csv", "xlsx"] = "csv"


class PortfolioSummary(BaseModel):
    total_value: int
    cost_count: int
    project_count: int
    avg_per_project: int


class ProjectTotals(BaseModel):
    project_id: str
    project_name: str
    status: str
    total_cost: int
    cost_count: int
    budget: Optional[int] = None
    budget_variance: Optional[int] = None
    size_sqm: Optional[int] = None
    cost_per_sqm: Optional[int] = None


class CategorySpend(BaseModel):
    category: str
    total: int
    count: int
    percentage: float


class ProjectCategorySpend(BaseModel):
    project_id: str
    project_name: str
    category: str
    total: int


class MonthlyTrend(BaseModel):
    month: str  # YYYY-MM
    project_id: str
    project_name: str
    total: int
    count: int


class VendorSpend(BaseModel):
    contact_id: str
    name: str
    company: Optional[str] = None
    total_spent: int
    transaction_count: int
    project_count: int
    avg_per_project: int


class ProjectDuration(BaseModel):
    project_id: str
    project_name: str
    status: str
    start_date: dt.date
    end_date: dt.date
    duration_days: int


class PortfolioAnalyticsResponse(BaseModel):
    summary: PortfolioSummary
    projects: list[ProjectTotals]
    category_spend: list[CategorySpend]
    category_spend_by_project: list[ProjectCategorySpend]
    cost_trends: list[MonthlyTrend]
    top_vendors: list[VendorSpend]
    durations: list[ProjectDuration]
