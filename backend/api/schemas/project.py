"""
Project API schemas.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from api.schemas.common import PartialUpdate
from infrastructure.database.models.project import ProjectStatus, ProjectType


class AccessDescriptor(BaseModel):
    """Caller's standing on a project."""

    role: str  # owner | partner
    permission: str  # read | write


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    project_type: ProjectType = ProjectType.RENOVATION
    address: Optional[str] = Field(None, max_length=500)
    suburb: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    postcode: Optional[str] = Field(None, max_length=20)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_budget: Optional[int] = Field(None, ge=0, description="Budget in cents")
    size_sqm: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class ProjectUpdate(PartialUpdate):
    """Schema for updating a project. Only provided fields change."""

    non_nullable = ("name", "project_type", "status")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    project_type: Optional[ProjectType] = None
    status: Optional[ProjectStatus] = None
    address: Optional[str] = Field(None, max_length=500)
    suburb: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    postcode: Optional[str] = Field(None, max_length=20)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_budget: Optional[int] = Field(None, ge=0)
    size_sqm: Optional[int] = Field(None, gt=0)


class ProjectResponse(BaseModel):
    """Schema for project response."""

    id: str
    name: str
    description: Optional[str] = None
    project_type: str
    status: str
    address: Optional[str] = None
    suburb: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_budget: Optional[int] = None
    size_sqm: Optional[int] = None
    owner_id: str
    created_at: datetime
    updated_at: datetime
    access: Optional[AccessDescriptor] = None

    model_config = ConfigDict(from_attributes=True)


class ProjectListResponse(BaseModel):
    """Paginated list of projects visible to the caller."""

    projects: list[ProjectResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class PermissionLevelResponse(BaseModel):
    project_id: str
    permission: str  # none | read | write
