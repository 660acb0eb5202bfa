"""
Construction phase API schemas.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from api.schemas.common import PartialUpdate
from core.domain.phases import PhaseTemplateType
from infrastructure.database.models.phase import PhaseStatus


class PhaseInitialize(BaseModel):
    template: Optional[PhaseTemplateType] = None


class PhaseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phase_number: int = Field(..., ge=1)
    phase_type: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=5000)
    planned_start_date: Optional[dt.date] = None
    planned_end_date: Optional[dt.date] = None
    progress: int = Field(0, ge=0, le=100)
    status: Optional[PhaseStatus] = None

    @model_validator(mode="after")
    def check_planned_dates(self) -> "PhaseCreate":
        if (
            self.planned_start_date
            and self.planned_end_date
            and self.planned_end_date < self.planned_start_date
        ):
            raise ValueError("planned_end_date must not be before planned_start_date")
        return self


class PhaseUpdate(PartialUpdate):
    non_nullable = ("name", "phase_number", "progress", "status")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phase_number: Optional[int] = Field(None, ge=1)
    phase_type: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=5000)
    planned_start_date: Optional[dt.date] = None
    planned_end_date: Optional[dt.date] = None
    actual_start_date: Optional[dt.date] = None
    actual_end_date: Optional[dt.date] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    status: Optional[PhaseStatus] = None


class PhaseProgressUpdate(BaseModel):
    progress: int = Field(..., ge=0, le=100)
    status: Optional[PhaseStatus] = None


class PhaseReorder(BaseModel):
    phase_ids: list[str] = Field(..., min_length=1)


class PhaseResponse(BaseModel):
    id: str
    project_id: str
    name: str
    phase_number: int
    phase_type: Optional[str] = None
    description: Optional[str] = None
    planned_start_date: Optional[dt.date] = None
    planned_end_date: Optional[dt.date] = None
    actual_start_date: Optional[dt.date] = None
    actual_end_date: Optional[dt.date] = None
    progress: int
    status: str
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class PhaseListResponse(BaseModel):
    phases: list[PhaseResponse]
    total: int
