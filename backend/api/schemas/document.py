"""
Document metadata API schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from infrastructure.database.models.document import DocumentCategory

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
}


class DocumentCreate(BaseModel):
    """Metadata for a file already uploaded to blob storage."""

    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(..., max_length=100)
    size_bytes: int = Field(..., gt=0)
    blob_url: str = Field(..., min_length=1, max_length=1000)
    category: DocumentCategory = DocumentCategory.OTHER

    @field_validator("mime_type")
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        if v.lower() not in ALLOWED_MIME_TYPES:
            raise ValueError(f"Unsupported file type: {v}")
        return v.lower()

    @field_validator("blob_url")
    @classmethod
    def validate_blob_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("blob_url must be an https:// URL")
        return v


class DocumentResponse(BaseModel):
    id: str
    project_id: str
    file_name: str
    mime_type: str
    size_bytes: int
    blob_url: str
    category: str
    uploaded_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]
    total: int
