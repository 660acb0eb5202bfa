"""
Search result schemas.
"""

from typing import Optional

from pydantic import BaseModel


class SearchHit(BaseModel):
    entity_type: str  # project | cost | contact | document
    id: str
    title: str
    subtitle: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None


class SearchResponse(BaseModel):
    query: str
    results: list[SearchHit]
    total: int
