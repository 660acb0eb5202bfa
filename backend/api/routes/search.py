"""
Global search API route.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from api.schemas.search import SearchHit, SearchResponse
from infrastructure.database.connection import get_db
from infrastructure.database.models import User
from services import search as search_service
from services.search import SearchEntityType

router = APIRouter(prefix="/search", tags=["Search"])


@router.get("", response_model=SearchResponse)
async def search(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    q: str = Query(..., min_length=2, max_length=100),
    types: Optional[list[SearchEntityType]] = Query(None),
    project_id: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
):
    """
    Search projects, costs, documents and the caller's contacts.

    Only projects the caller can read are searched.
    """
    query = q.strip()
    hits = await search_service.search(
        db, current_user, query, entity_types=types, project_id=project_id, limit=limit
    )
    return SearchResponse(
        query=query,
        results=[SearchHit(**hit) for hit in hits],
        total=len(hits),
    )
