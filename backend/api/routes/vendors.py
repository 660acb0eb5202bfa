"""
Vendor metrics and rating API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.auth import get_current_user
from api.schemas.vendor import (
    VendorCompareRequest,
    VendorCompareResponse,
    VendorMetricsResponse,
    VendorRatingCreate,
    VendorRatingListResponse,
    VendorRatingResponse,
    VendorRatingUpdate,
)
from infrastructure.database.connection import get_db
from infrastructure.database.models import User
from services import vendors

router = APIRouter(prefix="/vendors", tags=["Vendors"])


@router.post("/compare", response_model=VendorCompareResponse)
async def compare_vendors(
    data: VendorCompareRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Compare up to five vendors; FORBIDDEN if any of them is out of reach."""
    compared = await vendors.compare_vendors(
        db,
        current_user,
        data.contact_ids,
        category=data.category.value if data.category else None,
        min_rating=data.min_rating,
    )
    return VendorCompareResponse(vendors=compared)


@router.get("/{contact_id}/metrics", response_model=VendorMetricsResponse)
async def get_vendor_metrics(
    contact_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await vendors.get_vendor_metrics(db, current_user, contact_id)


@router.get("/{contact_id}/ratings", response_model=VendorRatingListResponse)
async def list_vendor_ratings(
    contact_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    ratings = await vendors.list_vendor_ratings(db, current_user, contact_id)
    return VendorRatingListResponse(ratings=ratings, total=len(ratings))


@router.post(
    "/{contact_id}/ratings",
    response_model=VendorRatingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_vendor_rating(
    request: Request,
    contact_id: str,
    data: VendorRatingCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Rate a vendor once per project. A second live rating is a CONFLICT."""
    return await vendors.create_rating(
        db,
        current_user,
        contact_id,
        data.project_id,
        data.rating,
        review=data.review,
        request=request,
    )


@router.put("/ratings/{rating_id}", response_model=VendorRatingResponse)
async def update_vendor_rating(
    request: Request,
    rating_id: str,
    data: VendorRatingUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await vendors.update_rating(
        db, current_user, rating_id, data.model_dump(exclude_unset=True), request
    )


@router.delete("/ratings/{rating_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vendor_rating(
    request: Request,
    rating_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await vendors.delete_rating(db, current_user, rating_id, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
