"""
Portfolio analytics and export API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from api.routes.auth import get_current_user
from api.schemas.portfolio import (
    PortfolioAnalyticsRequest,
    PortfolioAnalyticsResponse,
    PortfolioExportRequest,
    PortfolioProject,
    PortfolioProjectsResponse,
)
from api.utils import csv_download, xlsx_download
from infrastructure.database.connection import get_db
from infrastructure.database.models import User
from services import portfolio, report_excel, reports

router = APIRouter(prefix="/portfolio", tags=["Portfolio"])


def _filters(data: PortfolioAnalyticsRequest) -> portfolio.PortfolioFilters:
    return portfolio.PortfolioFilters(
        project_ids=data.project_ids,
        start_date=data.start_date,
        end_date=data.end_date,
        statuses=[s.value for s in data.statuses],
    )


@router.get("/projects", response_model=PortfolioProjectsResponse)
async def list_portfolio_projects(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Projects available for selection in the portfolio view."""
    projects = await portfolio.list_portfolio_projects(db, current_user)
    return PortfolioProjectsResponse(
        projects=[PortfolioProject.model_validate(p) for p in projects]
    )


@router.post("/analytics", response_model=PortfolioAnalyticsResponse)
async def get_portfolio_analytics(
    request: Request,
    data: PortfolioAnalyticsRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Compare costs across projects.

    Fails with FORBIDDEN unless the caller can read every requested project.
    """
    return await portfolio.build_portfolio_analytics(db, current_user, _filters(data), request)


@router.post("/export")
@limiter.limit(get_rate_limit("export"))
async def export_portfolio(
    request: Request,
    data: PortfolioExportRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Download portfolio analytics as CSV (one row per project category) or Excel."""
    analytics = await portfolio.build_portfolio_analytics(
        db, current_user, _filters(data), request
    )
    if data.format == "xlsx":
        content = report_excel.build_portfolio_workbook(analytics)
        return xlsx_download(content, "portfolio-analytics")
    return csv_download(reports.portfolio_rows(analytics), "portfolio-analytics")
