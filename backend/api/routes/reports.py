"""
Project report API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_project import require_project_read
from api.utils import csv_download, xlsx_download
from core.domain.access import is_owner
from infrastructure.database.connection import get_db
from services import report_excel, reports
from services.access_control import ProjectWithAccess

router = APIRouter(prefix="/projects/{project_id}/reports", tags=["Reports"])


def _filename_prefix(access: ProjectWithAccess) -> str:
    return f"project-costs-{access.project.id[:8]}"


@router.get("/costs.csv")
async def export_project_costs(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Cost lines with category subtotals and a grand total, as CSV."""
    rows = await reports.project_cost_rows(db, access.project)
    return csv_download(rows, _filename_prefix(access))


@router.get("/costs.xlsx")
async def export_project_workbook(
    access: Annotated[ProjectWithAccess, Depends(require_project_read)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Financial report workbook.

    Partners get the same sheets as the owner, with a notice on the summary.
    """
    data = await reports.load_project_report(db, access.project)
    content = report_excel.build_project_workbook(data, partner_view=not is_owner(access.grant))
    return xlsx_download(content, _filename_prefix(access))
