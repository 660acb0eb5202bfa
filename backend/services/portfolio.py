"""
Portfolio analytics across several projects.

The caller must hold read access to every requested project. Aggregation is
done in Python over the filtered cost rows so the same code runs on
PostgreSQL and SQLite.
"""

import datetime as dt
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional, Sequence

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from core.errors import ForbiddenError
from infrastructure.database.models import Cost, Project, User
from services.access_control import (
    list_accessible_project_ids,
    verify_multiple_projects_access,
)

logger = logging.getLogger(__name__)

TOP_CATEGORY_LIMIT = 8
TOP_VENDOR_LIMIT = 20


@dataclass
class PortfolioFilters:
    project_ids: Sequence[str]
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    statuses: Sequence[str] = field(default_factory=list)


async def list_portfolio_projects(db: AsyncSession, user: User) -> list[Project]:
    """Live projects the caller can select for a portfolio view."""
    project_ids = await list_accessible_project_ids(db, user.id)
    if not project_ids:
        return []
    result = await db.execute(
        select(Project).where(Project.id.in_(project_ids)).order_by(Project.name)
    )
    return list(result.scalars().unique().all())


async def load_portfolio_projects(
    db: AsyncSession,
    user: User,
    filters: PortfolioFilters,
    request: Optional[Request] = None,
) -> list[Project]:
    """Verify every requested project and apply the status filter.

    Raises:
        ForbiddenError: when any requested project is not accessible.
    """
    requested = list(dict.fromkeys(filters.project_ids))
    accessible = await verify_multiple_projects_access(db, user, requested, request=request)
    if len(accessible) != len(requested):
        logger.info(
            "Portfolio request denied for user %s: %d of %d projects accessible",
            user.id,
            len(accessible),
            len(requested),
            extra={"user_id": user.id},
        )
        raise ForbiddenError("You do not have access to one or more selected projects")

    projects = [item.project for item in accessible]
    if filters.statuses:
        projects = [p for p in projects if p.status in filters.statuses]
    return projects


async def _load_costs(
    db: AsyncSession, project_ids: list[str], filters: PortfolioFilters
) -> list[Cost]:
    conditions = [Cost.project_id.in_(project_ids), Cost.deleted_at.is_(None)]
    if filters.start_date is not None:
        conditions.append(Cost.date >= filters.start_date)
    if filters.end_date is not None:
        conditions.append(Cost.date <= filters.end_date)
    result = await db.execute(select(Cost).where(and_(*conditions)).order_by(Cost.date))
    return list(result.scalars().unique().all())


def _empty_summary() -> dict:
    return {
        "total_value": 0,
        "cost_count": 0,
        "project_count": 0,
        "avg_per_project": 0,
    }


def _duration_days(project: Project) -> Optional[int]:
    if project.start_date is None or project.end_date is None:
        return None
    return (project.end_date - project.start_date).days


async def build_portfolio_analytics(
    db: AsyncSession,
    user: User,
    filters: PortfolioFilters,
    request: Optional[Request] = None,
) -> dict:
    """Aggregate cost data for the selected projects."""
    projects = await load_portfolio_projects(db, user, filters, request)
    if not projects:
        return {
            "summary": _empty_summary(),
            "projects": [],
            "category_spend": [],
            "category_spend_by_project": [],
            "cost_trends": [],
            "top_vendors": [],
            "durations": [],
        }

    by_id = {p.id: p for p in projects}
    costs = await _load_costs(db, list(by_id), filters)

    project_totals: dict[str, int] = defaultdict(int)
    project_counts: dict[str, int] = defaultdict(int)
    category_totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    project_category: dict[tuple[str, str], int] = defaultdict(int)
    monthly: dict[tuple[str, str], list[int]] = defaultdict(lambda: [0, 0])
    vendors: dict[str, dict] = {}

    for cost in costs:
        project_totals[cost.project_id] += cost.amount
        project_counts[cost.project_id] += 1
        category_totals[cost.category][0] += cost.amount
        category_totals[cost.category][1] += 1
        project_category[(cost.project_id, cost.category)] += cost.amount
        bucket = monthly[(cost.date.strftime("%Y-%m"), cost.project_id)]
        bucket[0] += cost.amount
        bucket[1] += 1

        if cost.contact is not None:
            vendor = vendors.setdefault(
                cost.contact.id,
                {
                    "contact_id": cost.contact.id,
                    "name": cost.contact.display_name,
                    "company": cost.contact.company,
                    "total_spent": 0,
                    "transaction_count": 0,
                    "project_ids": set(),
                },
            )
            vendor["total_spent"] += cost.amount
            vendor["transaction_count"] += 1
            vendor["project_ids"].add(cost.project_id)

    total_value = sum(project_totals.values())

    project_rows = []
    for project in projects:
        spent = project_totals.get(project.id, 0)
        budget_variance = (
            project.total_budget - spent if project.total_budget is not None else None
        )
        cost_per_sqm = spent // project.size_sqm if project.size_sqm else None
        project_rows.append(
            {
                "project_id": project.id,
                "project_name": project.name,
                "status": project.status,
                "total_cost": spent,
                "cost_count": project_counts.get(project.id, 0),
                "budget": project.total_budget,
                "budget_variance": budget_variance,
                "size_sqm": project.size_sqm,
                "cost_per_sqm": cost_per_sqm,
            }
        )

    category_spend = [
        {
            "category": category,
            "total": total,
            "count": count,
            "percentage": round(total * 100 / total_value, 2) if total_value else 0.0,
        }
        for category, (total, count) in sorted(
            category_totals.items(), key=lambda item: item[1][0], reverse=True
        )
    ][:TOP_CATEGORY_LIMIT]

    category_by_project = [
        {
            "project_id": project_id,
            "project_name": by_id[project_id].name,
            "category": category,
            "total": total,
        }
        for (project_id, category), total in sorted(
            project_category.items(), key=lambda item: item[1], reverse=True
        )
    ]

    cost_trends = [
        {
            "month": month,
            "project_id": project_id,
            "project_name": by_id[project_id].name,
            "total": total,
            "count": count,
        }
        for (month, project_id), (total, count) in sorted(monthly.items())
    ]

    top_vendors = []
    for vendor in sorted(vendors.values(), key=lambda v: v["total_spent"], reverse=True)[
        :TOP_VENDOR_LIMIT
    ]:
        project_count = len(vendor.pop("project_ids"))
        vendor["project_count"] = project_count
        vendor["avg_per_project"] = vendor["total_spent"] // project_count
        top_vendors.append(vendor)

    durations = [
        {
            "project_id": project.id,
            "project_name": project.name,
            "status": project.status,
            "start_date": project.start_date,
            "end_date": project.end_date,
            "duration_days": _duration_days(project),
        }
        for project in projects
        if _duration_days(project) is not None
    ]
    durations.sort(key=lambda row: row["duration_days"], reverse=True)

    return {
        "summary": {
            "total_value": total_value,
            "cost_count": len(costs),
            "project_count": len(projects),
            "avg_per_project": round(total_value / len(projects)),
        },
        "projects": project_rows,
        "category_spend": category_spend,
        "category_spend_by_project": category_by_project,
        "cost_trends": cost_trends,
        "top_vendors": top_vendors,
        "durations": durations,
    }
