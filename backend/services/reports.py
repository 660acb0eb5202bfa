"""
Report data and CSV generation for project costs and portfolio analytics.
"""

import csv
import io
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Cost, Document, Project, ProjectEvent, User
from services.notifications import format_cents

# Leading characters a spreadsheet would evaluate as a formula
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def safe_cell(value) -> str:
    """Render a cell, neutralising spreadsheet formula injection."""
    if value is None:
        return ""
    text = str(value)
    if text.startswith(_FORMULA_PREFIXES):
        return "'" + text
    return text


def money_cell(cents: Optional[int], missing: str = "N/A") -> str:
    """Formatted amount; negative values start with "-" and are escaped too."""
    if cents is None:
        return missing
    return safe_cell(format_cents(cents))


def iter_csv(rows: Iterable[Iterable]) -> Iterator[str]:
    """Yield CSV text one row at a time."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    for row in rows:
        writer.writerow(row)
        yield buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)


def report_filename(prefix: str, extension: str = "csv") -> str:
    return f"{prefix}-{datetime.now(timezone.utc).date().isoformat()}.{extension}"


@dataclass
class ProjectReportData:
    """Everything a project report renders, loaded once."""

    project: Project
    costs: list[Cost]
    events: list[ProjectEvent] = field(default_factory=list)
    documents: list[Document] = field(default_factory=list)
    uploaders: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(cost.amount for cost in self.costs)

    def category_totals(self) -> list[tuple[str, int, int]]:
        """(category, total, count) sorted by category name."""
        totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        for cost in self.costs:
            totals[cost.category][0] += cost.amount
            totals[cost.category][1] += 1
        return [(category, t, c) for category, (t, c) in sorted(totals.items())]

    def vendor_totals(self) -> list[dict]:
        """Spend per linked contact, largest first."""
        vendors: dict[str, dict] = {}
        for cost in self.costs:
            if cost.contact is None:
                continue
            vendor = vendors.setdefault(
                cost.contact.id,
                {"contact": cost.contact, "total_spent": 0, "cost_count": 0},
            )
            vendor["total_spent"] += cost.amount
            vendor["cost_count"] += 1
        return sorted(vendors.values(), key=lambda v: v["total_spent"], reverse=True)


async def _load_costs(db: AsyncSession, project: Project) -> list[Cost]:
    result = await db.execute(
        select(Cost)
        .where(and_(Cost.project_id == project.id, Cost.deleted_at.is_(None)))
        .order_by(Cost.date, Cost.created_at)
    )
    return list(result.scalars().unique().all())


async def load_project_report(db: AsyncSession, project: Project) -> ProjectReportData:
    """Costs, timeline events and documents of one project."""
    events = await db.execute(
        select(ProjectEvent)
        .where(and_(ProjectEvent.project_id == project.id, ProjectEvent.deleted_at.is_(None)))
        .order_by(ProjectEvent.date, ProjectEvent.created_at)
    )
    documents = await db.execute(
        select(Document)
        .where(and_(Document.project_id == project.id, Document.deleted_at.is_(None)))
        .order_by(Document.created_at)
    )
    data = ProjectReportData(
        project=project,
        costs=await _load_costs(db, project),
        events=list(events.scalars().all()),
        documents=list(documents.scalars().all()),
    )

    uploader_ids = {d.uploaded_by for d in data.documents if d.uploaded_by}
    if uploader_ids:
        users = await db.execute(select(User).where(User.id.in_(uploader_ids)))
        data.uploaders = {user.id: user.name for user in users.scalars().all()}
    return data


async def project_cost_rows(db: AsyncSession, project: Project) -> list[list[str]]:
    """Cost lines for one project, followed by category subtotals and a grand total."""
    costs = await _load_costs(db, project)

    rows = [["Date", "Description", "Category", "Vendor", "Amount", "Notes"]]
    subtotals: dict[str, int] = defaultdict(int)
    for cost in costs:
        subtotals[cost.category] += cost.amount
        rows.append(
            [
                cost.date.isoformat(),
                safe_cell(cost.description),
                cost.category,
                safe_cell(cost.contact_name),
                money_cell(cost.amount),
                safe_cell(cost.notes),
            ]
        )

    rows.append([])
    rows.append(["Category", "Subtotal"])
    for category, subtotal in sorted(subtotals.items()):
        rows.append([category, money_cell(subtotal)])
    rows.append(["Total", money_cell(sum(subtotals.values()))])
    return rows


def portfolio_rows(analytics: dict) -> list[list[str]]:
    """Flatten portfolio analytics into one row per project category."""
    durations = {row["project_id"]: row["duration_days"] for row in analytics["durations"]}
    categories: dict[str, list[tuple[str, int]]] = defaultdict(list)
    for row in analytics["category_spend_by_project"]:
        categories[row["project_id"]].append((row["category"], row["total"]))

    rows = [
        [
            "Project Name",
            "Status",
            "Total Cost",
            "Budget Variance",
            "Duration (Days)",
            "Cost/m²",
            "Category",
            "Amount",
        ]
    ]
    for project in analytics["projects"]:
        duration: Optional[int] = durations.get(project["project_id"])
        prefix = [
            safe_cell(project["project_name"]),
            project["status"],
            money_cell(project["total_cost"]),
            money_cell(project["budget_variance"]),
            str(duration) if duration is not None else "N/A",
            money_cell(project["cost_per_sqm"]),
        ]
        project_categories = categories.get(project["project_id"])
        if not project_categories:
            rows.append(prefix + ["", money_cell(0)])
            continue
        for category, total in project_categories:
            rows.append(prefix + [category, money_cell(total)])
    return rows
