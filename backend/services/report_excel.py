"""
Excel workbooks for project cost reports and portfolio analytics.

Text cells go through ``safe_cell`` so openpyxl never stores user input as a
formula. Amounts are written as numbers in dollars with a currency format.
"""

import io
from datetime import datetime, timezone
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from services.reports import ProjectReportData, safe_cell

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CURRENCY_FORMAT = "$#,##0.00"
PERCENT_FORMAT = "0.0%"

_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="3B82F6", end_color="3B82F6", fill_type="solid")
_TITLE_FONT = Font(bold=True, size=16)
_SECTION_FONT = Font(bold=True, size=12)
_NOTICE_FONT = Font(bold=True, color="B45309")


def _dollars(cents: int) -> float:
    return cents / 100


def _header(sheet: Worksheet, labels: Iterable[str]) -> None:
    sheet.append(list(labels))
    for cell in sheet[sheet.max_row]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL


def _size_columns(sheet: Worksheet, widths: Iterable[int]) -> None:
    for index, width in enumerate(widths, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width


def _format_column(sheet: Worksheet, column: int, number_format: str, first_row: int) -> None:
    for row in sheet.iter_rows(min_row=first_row, min_col=column, max_col=column):
        for cell in row:
            if isinstance(cell.value, (int, float)):
                cell.number_format = number_format


def _to_bytes(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _file_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def _summary_sheet(sheet: Worksheet, data: ProjectReportData, partner_view: bool) -> None:
    sheet.title = "Summary"
    if partner_view:
        sheet.append(["PARTNER VIEW: shared read access to this project's financial data"])
        sheet[sheet.max_row][0].font = _NOTICE_FONT
        sheet.append([])

    sheet.append([safe_cell(data.project.name)])
    sheet[sheet.max_row][0].font = _TITLE_FONT
    sheet.append(["Financial Report Summary"])
    sheet.append(["Generated", datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")])
    sheet.append([])

    sheet.append(["KEY METRICS"])
    sheet[sheet.max_row][0].font = _SECTION_FONT
    sheet.append(["Total Project Cost", _dollars(data.total)])
    sheet[sheet.max_row][1].number_format = CURRENCY_FORMAT
    sheet.append(["Total Cost Entries", len(data.costs)])
    sheet.append(["Project Status", data.project.status])
    sheet.append(["Project Type", data.project.project_type])
    sheet.append([])

    sheet.append(["COST BREAKDOWN BY CATEGORY"])
    sheet[sheet.max_row][0].font = _SECTION_FONT
    _header(sheet, ["Category", "Total Amount", "Cost Count", "% of Total"])
    for category, total, count in data.category_totals():
        share = total / data.total if data.total else 0
        sheet.append([category, _dollars(total), count, share])
        row = sheet[sheet.max_row]
        row[1].number_format = CURRENCY_FORMAT
        row[3].number_format = PERCENT_FORMAT
    _size_columns(sheet, [30, 18, 12, 12])


def _costs_sheet(sheet: Worksheet, data: ProjectReportData) -> None:
    _header(sheet, ["Date", "Description", "Category", "Vendor", "Amount", "Notes"])
    for cost in data.costs:
        sheet.append(
            [
                cost.date,
                safe_cell(cost.description),
                cost.category,
                safe_cell(cost.contact_name),
                _dollars(cost.amount),
                safe_cell(cost.notes),
            ]
        )
    sheet.append([None, None, None, "TOTAL", _dollars(data.total), None])
    sheet[sheet.max_row][3].font = Font(bold=True)
    sheet[sheet.max_row][4].font = Font(bold=True)
    _format_column(sheet, 5, CURRENCY_FORMAT, first_row=2)
    sheet.freeze_panes = "A2"
    sheet.auto_filter.ref = f"A1:F{max(len(data.costs) + 1, 1)}"
    _size_columns(sheet, [12, 40, 16, 28, 14, 40])


def _vendors_sheet(sheet: Worksheet, data: ProjectReportData) -> None:
    _header(sheet, ["Vendor Name", "Company", "Email", "Phone", "Total Spent", "Cost Count"])
    for vendor in data.vendor_totals():
        contact = vendor["contact"]
        name = " ".join(p for p in (contact.first_name, contact.last_name) if p)
        sheet.append(
            [
                safe_cell(name),
                safe_cell(contact.company),
                safe_cell(contact.email),
                safe_cell(contact.phone),
                _dollars(vendor["total_spent"]),
                vendor["cost_count"],
            ]
        )
    _format_column(sheet, 5, CURRENCY_FORMAT, first_row=2)
    _size_columns(sheet, [28, 28, 30, 16, 14, 12])


def _timeline_sheet(sheet: Worksheet, data: ProjectReportData) -> None:
    _header(sheet, ["Date", "Title", "Category", "Description"])
    for event in data.events:
        sheet.append(
            [event.date, safe_cell(event.title), event.category, safe_cell(event.description)]
        )
    _size_columns(sheet, [12, 36, 16, 50])


def _documents_sheet(sheet: Worksheet, data: ProjectReportData) -> None:
    _header(sheet, ["Upload Date", "File Name", "Category", "File Size", "Uploaded By"])
    for document in data.documents:
        sheet.append(
            [
                document.created_at.date() if document.created_at else None,
                safe_cell(document.file_name),
                document.category,
                _file_size(document.size_bytes),
                safe_cell(data.uploaders.get(document.uploaded_by, "")),
            ]
        )
    _size_columns(sheet, [12, 40, 16, 12, 24])


def build_project_workbook(data: ProjectReportData, partner_view: bool = False) -> bytes:
    """Summary, Detailed Costs, Vendors, Timeline and Documents sheets."""
    workbook = Workbook()
    _summary_sheet(workbook.active, data, partner_view)
    _costs_sheet(workbook.create_sheet("Detailed Costs"), data)
    _vendors_sheet(workbook.create_sheet("Vendors"), data)
    _timeline_sheet(workbook.create_sheet("Timeline"), data)
    _documents_sheet(workbook.create_sheet("Documents"), data)
    return _to_bytes(workbook)


def build_portfolio_workbook(analytics: dict) -> bytes:
    """Summary, Projects and Categories sheets for portfolio analytics."""
    workbook = Workbook()

    summary = workbook.active
    summary.title = "Summary"
    summary.append(["Portfolio Analytics"])
    summary[1][0].font = _TITLE_FONT
    summary.append(["Generated", datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")])
    summary.append([])
    totals = analytics["summary"]
    summary.append(["Total Value", _dollars(totals["total_value"])])
    summary.append(["Cost Entries", totals["cost_count"]])
    summary.append(["Projects", totals["project_count"]])
    summary.append(["Average per Project", _dollars(totals["avg_per_project"])])
    _format_column(summary, 2, CURRENCY_FORMAT, first_row=4)
    summary["B5"].number_format = "0"
    summary["B6"].number_format = "0"
    _size_columns(summary, [24, 18])

    durations = {row["project_id"]: row["duration_days"] for row in analytics["durations"]}
    projects = workbook.create_sheet("Projects")
    _header(
        projects,
        ["Project Name", "Status", "Total Cost", "Budget Variance", "Duration (Days)", "Cost/m²"],
    )
    for project in analytics["projects"]:
        variance = project["budget_variance"]
        per_sqm = project["cost_per_sqm"]
        projects.append(
            [
                safe_cell(project["project_name"]),
                project["status"],
                _dollars(project["total_cost"]),
                _dollars(variance) if variance is not None else "N/A",
                durations.get(project["project_id"], "N/A"),
                _dollars(per_sqm) if per_sqm is not None else "N/A",
            ]
        )
    for column in (3, 4, 6):
        _format_column(projects, column, CURRENCY_FORMAT, first_row=2)
    projects.freeze_panes = "A2"
    _size_columns(projects, [32, 14, 16, 16, 16, 14])

    categories = workbook.create_sheet("Categories")
    _header(categories, ["Project Name", "Category", "Amount"])
    for row in analytics["category_spend_by_project"]:
        categories.append(
            [safe_cell(row["project_name"]), row["category"], _dollars(row["total"])]
        )
    _format_column(categories, 3, CURRENCY_FORMAT, first_row=2)
    _size_columns(categories, [32, 16, 16])

    return _to_bytes(workbook)
