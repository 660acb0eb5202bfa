"""Unit tests for CSV report helpers and notification formatting."""

import csv
import io

import pytest

from infrastructure.database.models import NotificationType
from services.notifications import format_cents, render_message
from services.reports import iter_csv, money_cell, portfolio_rows, report_filename, safe_cell


class TestSafeCell:
    """Formula injection is neutralised for spreadsheet consumers."""

    @pytest.mark.parametrize(
        "value", ["=SUM(A1:A2)", "+1", "-1+2", "@cmd", "\tcmd", "\r=1+1"]
    )
    def test_formula_prefixes_escaped(self, value):
        assert safe_cell(value) == "'" + value

    def test_plain_text_unchanged(self):
        assert safe_cell("Timber framing") == "Timber framing"

    def test_none_is_empty(self):
        assert safe_cell(None) == ""

    def test_money_cell_escapes_negative_amounts(self):
        assert money_cell(-2_500) == "'-$25.00"
        assert money_cell(2_500) == "$25.00"
        assert money_cell(None) == "N/A"


class TestIterCsv:
    def test_yields_one_chunk_per_row(self):
        chunks = list(iter_csv([["a", "b"], ["1, 2", 'say "hi"']]))

        assert len(chunks) == 2
        parsed = list(csv.reader(io.StringIO("".join(chunks))))
        assert parsed == [["a", "b"], ["1, 2", 'say "hi"']]

    def test_report_filename(self):
        name = report_filename("project-costs")
        assert name.startswith("project-costs-")
        assert name.endswith(".csv")

    def test_report_filename_extension(self):
        assert report_filename("portfolio-analytics", extension="xlsx").endswith(".xlsx")


class TestFormatCents:
    @pytest.mark.parametrize(
        "amount,expected",
        [(0, "$0.00"), (1050, "$10.50"), (123456789, "$1,234,567.89"), (-500, "-$5.00")],
    )
    def test_format(self, amount, expected):
        assert format_cents(amount) == expected


class TestRenderMessage:
    def test_large_expense_message(self):
        message = render_message(
            NotificationType.LARGE_EXPENSE,
            description="Roof",
            amount="$12,000.00",
            project_name="Harbour St",
        )
        assert message == "Large expense alert: Roof ($12,000.00) in Harbour St"

    def test_partner_invited_message(self):
        message = render_message(
            NotificationType.PARTNER_INVITED, inviter_name="Olivia", project_name="Harbour St"
        )
        assert message == "Olivia invited you to collaborate on Harbour St"


class TestPortfolioRows:
    def test_one_row_per_project_category(self):
        analytics = {
            "projects": [
                {
                    "project_id": "p1",
                    "project_name": "=Evil",
                    "status": "active",
                    "total_cost": 3000,
                    "budget_variance": None,
                    "cost_per_sqm": 30,
                },
                {
                    "project_id": "p2",
                    "project_name": "Empty",
                    "status": "planning",
                    "total_cost": 0,
                    "budget_variance": 1000,
                    "cost_per_sqm": None,
                },
            ],
            "category_spend_by_project": [
                {"project_id": "p1", "category": "labor", "total": 2000},
                {"project_id": "p1", "category": "materials", "total": 1000},
            ],
            "durations": [{"project_id": "p1", "duration_days": 90}],
        }

        rows = portfolio_rows(analytics)

        assert rows[0][0] == "Project Name"
        assert len(rows) == 4
        assert rows[1] == ["'=Evil", "active", "$30.00", "N/A", "90", "$0.30", "labor", "$20.00"]
        assert rows[2][6:] == ["materials", "$10.00"]
        assert rows[3] == ["Empty", "planning", "$0.00", "$10.00", "N/A", "N/A", "", "$0.00"]

    def test_negative_variance_escaped(self):
        analytics = {
            "projects": [
                {
                    "project_id": "p1",
                    "project_name": "Over Budget",
                    "status": "active",
                    "total_cost": 15_000,
                    "budget_variance": -5_000,
                    "cost_per_sqm": None,
                }
            ],
            "category_spend_by_project": [
                {"project_id": "p1", "category": "labor", "total": 15_000},
            ],
            "durations": [],
        }

        rows = portfolio_rows(analytics)

        assert rows[1][3] == "'-$50.00"
        assert rows[1][2] == "$150.00"
