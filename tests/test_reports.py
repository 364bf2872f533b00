import base64
from datetime import date

import pytest

from finance_manager import aggregation as agg
from finance_manager import reports
from finance_manager.models import Expense

GENERATED_ON = date(2024, 4, 1)


def _expenses(count, year=2024, month=3):
    return [
        Expense(
            id=f"{year}-{month}-{i}",
            amount=100 + i,
            category="Shopping" if i % 2 else "Food & Dining",
            description=f"Item {i} ₹ special",
            date=date(year, month, 1 + i % 28),
        )
        for i in range(count)
    ]


def test_single_month_pdf():
    month_reports = agg.monthly_reports(_expenses(5), salary=50000, recurring_total=0)
    data = reports.build_monthly_report_pdf(month_reports, 50000, GENERATED_ON)
    assert data.startswith(b"%PDF")


def test_each_month_starts_a_new_page():
    expenses = _expenses(3, month=1) + _expenses(3, month=2) + _expenses(3, month=3)
    month_reports = agg.monthly_reports(expenses, salary=1000, recurring_total=0)
    pdf = reports.render_monthly_reports(month_reports, 1000, GENERATED_ON)
    assert pdf.pages_count >= len(month_reports) == 3


def test_long_transaction_list_paginates():
    short = reports.render_monthly_reports(agg.monthly_reports(_expenses(5), 1000, 0), 1000, GENERATED_ON)
    long = reports.render_monthly_reports(agg.monthly_reports(_expenses(120), 1000, 0), 1000, GENERATED_ON)
    assert short.pages_count == 1
    assert long.pages_count > 2


def test_empty_selection_is_rejected():
    with pytest.raises(ValueError):
        reports.build_monthly_report_pdf([], 1000)


def test_undecodable_receipts_are_skipped():
    expense = _expenses(1)[0]
    expense.receipt = "data:image/png;base64,@@@@"
    other = _expenses(2)[1]
    other.receipt = "data:application/pdf;base64," + base64.b64encode(b"%PDF-1.4").decode()
    month_reports = agg.monthly_reports([expense, other], 1000, 0)
    data = reports.build_monthly_report_pdf(month_reports, 1000, GENERATED_ON, include_receipts=True)
    assert data.startswith(b"%PDF")


def test_annual_report_pdf():
    rows = agg.annual_report(_expenses(10, year=2023), 50000, 2023)
    assert reports.build_annual_report_pdf(rows, 2023, GENERATED_ON).startswith(b"%PDF")
    with pytest.raises(ValueError):
        reports.build_annual_report_pdf([], 2023)


def test_report_filename_and_selection():
    expenses = _expenses(1, month=1) + _expenses(1, month=2)
    month_reports = agg.monthly_reports(expenses, 1000, 0)
    assert reports.report_filename(month_reports[:1]) == "expense-report-February 2024.pdf"
    assert reports.report_filename(month_reports) == "expense-report-multiple-months.pdf"
    assert [r.month for r in reports.selected_reports(month_reports, ["2024-01"])] == ["2024-01"]
