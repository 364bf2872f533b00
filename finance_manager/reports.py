"""PDF export for monthly and annual reports.

The PDF layer only lays out values that :mod:`aggregation` has already
computed.  Each selected month starts on a new page, and a new page is
started whenever the next block (a table row, a section heading, a receipt
image) would not fit above the bottom margin.  Core PDF fonts are
latin-1 only, so amounts use the "Rs." prefix and text is transliterated
with :func:`formatting.to_latin1`.
"""

from __future__ import annotations

import binascii
import io
import logging
from datetime import date
from typing import List, Optional, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

try:
    from .aggregation import AnnualMonthRow, MonthlyReport
    from .formatting import format_currency, to_latin1
    from .models import decode_receipt
except ImportError:  # pragma: no cover - fallback for direct execution
    from aggregation import AnnualMonthRow, MonthlyReport
    from formatting import format_currency, to_latin1
    from models import decode_receipt

logger = logging.getLogger(__name__)

LEFT = 14
CONTENT_WIDTH = 182
BOTTOM_MARGIN = 15
ROW_HEIGHT = 7
HEADER_FILL = (59, 130, 246)
CARD_FILL = (249, 250, 251)
RECEIPT_HEIGHT = 60

CATEGORY_COLUMNS = [("Category", 130, "L"), ("Amount", 52, "R")]
TRANSACTION_COLUMNS = [("Date", 32, "L"), ("Category", 45, "L"), ("Description", 70, "L"), ("Amount", 35, "R")]
ANNUAL_COLUMNS = [("Month", 50, "L"), ("Income", 44, "R"), ("Expenses", 44, "R"), ("Saved", 44, "R")]


def _money(amount: float) -> str:
    return format_currency(amount, symbol="Rs.")


def _ensure_space(pdf: FPDF, height: float) -> bool:
    """Start a new page if ``height`` does not fit; return True if it did."""
    if pdf.get_y() + height > pdf.h - BOTTOM_MARGIN:
        pdf.add_page()
        pdf.set_y(20)
        return True
    return False


def _new_document() -> FPDF:
    pdf = FPDF(orientation="P", unit="mm", format="A4")
    pdf.set_auto_page_break(auto=False)
    pdf.set_margins(LEFT, 15, LEFT)
    return pdf


def _header(pdf: FPDF, title: str, subtitle_lines: Sequence[str]) -> None:
    pdf.set_font("helvetica", "B", 22)
    pdf.set_text_color(33, 33, 33)
    pdf.set_xy(LEFT, 14)
    pdf.cell(0, 10, to_latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("helvetica", "", 10)
    pdf.set_text_color(100, 100, 100)
    for line in subtitle_lines:
        pdf.cell(0, 5, to_latin1(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(230, 230, 230)
    y = pdf.get_y() + 3
    pdf.line(LEFT, y, LEFT + CONTENT_WIDTH, y)
    pdf.set_y(y + 5)


def _summary_cards(pdf: FPDF, cards: Sequence[Tuple[str, str, Tuple[int, int, int]]]) -> None:
    width, height, gap = 58, 25, 4
    top = pdf.get_y()
    for index, (label, value, color) in enumerate(cards):
        x = LEFT + index * (width + gap)
        pdf.set_fill_color(*CARD_FILL)
        pdf.rect(x, top, width, height, style="F")
        pdf.set_xy(x + 5, top + 4)
        pdf.set_font("helvetica", "", 9)
        pdf.set_text_color(107, 114, 128)
        pdf.cell(width - 10, 5, label)
        pdf.set_xy(x + 5, top + 12)
        pdf.set_font("helvetica", "B", 12)
        pdf.set_text_color(*color)
        pdf.cell(width - 10, 8, to_latin1(value))
    pdf.set_xy(LEFT, top + height + 10)


def _section_title(pdf: FPDF, title: str) -> None:
    _ensure_space(pdf, 10 + 2 * ROW_HEIGHT)
    pdf.set_font("helvetica", "B", 11)
    pdf.set_text_color(33, 33, 33)
    pdf.cell(0, 8, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def _table_header(pdf: FPDF, columns) -> None:
    pdf.set_font("helvetica", "B", 10)
    pdf.set_fill_color(*HEADER_FILL)
    pdf.set_text_color(255, 255, 255)
    for name, width, _ in columns:
        pdf.cell(width, ROW_HEIGHT, name, border=1, fill=True)
    pdf.ln(ROW_HEIGHT)


def _table(pdf: FPDF, columns, rows: Sequence[Sequence[str]]) -> None:
    """Draw a table, repeating the header row on every new page."""
    _table_header(pdf, columns)
    pdf.set_font("helvetica", "", 9)
    pdf.set_text_color(33, 33, 33)
    for row in rows:
        if _ensure_space(pdf, ROW_HEIGHT):
            _table_header(pdf, columns)
            pdf.set_font("helvetica", "", 9)
            pdf.set_text_color(33, 33, 33)
        for (_, width, align), value in zip(columns, row):
            text = to_latin1(value)
            while text and pdf.get_string_width(text) > width - 2:
                text = text[:-1]
            pdf.cell(width, ROW_HEIGHT, text, border=1, align=align)
        pdf.ln(ROW_HEIGHT)


def _decode_receipt(receipt: str) -> Optional[bytes]:
    """Return image bytes for a receipt, or None for non-images."""
    mime, data = decode_receipt(receipt)
    if mime and not mime.startswith("image/"):
        return None
    return data


def _receipts(pdf: FPDF, report: MonthlyReport) -> None:
    with_receipts = [e for e in report.expenses if e.receipt]
    if not with_receipts:
        return
    _section_title(pdf, "Receipts")
    for expense in with_receipts:
        try:
            data = _decode_receipt(expense.receipt)
        except (binascii.Error, ValueError):
            logger.warning("Skipping undecodable receipt for expense %s", expense.id)
            continue
        if data is None:
            continue
        _ensure_space(pdf, RECEIPT_HEIGHT + 12)
        pdf.set_font("helvetica", "", 9)
        pdf.set_text_color(80, 80, 80)
        caption = f"{expense.date:%b %d, %Y} - {expense.description or expense.receipt_name or expense.category}"
        pdf.cell(0, 6, to_latin1(caption), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        try:
            pdf.image(io.BytesIO(data), x=LEFT, y=pdf.get_y(), h=RECEIPT_HEIGHT)
        except (OSError, ValueError, RuntimeError) as exc:
            logger.warning("Skipping unreadable receipt image for expense %s: %s", expense.id, exc)
            continue
        pdf.set_y(pdf.get_y() + RECEIPT_HEIGHT + 6)


def render_monthly_reports(
    reports: Sequence[MonthlyReport],
    salary: float,
    generated_on: Optional[date] = None,
    include_receipts: bool = False,
) -> FPDF:
    """Lay out one or more monthly reports, one month per page (at least)."""
    if not reports:
        raise ValueError("Select at least one month to export")
    generated_on = generated_on or date.today()
    pdf = _new_document()
    for report in reports:
        pdf.add_page()
        _header(
            pdf,
            "Expense Report",
            [f"Generated on: {generated_on:%B %d, %Y}", f"Monthly Salary: {_money(salary)}"],
        )
        pdf.set_font("helvetica", "B", 16)
        pdf.set_text_color(33, 33, 33)
        pdf.cell(0, 10, report.month_display, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(3)

        balance_color = (22, 163, 74) if report.balance >= 0 else (220, 38, 38)
        _summary_cards(
            pdf,
            [
                ("Total Expenses", _money(report.total_expenses), (220, 38, 38)),
                ("Balance", _money(report.balance), balance_color),
                ("Savings Rate", f"{report.savings_rate:.1f}%", (37, 99, 235)),
            ],
        )

        _section_title(pdf, "Category Breakdown")
        _table(pdf, CATEGORY_COLUMNS, [(cat, _money(amt)) for cat, amt in report.sorted_breakdown()])
        pdf.ln(8)

        _section_title(pdf, "Transaction Details")
        _table(
            pdf,
            TRANSACTION_COLUMNS,
            [
                (f"{e.date:%b %d, %Y}", e.category, e.description or "-", _money(e.amount))
                for e in report.expenses
            ],
        )
        if include_receipts:
            pdf.ln(8)
            _receipts(pdf, report)
    return pdf


def build_monthly_report_pdf(
    reports: Sequence[MonthlyReport],
    salary: float,
    generated_on: Optional[date] = None,
    include_receipts: bool = False,
) -> bytes:
    return bytes(render_monthly_reports(reports, salary, generated_on, include_receipts).output())


def render_annual_report(rows: Sequence[AnnualMonthRow], year: int, generated_on: Optional[date] = None) -> FPDF:
    if not rows:
        raise ValueError(f"No data found for {year}")
    generated_on = generated_on or date.today()
    pdf = _new_document()
    pdf.add_page()
    _header(pdf, f"Financial Report: {year}", [f"Generated on: {generated_on:%B %d, %Y}", "Annual Summary"])

    total_income = sum(r.income for r in rows)
    total_expenses = sum(r.expenses for r in rows)
    total_saved = sum(r.saved for r in rows)
    _summary_cards(
        pdf,
        [
            ("Total Income", _money(total_income), (22, 163, 74)),
            ("Total Expenses", _money(total_expenses), (220, 38, 38)),
            ("Total Saved", _money(total_saved), (37, 99, 235)),
        ],
    )
    _section_title(pdf, "Monthly Breakdown")
    _table(
        pdf,
        ANNUAL_COLUMNS,
        [(r.month, _money(r.income), _money(r.expenses), _money(r.saved)) for r in rows],
    )
    return pdf


def build_annual_report_pdf(rows: Sequence[AnnualMonthRow], year: int, generated_on: Optional[date] = None) -> bytes:
    return bytes(render_annual_report(rows, year, generated_on).output())


def report_filename(reports: Sequence[MonthlyReport]) -> str:
    if len(reports) == 1:
        return f"expense-report-{reports[0].month_display}.pdf"
    return "expense-report-multiple-months.pdf"


def selected_reports(reports: Sequence[MonthlyReport], months: Sequence[str]) -> List[MonthlyReport]:
    """Reports for the selected month keys, keeping the reports' order."""
    wanted = set(months)
    return [r for r in reports if r.month in wanted]
