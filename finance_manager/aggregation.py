"""Aggregations over expense and income records.

These are pure functions: given the same records and the same "now" they
return the same result and never touch the store.  Records are loaded into
a pandas DataFrame so grouping and range filtering read the same way as the
rest of the analytics code; results come back as plain Python values for
the UI and the PDF layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

try:
    from .cycle import CycleWindow, DateLike, cycle_window, month_bounds, month_key, month_label, parse_month_key
    from .models import ALL_CATEGORIES, Expense, Income, MonthlySaving, RecurringExpense
except ImportError:  # pragma: no cover - fallback for direct execution
    from cycle import CycleWindow, DateLike, cycle_window, month_bounds, month_key, month_label, parse_month_key
    from models import ALL_CATEGORIES, Expense, Income, MonthlySaving, RecurringExpense

FRAME_COLUMNS = ["id", "date", "amount", "category", "description"]


def expenses_frame(records: Iterable[Expense | Income]) -> pd.DataFrame:
    """Build a DataFrame with one row per record and a datetime ``date``."""
    rows = [
        {
            "id": record.id,
            "date": record.date,
            "amount": float(record.amount),
            "category": getattr(record, "category", None),
            "description": record.description,
        }
        for record in records
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0)
    return df


def _timestamp(value: DateLike) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts


def _in_range(df: pd.DataFrame, start: DateLike, end: DateLike) -> pd.Series:
    return (df["date"] >= _timestamp(start)) & (df["date"] <= _timestamp(end))


def total_for_range(records: Sequence[Expense | Income], start: DateLike, end: DateLike) -> float:
    """Sum of amounts dated within ``[start, end]`` inclusive."""
    df = expenses_frame(records)
    if df.empty:
        return 0.0
    return float(df.loc[_in_range(df, start, end), "amount"].sum())


def filter_range(records: Sequence[Expense | Income], start: DateLike, end: DateLike) -> list:
    """Records dated within ``[start, end]`` inclusive, input order kept."""
    lower, upper = _timestamp(start), _timestamp(end)
    return [r for r in records if lower <= pd.Timestamp(r.date) <= upper]


def category_breakdown(expenses: Sequence[Expense]) -> Dict[str, float]:
    """Total spent per category.  Categories with no expenses are omitted."""
    df = expenses_frame(expenses)
    if df.empty:
        return {}
    totals = df.groupby("category", sort=False)["amount"].sum()
    return {str(category): float(total) for category, total in totals.items()}


def group_by_calendar_month(expenses: Sequence[Expense]) -> Dict[str, List[Expense]]:
    """Group expenses by the ``YYYY-MM`` of their date (not creation time)."""
    grouped: Dict[str, List[Expense]] = {}
    for expense in expenses:
        grouped.setdefault(month_key(expense.date), []).append(expense)
    return grouped


def monthly_trend(
    expenses: Sequence[Expense],
    month_count: int = 6,
    now: Optional[DateLike] = None,
) -> List[Tuple[str, float]]:
    """Spending per month for the ``month_count`` months ending with now.

    Months with no expenses are reported as zero; output is chronological.
    """
    if month_count < 1:
        raise ValueError("month_count must be at least 1")
    now = now or datetime.now()
    periods = pd.period_range(end=pd.Period(year=now.year, month=now.month, freq="M"), periods=month_count, freq="M")

    df = expenses_frame(expenses).dropna(subset=["date"])
    if df.empty:
        totals = pd.Series(0.0, index=periods)
    else:
        totals = df.groupby(df["date"].dt.to_period("M"))["amount"].sum()
        totals = totals.reindex(periods, fill_value=0.0)
    return [(period.strftime("%b %Y"), round(float(total), 2)) for period, total in totals.items()]


def expenses_in_month(expenses: Sequence[Expense], key: str) -> List[Expense]:
    """Expenses for one ``YYYY-MM`` month, or all of them for ``"all"``."""
    if key == ALL_CATEGORIES:
        return list(expenses)
    start, end = month_bounds(*parse_month_key(key))
    return filter_range(expenses, start, end)


def available_months(expenses: Sequence[Expense]) -> List[str]:
    """Distinct expense months, newest first."""
    return sorted({month_key(e.date) for e in expenses}, reverse=True)


# ---------------------------------------------------------------------------
# Dashboard and report aggregates
# ---------------------------------------------------------------------------


@dataclass
class CycleSummary:
    window: CycleWindow
    cycle_expenses: List[Expense]
    cycle_incomes: List[Income]
    recurring_total: float
    expenses_total: float
    extra_income: float
    salary: float
    all_time_expenses: float

    @property
    def total_income(self) -> float:
        return self.salary + self.extra_income

    @property
    def remaining(self) -> float:
        return self.total_income - self.expenses_total

    @property
    def savings_rate(self) -> float:
        """Share of this cycle's income left over, in percent."""
        if self.total_income <= 0:
            return 0.0
        return self.remaining / self.total_income * 100


def cycle_summary(
    expenses: Sequence[Expense],
    incomes: Sequence[Income],
    recurring: Sequence[RecurringExpense],
    salary: float,
    renewal_day: int,
    today: Optional[DateLike] = None,
) -> CycleSummary:
    """Totals for the budget cycle containing ``today``.

    Recurring charges have no per-occurrence date, so their full amount is
    added to every cycle.
    """
    window = cycle_window(today or datetime.now(), renewal_day or 1)
    cycle_expenses = filter_range(expenses, window.start, window.end)
    cycle_incomes = filter_range(incomes, window.start, window.end)
    recurring_total = float(sum(r.amount for r in recurring))
    return CycleSummary(
        window=window,
        cycle_expenses=cycle_expenses,
        cycle_incomes=cycle_incomes,
        recurring_total=recurring_total,
        expenses_total=total_for_range(cycle_expenses, window.start, window.end) + recurring_total,
        extra_income=total_for_range(cycle_incomes, window.start, window.end),
        salary=float(salary),
        all_time_expenses=float(sum(e.amount for e in expenses)),
    )


@dataclass
class MonthlyReport:
    month: str
    month_display: str
    expenses: List[Expense]
    total_expenses: float
    balance: float
    salary: float
    category_breakdown: Dict[str, float] = field(default_factory=dict)

    @property
    def transaction_count(self) -> int:
        return len(self.expenses)

    @property
    def savings_rate(self) -> float:
        if self.salary <= 0:
            return 0.0
        return self.balance / self.salary * 100

    def sorted_breakdown(self) -> List[Tuple[str, float]]:
        return sorted(self.category_breakdown.items(), key=lambda item: item[1], reverse=True)


def monthly_reports(
    expenses: Sequence[Expense],
    salary: float,
    recurring_total: float = 0.0,
) -> List[MonthlyReport]:
    """One report per calendar month that has expenses, newest first."""
    reports = []
    for key, month_expenses in group_by_calendar_month(expenses).items():
        year, month = parse_month_key(key)
        total = float(sum(e.amount for e in month_expenses)) + recurring_total
        reports.append(
            MonthlyReport(
                month=key,
                month_display=month_label(year, month),
                expenses=month_expenses,
                total_expenses=total,
                balance=float(salary) - total,
                salary=float(salary),
                category_breakdown=category_breakdown(month_expenses),
            )
        )
    return sorted(reports, key=lambda report: report.month, reverse=True)


@dataclass
class AnnualMonthRow:
    month: str
    income: float
    expenses: float
    saved: float


def annual_report(expenses: Sequence[Expense], salary: float, year: int) -> Optional[List[AnnualMonthRow]]:
    """Month-by-month income/expense/saved rows for ``year``.

    Returns ``None`` when no expense falls in that year.
    """
    year_expenses = filter_range(expenses, date(year, 1, 1), month_bounds(year, 12)[1])
    if not year_expenses:
        return None
    df = expenses_frame(year_expenses)
    by_month = df.groupby(df["date"].dt.month)["amount"].sum()
    rows = []
    for month in range(1, 13):
        total = float(by_month.get(month, 0.0))
        rows.append(
            AnnualMonthRow(
                month=month_label(year, month, "%B"),
                income=float(salary),
                expenses=total,
                saved=float(salary) - total,
            )
        )
    return rows


def savings_history(history: Sequence[MonthlySaving], year: int) -> List[MonthlySaving]:
    """Snapshots recorded for ``year``, newest month first."""
    return sorted((s for s in history if s.year == year), key=lambda s: s.month, reverse=True)
