"""Interactive filtering for the expense list."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import pandas as pd

try:
    from .models import ALL_CATEGORIES, Expense
except ImportError:  # pragma: no cover - fallback for direct execution
    from models import ALL_CATEGORIES, Expense


def _boundary(value: Any) -> Optional[pd.Timestamp]:
    """Parse a user-supplied date boundary; unparseable input means no bound."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        ts = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts


def filter_expenses(
    expenses: Sequence[Expense],
    start: Any = None,
    end: Any = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Expense]:
    """Filter expenses, then sort them newest first.

    ``search`` is a case-insensitive substring match over description and
    category.  A ``category`` of ``"all"`` (or ``None``) matches everything.
    """
    lower = _boundary(start)
    upper = _boundary(end)
    needle = (search or "").strip().lower()

    result = []
    for expense in expenses:
        if needle and needle not in (expense.description or "").lower() and needle not in (expense.category or "").lower():
            continue
        if category not in (None, "", ALL_CATEGORIES) and expense.category != category:
            continue
        expense_date = pd.Timestamp(expense.date)
        if lower is not None and expense_date < lower:
            continue
        if upper is not None and expense_date > upper:
            continue
        result.append(expense)
    return sorted(result, key=lambda e: e.date, reverse=True)


@dataclass
class ExpenseFilter:
    """The expense list's filter controls."""

    search: str = ""
    category: str = ALL_CATEGORIES
    start: Any = None
    end: Any = None

    @property
    def has_active_filters(self) -> bool:
        return bool(self.search or self.category != ALL_CATEGORIES or self.start or self.end)

    def apply(self, expenses: Sequence[Expense]) -> List[Expense]:
        return filter_expenses(expenses, self.start, self.end, self.category, self.search)

    def clear(self) -> "ExpenseFilter":
        return ExpenseFilter()
