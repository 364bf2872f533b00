"""Translation between store documents and domain records.

The hosted tables use their own column names (``userId``, ``receipt_name``,
``savingsRate``, and ``source``/``dateReceived`` for incomes).  Everything
that knows about those names lives here, so the aggregation code only ever
sees :mod:`models` dataclasses.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, Optional

import pandas as pd

try:
    from .models import DEFAULT_CATEGORY, Expense, Income, MonthlySaving, RecurringExpense, SavedLabel
except ImportError:  # pragma: no cover - fallback for direct execution
    from models import DEFAULT_CATEGORY, Expense, Income, MonthlySaving, RecurringExpense, SavedLabel

# Model attribute -> store column, for fields whose names differ
EXPENSE_FIELD_MAP = {
    "user_id": "userId",
}
INCOME_FIELD_MAP = {
    "description": "source",
    "date": "dateReceived",
    "user_id": "userId",
}
SAVING_FIELD_MAP = {
    "user_id": "userId",
    "savings_rate": "savingsRate",
}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a store timestamp into a naive UTC ``datetime``."""
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(ts):
        return None
    return ts.tz_localize(None).to_pydatetime()


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        ts = pd.to_datetime(text, errors="coerce")
        if pd.isna(ts):
            return None
        return ts.date()


def _iso(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def _record_id(record: Dict[str, Any]) -> str:
    return str(record.get("id") or record.get("$id") or "")


def _created_at(record: Dict[str, Any]) -> Optional[datetime]:
    return parse_timestamp(record.get("created_at") or record.get("$createdAt"))


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------


def expense_from_record(record: Dict[str, Any]) -> Expense:
    created_at = _created_at(record)
    expense_date = parse_date(record.get("date")) or (created_at.date() if created_at else None)
    return Expense(
        id=_record_id(record),
        amount=float(record.get("amount") or 0),
        category=record.get("category") or DEFAULT_CATEGORY,
        description=record.get("description") or "",
        date=expense_date,
        created_at=created_at,
        receipt=record.get("receipt") or None,
        receipt_name=record.get("receipt_name") or None,
    )


def expense_to_record(user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Build a create payload; receipt columns are only sent when set."""
    payload: Dict[str, Any] = {
        "userId": user_id,
        "description": fields.get("description") or "",
        "amount": float(fields["amount"]),
        "category": fields["category"],
        "date": _iso(fields["date"]),
    }
    if fields.get("receipt"):
        payload["receipt"] = fields["receipt"]
    if fields.get("receipt_name"):
        payload["receipt_name"] = fields["receipt_name"]
    return payload


def expense_updates_to_record(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Map a partial expense update onto store columns.

    Identity and creation time are never sent back to the store.
    """
    payload: Dict[str, Any] = {}
    for name, value in updates.items():
        if name in ("id", "created_at"):
            continue
        payload[EXPENSE_FIELD_MAP.get(name, name)] = _iso(value)
    return payload


# ---------------------------------------------------------------------------
# Incomes
# ---------------------------------------------------------------------------


def income_from_record(record: Dict[str, Any]) -> Income:
    created_at = _created_at(record)
    income_date = parse_date(record.get("dateReceived")) or (created_at.date() if created_at else None)
    return Income(
        id=_record_id(record),
        amount=float(record.get("amount") or 0),
        description=record.get("source") or "Income",
        date=income_date,
        created_at=created_at,
    )


def income_to_record(user_id: str, income_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    payload = {
        "user_id": user_id,
        "description": fields["description"],
        "amount": float(fields["amount"]),
        "date": _iso(fields["date"]),
    }
    record = {INCOME_FIELD_MAP.get(name, name): value for name, value in payload.items()}
    record["incomeId"] = income_id
    return record


# ---------------------------------------------------------------------------
# Monthly savings
# ---------------------------------------------------------------------------


def saving_from_record(record: Dict[str, Any]) -> MonthlySaving:
    rate = record.get("savingsRate")
    return MonthlySaving(
        id=_record_id(record),
        user_id=record.get("userId") or "",
        month=record.get("month") or "",
        year=int(record.get("year") or 0),
        income=float(record.get("income") or 0),
        expenses=float(record.get("expenses") or 0),
        saved=float(record.get("saved") or 0),
        savings_rate=float(rate) if rate is not None else None,
    )


def saving_to_record(saving: MonthlySaving) -> Dict[str, Any]:
    fields = asdict(saving)
    fields.pop("id")
    return {SAVING_FIELD_MAP.get(name, name): value for name, value in fields.items()}


# ---------------------------------------------------------------------------
# Local-only records
# ---------------------------------------------------------------------------


def recurring_from_dict(data: Dict[str, Any]) -> RecurringExpense:
    return RecurringExpense(
        id=str(data["id"]),
        label=str(data.get("label") or ""),
        amount=float(data.get("amount") or 0),
        category=data.get("category") or DEFAULT_CATEGORY,
    )


def label_from_dict(data: Dict[str, Any]) -> SavedLabel:
    return SavedLabel(
        id=str(data["id"]),
        name=str(data.get("name") or ""),
        amount=float(data.get("amount") or 0),
        category=data.get("category") or DEFAULT_CATEGORY,
    )


def to_dict(record: Any) -> Dict[str, Any]:
    return asdict(record)
