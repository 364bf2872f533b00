"""Domain records for expenses, incomes and savings snapshots.

The dataclasses here are plain in-memory values.  Translation to and from
the hosted document store's field names lives in :mod:`mapping`, and all
aggregation over these records lives in :mod:`aggregation`.
"""

from __future__ import annotations

import base64
import binascii
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Tuple

try:
    from .exceptions import ValidationError
except ImportError:  # pragma: no cover - fallback for direct execution
    from exceptions import ValidationError

EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Education",
    "Savings & Investment",
    "Other",
]
DEFAULT_CATEGORY = "Other"
ALL_CATEGORIES = "all"

MAX_RECEIPT_BYTES = 5 * 1024 * 1024
DEFAULT_RENEWAL_DAY = 1


@dataclass
class Expense:
    id: str
    amount: float
    category: str
    description: str
    date: date
    created_at: Optional[datetime] = None
    receipt: Optional[str] = None
    receipt_name: Optional[str] = None


@dataclass
class Income:
    """One-off income, tracked separately from the base salary."""

    id: str
    amount: float
    description: str
    date: date
    created_at: Optional[datetime] = None


@dataclass
class RecurringExpense:
    """A fixed monthly charge added to every cycle's total."""

    id: str
    label: str
    amount: float
    category: str


@dataclass
class SavedLabel:
    """Reusable {amount, category} template for one-click expenses."""

    id: str
    name: str
    amount: float
    category: str


@dataclass(frozen=True)
class MonthlySaving:
    id: str
    user_id: str
    month: str
    year: int
    income: float
    expenses: float
    saved: float
    savings_rate: Optional[float] = None


@dataclass
class UserBudgetConfig:
    salary: float = 0.0
    renewal_day: int = DEFAULT_RENEWAL_DAY
    account_created_at: Optional[datetime] = None
    avatar_url: Optional[str] = None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def parse_amount(value: Any, field_name: str = "amount") -> float:
    """Convert form input into a finite float, raising on garbage."""
    if value is None or isinstance(value, bool):
        raise ValidationError("Please enter a valid amount", field_name)
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            raise ValidationError("Please enter a valid amount", field_name)
        value = cleaned
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid amount", field_name) from None
    if not math.isfinite(number):
        raise ValidationError("Please enter a valid amount", field_name)
    return number


def validate_amount(value: Any, field_name: str = "amount") -> float:
    """Return ``value`` as a float, requiring it to be strictly positive."""
    number = parse_amount(value, field_name)
    if number <= 0:
        raise ValidationError("Amount must be greater than zero", field_name)
    return number


def validate_salary(value: Any) -> float:
    number = parse_amount(value, "salary")
    if number < 0:
        raise ValidationError("Salary cannot be negative", "salary")
    return number


def validate_renewal_day(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("Renewal day must be between 1 and 31", "renewal_day")
    try:
        day = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ValidationError("Renewal day must be between 1 and 31", "renewal_day") from None
    if isinstance(value, float) and value != day:
        raise ValidationError("Renewal day must be between 1 and 31", "renewal_day")
    if not 1 <= day <= 31:
        raise ValidationError("Renewal day must be between 1 and 31", "renewal_day")
    return day


def validate_category(value: Any) -> str:
    if value not in EXPENSE_CATEGORIES:
        raise ValidationError(f"Unknown category '{value}'", "category")
    return value


def validate_required(value: Any, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Please enter a {field_name.replace('_', ' ')}", field_name)
    return str(value).strip()


def validate_date(value: Any, field_name: str = "date") -> date:
    """Accept a ``date``/``datetime`` or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError("Please enter a valid date", field_name)


def validate_expense_date(value: Any, today: date) -> date:
    """Reject expenses dated in a calendar month before ``today``'s month.

    Past months are locked once their savings snapshot may have been taken.
    """
    expense_date = validate_date(value)
    if (expense_date.year, expense_date.month) < (today.year, today.month):
        raise ValidationError(
            "You cannot add expenses for past months. Previous months are locked.",
            "date",
        )
    return expense_date


def validate_receipt(receipt: Optional[str]) -> Optional[str]:
    """Check a base64 (optionally data-URL) receipt payload's decoded size."""
    if not receipt:
        return None
    payload = receipt.split(",", 1)[1] if receipt.startswith("data:") else receipt
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Receipt is not a valid encoded file", "receipt") from None
    if len(decoded) > MAX_RECEIPT_BYTES:
        raise ValidationError("File size must be less than 5MB", "receipt")
    return receipt


def decode_receipt(receipt: str) -> Tuple[str, bytes]:
    """Split a stored receipt into its MIME type and raw bytes.

    Bare base64 payloads (no ``data:`` header) report an empty MIME type.
    Raises :class:`binascii.Error` for payloads that are not base64.
    """
    if receipt.startswith("data:"):
        header, _, payload = receipt.partition(",")
        mime = header[5:].split(";", 1)[0]
    else:
        mime, payload = "", receipt
    return mime, base64.b64decode(payload, validate=True)
