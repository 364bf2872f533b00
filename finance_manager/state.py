"""Application state and the user actions that change it.

:class:`AppState` is an explicit value holding everything the dashboard
shows.  Each :class:`FinanceService` method takes the current state and
returns a new one; the store is called first and the new state is only
built from its response, so a failed call leaves the caller's state exactly
as it was.

Every action validates its input before touching the store and raises
:class:`~finance_manager.exceptions.ValidationError`,
:class:`~finance_manager.exceptions.ConfigurationError` or
:class:`~finance_manager.exceptions.RemoteCallError` for the caller to show.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

try:
    from . import mapping
    from .exceptions import ConfigurationError, FinanceError, RemoteCallError, ValidationError
    from .local_storage import LABELS_KEY, RECURRING_KEY, LocalListStore
    from .models import (
        DEFAULT_RENEWAL_DAY,
        Expense,
        Income,
        MonthlySaving,
        RecurringExpense,
        SavedLabel,
        validate_amount,
        validate_category,
        validate_date,
        validate_expense_date,
        validate_receipt,
        validate_renewal_day,
        validate_required,
        validate_salary,
    )
    from .preferences import PreferencesStore
    from .repository import FinanceRepository
    from .snapshots import ensure_snapshot
except ImportError:  # pragma: no cover - fallback for direct execution
    import mapping
    from exceptions import ConfigurationError, FinanceError, RemoteCallError, ValidationError
    from local_storage import LABELS_KEY, RECURRING_KEY, LocalListStore
    from models import (
        DEFAULT_RENEWAL_DAY,
        Expense,
        Income,
        MonthlySaving,
        RecurringExpense,
        SavedLabel,
        validate_amount,
        validate_category,
        validate_date,
        validate_expense_date,
        validate_receipt,
        validate_renewal_day,
        validate_required,
        validate_salary,
    )
    from preferences import PreferencesStore
    from repository import FinanceRepository
    from snapshots import ensure_snapshot

logger = logging.getLogger(__name__)

EXPENSE_UPDATE_FIELDS = {"amount", "category", "description", "date", "receipt", "receipt_name"}
RECURRING_UPDATE_FIELDS = {"label", "amount", "category"}


@dataclass(frozen=True)
class AppState:
    user_id: Optional[str] = None
    expenses: Tuple[Expense, ...] = ()
    incomes: Tuple[Income, ...] = ()
    monthly_history: Tuple[MonthlySaving, ...] = ()
    recurring_expenses: Tuple[RecurringExpense, ...] = ()
    saved_labels: Tuple[SavedLabel, ...] = ()
    salary: float = 0.0
    renewal_day: int = DEFAULT_RENEWAL_DAY
    account_created_at: Optional[datetime] = None
    avatar_url: Optional[str] = None
    warnings: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def recurring_total(self) -> float:
        return float(sum(r.amount for r in self.recurring_expenses))


def _require_user(state: AppState) -> str:
    if not state.user_id:
        raise ValidationError("You must be logged in", "user_id")
    return state.user_id


class FinanceService:
    """User actions over an :class:`AppState`."""

    def __init__(
        self,
        repository: FinanceRepository,
        preferences: PreferencesStore,
        local_store: LocalListStore,
    ):
        self.repository = repository
        self.preferences = preferences
        self.local_store = local_store

    # Loading ----------------------------------------------------------------

    def load_state(self, user_id: str) -> AppState:
        """Fetch everything for ``user_id``.

        A failing incomes fetch is tolerated (the table may not exist yet);
        every other failure propagates.
        """
        config = self.preferences.get(user_id)
        expenses = self.repository.list_expenses(user_id)
        history = self.repository.list_monthly_savings(user_id)

        warnings: List[str] = []
        incomes: List[Income] = []
        if self.repository.is_configured("incomes"):
            try:
                incomes = self.repository.list_incomes(user_id)
            except RemoteCallError as exc:
                logger.warning("Failed to fetch incomes (the table might not exist yet): %s", exc)
                warnings.append(f"Incomes unavailable: {exc}")

        return AppState(
            user_id=user_id,
            expenses=tuple(expenses),
            incomes=tuple(incomes),
            monthly_history=tuple(history),
            recurring_expenses=tuple(self._load_recurring()),
            saved_labels=tuple(self._load_labels()),
            salary=config.salary,
            renewal_day=config.renewal_day,
            account_created_at=config.account_created_at,
            avatar_url=config.avatar_url,
            warnings=tuple(warnings),
        )

    def _load_recurring(self) -> List[RecurringExpense]:
        return [mapping.recurring_from_dict(item) for item in self.local_store.read_list(RECURRING_KEY)]

    def _load_labels(self) -> List[SavedLabel]:
        return [mapping.label_from_dict(item) for item in self.local_store.read_list(LABELS_KEY)]

    # Expenses ---------------------------------------------------------------

    def add_expense(
        self,
        state: AppState,
        amount: Any,
        category: str,
        description: str,
        expense_date: Any,
        receipt: Optional[str] = None,
        receipt_name: Optional[str] = None,
        today: Optional[date] = None,
    ) -> AppState:
        user_id = _require_user(state)
        fields = {
            "amount": validate_amount(amount),
            "category": validate_category(category),
            "description": (description or "").strip(),
            "date": validate_expense_date(expense_date, today or date.today()),
            "receipt": validate_receipt(receipt),
            "receipt_name": receipt_name if receipt else None,
        }
        created = self.repository.create_expense(user_id, fields)
        return replace(state, expenses=(created,) + state.expenses)

    def update_expense(self, state: AppState, expense_id: str, **updates: Any) -> AppState:
        """Replace the given fields of one expense."""
        _require_user(state)
        unknown = set(updates) - EXPENSE_UPDATE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if not any(e.id == expense_id for e in state.expenses):
            raise ValidationError(f"Expense '{expense_id}' not found", "id")

        clean = dict(updates)
        if "amount" in clean:
            clean["amount"] = validate_amount(clean["amount"])
        if "category" in clean:
            clean["category"] = validate_category(clean["category"])
        if "date" in clean:
            clean["date"] = validate_date(clean["date"])
        if "receipt" in clean:
            clean["receipt"] = validate_receipt(clean["receipt"])
            if clean["receipt"] is None:
                clean["receipt_name"] = None
        if "description" in clean:
            clean["description"] = (clean["description"] or "").strip()

        self.repository.update_expense(expense_id, clean)
        expenses = tuple(replace(e, **clean) if e.id == expense_id else e for e in state.expenses)
        return replace(state, expenses=expenses)

    def delete_expense(self, state: AppState, expense_id: str) -> AppState:
        _require_user(state)
        self.repository.delete_expense(expense_id)
        return replace(state, expenses=tuple(e for e in state.expenses if e.id != expense_id))

    def add_expense_from_label(self, state: AppState, label_id: str, today: Optional[date] = None) -> AppState:
        """One-click expense from a saved label, dated today."""
        label = next((l for l in state.saved_labels if l.id == label_id), None)
        if label is None:
            raise ValidationError(f"Saved label '{label_id}' not found", "label")
        today = today or date.today()
        return self.add_expense(state, label.amount, label.category, label.name, today, today=today)

    # Incomes ----------------------------------------------------------------

    def add_income(self, state: AppState, amount: Any, description: str, income_date: Any) -> AppState:
        user_id = _require_user(state)
        fields = {
            "amount": validate_amount(amount),
            "description": validate_required(description, "source"),
            "date": validate_date(income_date),
        }
        if not self.repository.is_configured("incomes"):
            raise ConfigurationError("Incomes collection not configured")
        created = self.repository.create_income(user_id, fields)
        return replace(state, incomes=(created,) + state.incomes)

    def delete_income(self, state: AppState, income_id: str) -> AppState:
        _require_user(state)
        self.repository.delete_income(income_id)
        return replace(state, incomes=tuple(i for i in state.incomes if i.id != income_id))

    # Salary -----------------------------------------------------------------

    def save_salary(self, state: AppState, salary: Any, renewal_day: Any = None) -> AppState:
        user_id = _require_user(state)
        changes: Dict[str, Any] = {"salary": validate_salary(salary)}
        if renewal_day not in (None, ""):
            changes["renewal_day"] = validate_renewal_day(renewal_day)
        config = self.preferences.update(user_id, **changes)
        return replace(state, salary=config.salary, renewal_day=config.renewal_day)

    # Recurring expenses (device-local) --------------------------------------

    def _save_recurring(self, state: AppState, items: Tuple[RecurringExpense, ...]) -> AppState:
        self.local_store.write_list(RECURRING_KEY, [mapping.to_dict(item) for item in items])
        return replace(state, recurring_expenses=items)

    def add_recurring_expense(self, state: AppState, label: str, amount: Any, category: str) -> AppState:
        item = RecurringExpense(
            id=str(uuid.uuid4()),
            label=validate_required(label, "label"),
            amount=validate_amount(amount),
            category=validate_category(category),
        )
        return self._save_recurring(state, state.recurring_expenses + (item,))

    def update_recurring_expense(self, state: AppState, recurring_id: str, **updates: Any) -> AppState:
        unknown = set(updates) - RECURRING_UPDATE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if not any(r.id == recurring_id for r in state.recurring_expenses):
            raise ValidationError(f"Recurring expense '{recurring_id}' not found", "id")

        clean = dict(updates)
        if "label" in clean:
            clean["label"] = validate_required(clean["label"], "label")
        if "amount" in clean:
            clean["amount"] = validate_amount(clean["amount"])
        if "category" in clean:
            clean["category"] = validate_category(clean["category"])
        items = tuple(replace(r, **clean) if r.id == recurring_id else r for r in state.recurring_expenses)
        return self._save_recurring(state, items)

    def delete_recurring_expense(self, state: AppState, recurring_id: str) -> AppState:
        items = tuple(r for r in state.recurring_expenses if r.id != recurring_id)
        return self._save_recurring(state, items)

    # Saved labels (device-local) --------------------------------------------

    def _save_labels(self, state: AppState, items: Tuple[SavedLabel, ...]) -> AppState:
        self.local_store.write_list(LABELS_KEY, [mapping.to_dict(item) for item in items])
        return replace(state, saved_labels=items)

    def add_saved_label(self, state: AppState, name: str, amount: Any, category: str) -> AppState:
        label = SavedLabel(
            id=str(uuid.uuid4()),
            name=validate_required(name, "label_name"),
            amount=validate_amount(amount),
            category=validate_category(category),
        )
        return self._save_labels(state, state.saved_labels + (label,))

    def delete_saved_label(self, state: AppState, label_id: str) -> AppState:
        return self._save_labels(state, tuple(l for l in state.saved_labels if l.id != label_id))

    # Monthly savings --------------------------------------------------------

    def delete_monthly_saving(self, state: AppState, saving_id: str) -> AppState:
        _require_user(state)
        self.repository.delete_monthly_saving(saving_id)
        return replace(state, monthly_history=tuple(s for s in state.monthly_history if s.id != saving_id))

    def generate_monthly_saving(
        self, state: AppState, now: Optional[datetime] = None
    ) -> Tuple[AppState, Optional[MonthlySaving]]:
        """Run snapshot generation once data is loaded.

        Nothing happens until the user is known, has at least one expense,
        a positive salary and a known account-creation time.
        """
        if not (state.user_id and state.expenses and state.salary > 0 and state.account_created_at):
            return state, None
        created = ensure_snapshot(
            self.repository,
            state.user_id,
            state.salary,
            state.expenses,
            state.account_created_at,
            now=now,
        )
        if created is None:
            return state, None
        history = sorted(state.monthly_history + (created,), key=lambda s: s.month, reverse=True)
        return replace(state, monthly_history=tuple(history)), created


def describe_error(exc: FinanceError) -> str:
    """User-facing text for an action failure."""
    if isinstance(exc, RemoteCallError):
        return f"Request failed: {exc}"
    return str(exc)
