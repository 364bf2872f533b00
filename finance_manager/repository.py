"""Collection-level access to a user's financial records.

:class:`FinanceRepository` binds a :class:`~finance_manager.store.DocumentStore`
to the configured table names and speaks in domain records.  Missing table
configuration is reported before any store call is attempted.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

try:
    from . import mapping
    from .config import Settings
    from .models import Expense, Income, MonthlySaving
    from .store import DocumentStore, new_document_id
except ImportError:  # pragma: no cover - fallback for direct execution
    import mapping
    from config import Settings
    from models import Expense, Income, MonthlySaving
    from store import DocumentStore, new_document_id

logger = logging.getLogger(__name__)


class FinanceRepository:
    def __init__(self, store: DocumentStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or Settings()

    def is_configured(self, name: str) -> bool:
        return bool(self.settings.table(name))

    # Expenses ---------------------------------------------------------------

    def list_expenses(self, user_id: str) -> List[Expense]:
        table = self.settings.require_table("expenses")
        records = self.store.list_documents(table, {"userId": user_id}, order_by="date")
        return _dated([mapping.expense_from_record(r) for r in records], table)

    def create_expense(self, user_id: str, fields: Dict[str, Any]) -> Expense:
        table = self.settings.require_table("expenses")
        record = self.store.create_document(table, new_document_id(), mapping.expense_to_record(user_id, fields))
        return mapping.expense_from_record(record)

    def update_expense(self, expense_id: str, updates: Dict[str, Any]) -> None:
        table = self.settings.require_table("expenses")
        self.store.update_document(table, expense_id, mapping.expense_updates_to_record(updates))

    def delete_expense(self, expense_id: str) -> None:
        self.store.delete_document(self.settings.require_table("expenses"), expense_id)

    # Incomes ----------------------------------------------------------------

    def list_incomes(self, user_id: str) -> List[Income]:
        table = self.settings.require_table("incomes")
        records = self.store.list_documents(table, {"userId": user_id}, order_by="dateReceived")
        return _dated([mapping.income_from_record(r) for r in records], table)

    def create_income(self, user_id: str, fields: Dict[str, Any]) -> Income:
        table = self.settings.require_table("incomes")
        document_id = new_document_id()
        record = self.store.create_document(table, document_id, mapping.income_to_record(user_id, document_id, fields))
        return mapping.income_from_record(record)

    def delete_income(self, income_id: str) -> None:
        self.store.delete_document(self.settings.require_table("incomes"), income_id)

    # Monthly savings --------------------------------------------------------

    def list_monthly_savings(self, user_id: str, month: Optional[str] = None) -> List[MonthlySaving]:
        table = self.settings.require_table("monthly_savings")
        filters: Dict[str, Any] = {"userId": user_id}
        if month is not None:
            filters["month"] = month
        records = self.store.list_documents(table, filters, order_by="month")
        return [mapping.saving_from_record(r) for r in records]

    def create_monthly_saving(self, saving: MonthlySaving) -> MonthlySaving:
        table = self.settings.require_table("monthly_savings")
        record = self.store.create_document(table, saving.id or new_document_id(), mapping.saving_to_record(saving))
        return mapping.saving_from_record(record)

    def delete_monthly_saving(self, saving_id: str) -> None:
        self.store.delete_document(self.settings.require_table("monthly_savings"), saving_id)


def _dated(records: List[Any], table: str) -> List[Any]:
    """Drop records that carry neither a date nor a creation time."""
    dated = []
    for record in records:
        if record.date is None:
            logger.warning("Skipping undated record %s in '%s'", record.id, table)
            continue
        dated.append(record)
    return dated
