import base64
from dataclasses import replace
from datetime import date, datetime

import pytest

from finance_manager.config import Settings
from finance_manager.exceptions import ConfigurationError, RemoteCallError, ValidationError
from finance_manager.local_storage import LocalListStore
from finance_manager.preferences import PreferencesStore
from finance_manager.repository import FinanceRepository
from finance_manager.state import AppState, FinanceService, describe_error
from finance_manager.store import InMemoryDocumentStore

TODAY = date(2024, 5, 10)


class BrokenIncomesStore(InMemoryDocumentStore):
    def list_documents(self, collection, filters=None, order_by=None, descending=True):
        if collection == "incomes":
            raise RemoteCallError("relation \"incomes\" does not exist")
        return super().list_documents(collection, filters, order_by, descending)


def _service(tmp_path, store=None, settings=None):
    store = store or InMemoryDocumentStore()
    settings = settings or Settings()
    return FinanceService(
        FinanceRepository(store, settings),
        PreferencesStore(store, settings),
        LocalListStore(tmp_path / "local.json"),
    )


@pytest.fixture
def service(tmp_path):
    return _service(tmp_path)


@pytest.fixture
def state(service):
    return service.load_state("user-1")


def test_load_state_for_new_user(state):
    assert state.user_id == "user-1"
    assert state.expenses == ()
    assert state.salary == 0.0
    assert state.renewal_day == 1
    assert state.account_created_at is not None
    assert state.warnings == ()


def test_load_state_tolerates_missing_incomes_table(tmp_path):
    state = _service(tmp_path, store=BrokenIncomesStore()).load_state("user-1")
    assert state.incomes == ()
    assert len(state.warnings) == 1


def test_add_expense_prepends_created_record(service, state):
    first = service.add_expense(state, "1,200", "Food & Dining", " Groceries ", "2024-05-03", today=TODAY)
    second = service.add_expense(first, 80, "Transportation", "", date(2024, 5, 4), today=TODAY)
    assert [e.amount for e in second.expenses] == [80.0, 1200.0]
    assert second.expenses[1].description == "Groceries"
    assert state.expenses == ()
    assert len(service.load_state("user-1").expenses) == 2


@pytest.mark.parametrize(
    "amount, category, expense_date",
    [
        (0, "Other", "2024-05-01"),
        ("abc", "Other", "2024-05-01"),
        (10, "Groceries", "2024-05-01"),
        (10, "Other", "not-a-date"),
        (10, "Other", "2024-04-30"),
    ],
)
def test_add_expense_rejects_bad_input_before_store_call(service, state, amount, category, expense_date):
    with pytest.raises(ValidationError):
        service.add_expense(state, amount, category, "", expense_date, today=TODAY)
    assert service.repository.list_expenses("user-1") == []


def test_add_expense_requires_user(service):
    with pytest.raises(ValidationError, match="logged in"):
        service.add_expense(AppState(), 10, "Other", "", TODAY, today=TODAY)


def test_add_expense_rejects_oversized_receipt(service, state):
    receipt = "data:image/png;base64," + base64.b64encode(b"0" * (5 * 1024 * 1024 + 1)).decode()
    with pytest.raises(ValidationError, match="5MB"):
        service.add_expense(state, 10, "Other", "", TODAY, receipt=receipt, today=TODAY)


def test_update_and_delete_expense(service, state):
    state = service.add_expense(state, 100, "Shopping", "Shoes", TODAY, today=TODAY)
    expense_id = state.expenses[0].id

    updated = service.update_expense(state, expense_id, amount="150", description="Running shoes")
    assert updated.expenses[0].amount == 150.0
    assert service.load_state("user-1").expenses[0].description == "Running shoes"

    with pytest.raises(ValidationError):
        service.update_expense(updated, expense_id, user_id="someone-else")

    emptied = service.delete_expense(updated, expense_id)
    assert emptied.expenses == ()
    assert service.load_state("user-1").expenses == ()


def test_failed_delete_leaves_state_unchanged(service, state):
    state = service.add_expense(state, 100, "Shopping", "Shoes", TODAY, today=TODAY)
    ghost = replace(state, expenses=state.expenses + (replace(state.expenses[0], id="ghost"),))
    with pytest.raises(RemoteCallError):
        service.delete_expense(ghost, "ghost")
    assert len(ghost.expenses) == 2


def test_incomes(service, state):
    state = service.add_income(state, 500, "Freelance", "2024-05-02")
    assert state.incomes[0].description == "Freelance"
    assert service.load_state("user-1").incomes[0].amount == 500.0
    assert service.delete_income(state, state.incomes[0].id).incomes == ()


def test_add_income_without_incomes_table(tmp_path):
    service = _service(tmp_path, settings=Settings(incomes_table=None))
    state = service.load_state("user-1")
    with pytest.raises(ConfigurationError, match="Incomes collection not configured"):
        service.add_income(state, 500, "Freelance", "2024-05-02")


def test_add_income_requires_source(service, state):
    with pytest.raises(ValidationError):
        service.add_income(state, 500, "  ", "2024-05-02")


def test_save_salary(service, state):
    state = service.save_salary(state, "50000", 15)
    assert (state.salary, state.renewal_day) == (50000.0, 15)
    reloaded = service.load_state("user-1")
    assert (reloaded.salary, reloaded.renewal_day) == (50000.0, 15)

    with pytest.raises(ValidationError):
        service.save_salary(state, 100, 32)
    with pytest.raises(ValidationError):
        service.save_salary(state, -1)


def test_recurring_expenses_persist_locally(service, state):
    state = service.add_recurring_expense(state, "Netflix", 499, "Entertainment")
    state = service.add_recurring_expense(state, "Gym", 1500, "Healthcare")
    assert state.recurring_total == 1999

    gym = state.recurring_expenses[1]
    state = service.update_recurring_expense(state, gym.id, amount=1200)
    state = service.delete_recurring_expense(state, state.recurring_expenses[0].id)

    reloaded = service.load_state("user-1")
    assert [(r.label, r.amount) for r in reloaded.recurring_expenses] == [("Gym", 1200.0)]


def test_saved_label_creates_expense_dated_today(service, state):
    state = service.add_saved_label(state, "Coffee", 180, "Food & Dining")
    label = state.saved_labels[0]
    state = service.add_expense_from_label(state, label.id, today=TODAY)
    expense = state.expenses[0]
    assert (expense.amount, expense.category, expense.description, expense.date) == (
        180.0,
        "Food & Dining",
        "Coffee",
        TODAY,
    )
    assert service.delete_saved_label(state, label.id).saved_labels == ()
    with pytest.raises(ValidationError):
        service.add_expense_from_label(state, "missing", today=TODAY)


def test_generate_monthly_saving_requires_data(service, state):
    assert service.generate_monthly_saving(state, now=datetime(2024, 6, 2)) == (state, None)


def test_generate_monthly_saving(service, state):
    state = service.save_salary(state, 50000)
    state = service.add_expense(state, 1200, "Shopping", "", date(2024, 5, 3), today=TODAY)
    state = replace(state, account_created_at=datetime(2024, 1, 1))

    state, created = service.generate_monthly_saving(state, now=datetime(2024, 6, 2))
    assert created.month == "2024-05"
    assert created.saved == 48800
    assert state.monthly_history == (created,)

    again, none = service.generate_monthly_saving(state, now=datetime(2024, 6, 3))
    assert none is None
    assert again.monthly_history == (created,)

    assert service.delete_monthly_saving(state, created.id).monthly_history == ()


def test_describe_error():
    assert describe_error(RemoteCallError("timeout")) == "Request failed: timeout"
    assert describe_error(ValidationError("Please enter a valid amount")) == "Please enter a valid amount"


def test_update_expense_replaces_and_removes_receipt(service, state):
    state = service.add_expense(state, 100, "Shopping", "Shoes", TODAY, today=TODAY)
    expense_id = state.expenses[0].id
    receipt = "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()

    state = service.update_expense(state, expense_id, receipt=receipt, receipt_name="shoes.png")
    assert (state.expenses[0].receipt, state.expenses[0].receipt_name) == (receipt, "shoes.png")
    stored = service.load_state("user-1").expenses[0]
    assert (stored.receipt, stored.receipt_name) == (receipt, "shoes.png")

    state = service.update_expense(state, expense_id, receipt=None)
    assert (state.expenses[0].receipt, state.expenses[0].receipt_name) == (None, None)
    stored = service.load_state("user-1").expenses[0]
    assert (stored.receipt, stored.receipt_name) == (None, None)


def test_update_expense_rejects_oversized_receipt(service, state):
    state = service.add_expense(state, 100, "Shopping", "Shoes", TODAY, today=TODAY)
    receipt = "data:application/pdf;base64," + base64.b64encode(b"0" * (5 * 1024 * 1024 + 1)).decode()
    with pytest.raises(ValidationError, match="5MB"):
        service.update_expense(state, state.expenses[0].id, receipt=receipt, receipt_name="big.pdf")
    assert service.load_state("user-1").expenses[0].receipt is None


def test_update_recurring_expense_rejects_unknown_field_and_id(service, state):
    state = service.add_recurring_expense(state, "Netflix", 499, "Entertainment")
    recurring_id = state.recurring_expenses[0].id

    with pytest.raises(ValidationError, match="Cannot update"):
        service.update_recurring_expense(state, recurring_id, frequency="weekly")
    with pytest.raises(ValidationError, match="not found"):
        service.update_recurring_expense(state, "missing", amount=10)

    state = service.update_recurring_expense(state, recurring_id, label="Netflix Premium", category="Entertainment")
    assert state.recurring_expenses[0].label == "Netflix Premium"
