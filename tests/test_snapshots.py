import threading
import time
from datetime import date, datetime

import pytest

from finance_manager import snapshots
from finance_manager.config import Settings
from finance_manager.exceptions import RemoteCallError
from finance_manager.models import Expense
from finance_manager.repository import FinanceRepository
from finance_manager.snapshots import compute_snapshot, ensure_snapshot
from finance_manager.store import InMemoryDocumentStore


class FailingCreateStore(InMemoryDocumentStore):
    def __init__(self):
        super().__init__()
        self.fail = True

    def create_document(self, collection, document_id, fields):
        if self.fail:
            raise RemoteCallError("network down")
        return super().create_document(collection, document_id, fields)


class CountingStore(InMemoryDocumentStore):
    def __init__(self):
        super().__init__()
        self.creates = 0

    def create_document(self, collection, document_id, fields):
        self.creates += 1
        return super().create_document(collection, document_id, fields)


class SlowListingStore(InMemoryDocumentStore):
    """Widens the gap between the existence check and the write."""

    def list_documents(self, collection, filters=None, order_by=None, descending=True):
        documents = super().list_documents(collection, filters, order_by, descending)
        time.sleep(0.05)
        return documents


def _repository(store=None):
    return FinanceRepository(store or InMemoryDocumentStore(), Settings())


def _november_expenses():
    return [
        Expense(id="1", amount=1200, category="Food & Dining", description="", date=date(2024, 11, 3)),
        Expense(id="2", amount=3400, category="Shopping", description="", date=date(2024, 11, 30)),
        Expense(id="3", amount=800, category="Transportation", description="", date=date(2024, 11, 15)),
        Expense(id="4", amount=999, category="Other", description="", date=date(2024, 12, 1)),
        Expense(id="5", amount=111, category="Other", description="", date=date(2024, 10, 31)),
    ]


def test_snapshot_for_previous_month():
    repository = _repository()
    saving = ensure_snapshot(
        repository, "user-1", 50000, _november_expenses(), datetime(2024, 1, 1), now=datetime(2024, 12, 5)
    )
    assert saving is not None
    assert saving.month == "2024-11"
    assert saving.year == 2024
    assert saving.income == 50000
    assert saving.expenses == 5400
    assert saving.saved == 44600
    assert saving.savings_rate == pytest.approx(0.892)

    stored = repository.list_monthly_savings("user-1")
    assert len(stored) == 1
    assert stored[0].saved == 44600


def test_second_call_is_a_no_op():
    store = CountingStore()
    repository = _repository(store)
    args = (repository, "user-1", 50000, _november_expenses(), datetime(2024, 1, 1))
    assert ensure_snapshot(*args, now=datetime(2024, 12, 5)) is not None
    assert ensure_snapshot(*args, now=datetime(2024, 12, 28)) is None
    assert store.creates == 1
    assert len(repository.list_monthly_savings("user-1", month="2024-11")) == 1


def test_snapshots_are_per_user():
    repository = _repository()
    expenses = _november_expenses()
    assert ensure_snapshot(repository, "a", 1000, expenses, None, now=datetime(2024, 12, 5)) is not None
    assert ensure_snapshot(repository, "b", 1000, expenses, None, now=datetime(2024, 12, 5)) is not None
    assert len(repository.list_monthly_savings("a")) == 1


def test_january_targets_december_of_previous_year():
    expenses = [Expense(id="x", amount=10, category="Other", description="", date=date(2023, 12, 24))]
    saving = ensure_snapshot(_repository(), "u", 100, expenses, datetime(2023, 1, 1), now=datetime(2024, 1, 2))
    assert saving.month == "2023-12"
    assert saving.year == 2023
    assert saving.expenses == 10


def test_month_before_account_creation_is_skipped_without_write():
    store = CountingStore()
    saving = ensure_snapshot(
        _repository(store), "u", 50000, _november_expenses(), datetime(2024, 12, 1, 8, 30), now=datetime(2024, 12, 5)
    )
    assert saving is None
    assert store.creates == 0


def test_account_created_during_target_month_still_generates():
    saving = ensure_snapshot(
        _repository(), "u", 50000, _november_expenses(), "2024-11-30T10:00:00+00:00", now=datetime(2024, 12, 5)
    )
    assert saving is not None


def test_zero_salary_gives_zero_rate():
    snapshot = compute_snapshot("u", 0.0, _november_expenses(), 2024, 11)
    assert snapshot.saved == -5400
    assert snapshot.savings_rate == 0.0


def test_failed_write_can_be_retried():
    store = FailingCreateStore()
    repository = _repository(store)
    expenses = _november_expenses()

    with pytest.raises(RemoteCallError):
        ensure_snapshot(repository, "u", 50000, expenses, None, now=datetime(2024, 12, 5))
    assert repository.list_monthly_savings("u") == []

    store.fail = False
    assert ensure_snapshot(repository, "u", 50000, expenses, None, now=datetime(2024, 12, 5)) is not None
    assert ensure_snapshot(repository, "u", 50000, expenses, None, now=datetime(2024, 12, 6)) is None


def test_concurrent_calls_write_one_snapshot():
    store = SlowListingStore()
    repository = _repository(store)
    expenses = _november_expenses()
    results = []

    def generate():
        results.append(ensure_snapshot(repository, "u", 50000, expenses, None, now=datetime(2024, 12, 5)))

    threads = [threading.Thread(target=generate) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(repository.list_monthly_savings("u", month="2024-11")) == 1
    assert sum(result is not None for result in results) == 1


def test_month_locks_are_released():
    repository = _repository()
    ensure_snapshot(repository, "u", 50000, _november_expenses(), None, now=datetime(2024, 12, 5))
    with pytest.raises(RemoteCallError):
        ensure_snapshot(_repository(FailingCreateStore()), "v", 50000, [], None, now=datetime(2024, 12, 5))
    assert snapshots._month_locks == {}
