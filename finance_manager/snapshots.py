"""Monthly savings snapshots.

Once a calendar month is over, its income, spending and savings are frozen
into a :class:`~finance_manager.models.MonthlySaving` record.  Generation is
check-then-create: the store is asked whether the (user, month) snapshot
already exists and a new one is written only if it does not, so calling
:func:`ensure_snapshot` repeatedly (including after a failed write) produces
at most one record.

The check and the write are two separate store calls.  Within one server
process they are serialized per (user, month) by a lock; two processes
racing on the same month can still both write, because the hosted tables
carry no uniqueness constraint on ``(userId, month)``.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

try:
    from .aggregation import total_for_range
    from .cycle import DateLike, end_of_month, month_bounds, month_key, previous_month
    from .mapping import parse_timestamp
    from .models import Expense, MonthlySaving
    from .repository import FinanceRepository
    from .store import new_document_id
except ImportError:  # pragma: no cover - fallback for direct execution
    from aggregation import total_for_range
    from cycle import DateLike, end_of_month, month_bounds, month_key, previous_month
    from mapping import parse_timestamp
    from models import Expense, MonthlySaving
    from repository import FinanceRepository
    from store import new_document_id

logger = logging.getLogger(__name__)

_locks_guard = threading.Lock()
# (user, month) -> [lock, number of callers holding or waiting on it]
_month_locks: Dict[Tuple[str, str], List] = {}


@contextmanager
def _month_lock(user_id: str, month: str) -> Iterator[None]:
    """Serialize callers on one (user, month); the entry is dropped once unused."""
    key = (user_id, month)
    with _locks_guard:
        entry = _month_locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _month_locks[key]


def compute_snapshot(
    user_id: str,
    salary: float,
    expenses: Sequence[Expense],
    year: int,
    month: int,
) -> MonthlySaving:
    """Build (without persisting) the snapshot for one calendar month."""
    start, end = month_bounds(year, month)
    total_expenses = total_for_range(expenses, start, end)
    saved = salary - total_expenses
    return MonthlySaving(
        id=new_document_id(),
        user_id=user_id,
        month=f"{year:04d}-{month:02d}",
        year=year,
        income=salary,
        expenses=total_expenses,
        saved=saved,
        savings_rate=saved / salary if salary > 0 else 0.0,
    )


def ensure_snapshot(
    repository: FinanceRepository,
    user_id: str,
    salary: float,
    expenses: Sequence[Expense],
    account_created_at: Optional[DateLike],
    now: Optional[DateLike] = None,
) -> Optional[MonthlySaving]:
    """Create the previous month's snapshot if it does not exist yet.

    Returns the new snapshot, or ``None`` when nothing was written because
    the account did not exist during that month or a snapshot is already
    stored.  Store failures propagate as
    :class:`~finance_manager.exceptions.RemoteCallError`.
    """
    now = now or datetime.now()
    year, month = previous_month(now)
    target = month_key(datetime(year, month, 1))

    created_at = _naive(account_created_at)
    if created_at is not None and end_of_month(year, month) < created_at:
        logger.info("Skipping snapshot for %s: it ends before the account was created", target)
        return None

    with _month_lock(user_id, target):
        if repository.list_monthly_savings(user_id, month=target):
            return None
        logger.info("Generating savings snapshot for %s", target)
        snapshot = compute_snapshot(user_id, float(salary), expenses, year, month)
        return repository.create_monthly_saving(snapshot)


def _naive(value: Optional[DateLike]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        return parse_timestamp(value)
    if isinstance(value, datetime):
        return parse_timestamp(value.isoformat()) if value.tzinfo else value
    return datetime(value.year, value.month, value.day)
