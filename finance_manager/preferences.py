"""Per-user preferences: base salary, renewal day and avatar.

Preferences are one document per user in the preferences table, using the
column names ``salary``, ``salaryDate`` and ``avatarUrl``.  The document is
created the first time a user's preferences are read, and its creation
timestamp stands in for the account-creation time that bounds snapshot
generation.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

try:
    from .config import Settings
    from .mapping import parse_timestamp
    from .models import DEFAULT_RENEWAL_DAY, UserBudgetConfig, validate_renewal_day, validate_salary
    from .store import DocumentStore
except ImportError:  # pragma: no cover - fallback for direct execution
    from config import Settings
    from mapping import parse_timestamp
    from models import DEFAULT_RENEWAL_DAY, UserBudgetConfig, validate_renewal_day, validate_salary
    from store import DocumentStore

PREFERENCE_COLUMNS = {
    "salary": "salary",
    "renewal_day": "salaryDate",
    "avatar_url": "avatarUrl",
}


def config_from_record(record: Dict[str, Any]) -> UserBudgetConfig:
    salary = record.get("salary")
    renewal_day = record.get("salaryDate")
    return UserBudgetConfig(
        salary=float(salary) if salary not in (None, "") else 0.0,
        renewal_day=int(renewal_day) if renewal_day else DEFAULT_RENEWAL_DAY,
        account_created_at=parse_timestamp(record.get("created_at") or record.get("$createdAt")),
        avatar_url=record.get("avatarUrl") or None,
    )


class PreferencesStore:
    def __init__(self, store: DocumentStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or Settings()

    def _document(self, user_id: str) -> Dict[str, Any]:
        table = self.settings.require_table("preferences")
        documents = self.store.list_documents(table, {"userId": user_id})
        if documents:
            return documents[0]
        return self.store.create_document(
            table,
            f"prefs-{user_id}",
            {"userId": user_id, "salary": 0.0, "salaryDate": DEFAULT_RENEWAL_DAY},
        )

    def get(self, user_id: str) -> UserBudgetConfig:
        return config_from_record(self._document(user_id))

    def update(self, user_id: str, **changes: Any) -> UserBudgetConfig:
        """Merge ``changes`` into the stored preferences.

        Keys are ``salary``, ``renewal_day`` and ``avatar_url``; values are
        validated before anything is written.
        """
        unknown = set(changes) - set(PREFERENCE_COLUMNS)
        if unknown:
            raise TypeError(f"Unknown preference(s): {', '.join(sorted(unknown))}")
        if "salary" in changes:
            changes["salary"] = validate_salary(changes["salary"])
        if "renewal_day" in changes:
            changes["renewal_day"] = validate_renewal_day(changes["renewal_day"])

        document = self._document(user_id)
        payload = {PREFERENCE_COLUMNS[name]: value for name, value in changes.items()}
        record = self.store.update_document(self.settings.require_table("preferences"), document["id"], payload)
        return config_from_record(record)
