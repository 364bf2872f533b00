"""Device-local persistence for recurring expenses and saved labels.

Only these two convenience lists live on the device; transactional records
(expenses, incomes, snapshots) always go through the hosted store.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

try:
    from .config import LOCAL_STORE_PATH
except ImportError:  # pragma: no cover - fallback for direct execution
    from config import LOCAL_STORE_PATH

RECURRING_KEY = "recurring_expenses"
LABELS_KEY = "saved_labels"
DEFAULT_STORE: Dict[str, List[Dict[str, Any]]] = {
    RECURRING_KEY: [],
    LABELS_KEY: [],
}


class LocalListStore:
    """Key -> list-of-dicts store backed by one JSON file."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path or LOCAL_STORE_PATH)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def read_list(self, key: str) -> List[Dict[str, Any]]:
        items = self._load().get(key)
        if not isinstance(items, list):
            return list(DEFAULT_STORE.get(key, []))
        return [item for item in items if isinstance(item, dict) and item.get("id")]

    def write_list(self, key: str, items: List[Dict[str, Any]]) -> None:
        data = self._load()
        data[key] = list(items)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, sort_keys=True)
