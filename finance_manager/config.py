"""Configuration management for the finance manager.

This module centralizes all configuration values including the hosted
document store credentials, table names, local paths and environment
variable overrides.  Values are read once at import time (after loading a
``.env`` file when present); :func:`load_settings` re-reads the environment
so tests and long-running sessions can pick up changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

try:
    from .exceptions import ConfigurationError
except ImportError:  # pragma: no cover - fallback for direct execution
    from exceptions import ConfigurationError

load_dotenv()

# Base project root - assumes this file is in finance_manager/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directory
DATA_DIR = Path(os.getenv("FINANCE_DATA_DIR", _PROJECT_ROOT / "data"))

# Device-local store for recurring expenses and saved labels
LOCAL_STORE_PATH = Path(
    os.getenv("FINANCE_LOCAL_STORE_PATH", DATA_DIR / "local_store.json")
).resolve()

DEFAULT_TABLES = {
    "expenses": "expenses",
    "incomes": "incomes",
    "monthly_savings": "monthly_savings",
    "preferences": "user_preferences",
}

CURRENCY_SYMBOL = os.getenv("FINANCE_CURRENCY_SYMBOL", "Rs.")


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Settings:
    """Snapshot of the environment driven configuration."""

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    expenses_table: Optional[str] = DEFAULT_TABLES["expenses"]
    incomes_table: Optional[str] = DEFAULT_TABLES["incomes"]
    monthly_savings_table: Optional[str] = DEFAULT_TABLES["monthly_savings"]
    preferences_table: Optional[str] = DEFAULT_TABLES["preferences"]
    user_id: Optional[str] = None
    local_store_path: Path = LOCAL_STORE_PATH

    @property
    def has_remote_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def table(self, name: str) -> Optional[str]:
        """Return the configured table for a logical collection name."""
        return getattr(self, f"{name}_table", None)

    def require_table(self, name: str) -> str:
        """Return the table for ``name`` or raise if it is not configured."""
        table = self.table(name)
        if not table:
            raise ConfigurationError(
                f"The '{name}' collection is not configured. "
                f"Set FINANCE_{name.upper()}_TABLE to enable it."
            )
        return table


def load_settings() -> Settings:
    """Read the current environment into a :class:`Settings` instance.

    An explicitly empty table variable (``FINANCE_INCOMES_TABLE=``) disables
    that collection, which the service reports as "not configured".
    """

    def table_setting(name: str) -> Optional[str]:
        variable = f"FINANCE_{name.upper()}_TABLE"
        if variable in os.environ:
            return _env(variable)
        return DEFAULT_TABLES[name]

    return Settings(
        supabase_url=_env("FINANCE_SUPABASE_URL"),
        supabase_key=_env("FINANCE_SUPABASE_KEY"),
        expenses_table=table_setting("expenses"),
        incomes_table=table_setting("incomes"),
        monthly_savings_table=table_setting("monthly_savings"),
        preferences_table=table_setting("preferences"),
        user_id=_env("FINANCE_USER_ID"),
        local_store_path=Path(
            os.getenv("FINANCE_LOCAL_STORE_PATH", LOCAL_STORE_PATH)
        ).resolve(),
    )
