# budget_tracker/store/__init__.py
from budget_tracker.store.base import (
    ALERTS,
    BUDGETS,
    CATEGORIES,
    TRANSACTIONS,
    BaseStore,
    LiveQuery,
)
from budget_tracker.store.memory import MemoryStore
from budget_tracker.store.sqlite import SQLiteStore

__all__ = [
    "ALERTS",
    "BUDGETS",
    "CATEGORIES",
    "TRANSACTIONS",
    "BaseStore",
    "LiveQuery",
    "MemoryStore",
    "SQLiteStore",
]
