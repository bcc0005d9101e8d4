"""
Database Layer
Persistence for rules, alerts and the global switch.
"""

from .sqlite import (
    SQLiteStorage,
    get_storage,
    SCHEMA_VERSION,
)

__all__ = [
    "SQLiteStorage",
    "get_storage",
    "SCHEMA_VERSION",
]
