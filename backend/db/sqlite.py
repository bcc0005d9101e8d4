"""
SQLite Storage
Persistent key-value storage for the engine's state collections.

Responsibilities:
- Store named collections (rules, alerts, global_switch) as JSON
- Stamp every collection with a schema version
- Surface any database failure as StorageError

NOT responsible for:
- Validation (done by the stores)
- Business logic (engine handles this)
"""

import json
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog

from alerts.exceptions import StorageError

logger = structlog.get_logger(__name__)

SCHEMA_VERSION = 1

# version -> function upgrading a payload from that version to the next
MIGRATIONS: Dict[int, Callable[[Any], Any]] = {}


class SQLiteStorage:
    """
    SQLite persistence for engine state.

    Tables:
        - collections: one row per named collection
          (name, schema_version, payload JSON, updated_at)
    """

    def __init__(self, db_path: str = "data/alerts.db"):
        self.db_path = db_path
        self._ensure_directory()
        self._init_schema()

    def _ensure_directory(self):
        """Create data directory"""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _connection(self):
        """Connection that commits on success and maps errors to StorageError"""
        try:
            with closing(sqlite3.connect(self.db_path)) as conn:
                with conn:
                    yield conn
        except sqlite3.Error as e:
            logger.error("storage_error", db_path=self.db_path, error=str(e))
            raise StorageError(f"Storage unavailable: {e}", cause=e) from e

    def _init_schema(self):
        """Initialize database schema"""
        with self._connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS collections (
                    name TEXT PRIMARY KEY,
                    schema_version INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
            """)

    # =========================================================================
    # Read / Write
    # =========================================================================

    def load(self, name: str, default: Any = None) -> Any:
        """Read a collection payload, or default if never saved"""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT schema_version, payload FROM collections WHERE name = ?",
                [name],
            ).fetchone()

        if row is None:
            return default

        version, payload = row
        if version > SCHEMA_VERSION:
            raise StorageError(
                f"Collection '{name}' has schema version {version}, "
                f"this build supports up to {SCHEMA_VERSION}"
            )

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise StorageError(f"Collection '{name}' is corrupted: {e}", cause=e) from e

        return self._migrate(name, version, data)

    def _migrate(self, name: str, version: int, data: Any) -> Any:
        """Upgrade a payload written by an older schema, one version at a time"""
        while version < SCHEMA_VERSION:
            step = MIGRATIONS.get(version)
            if step is None:
                raise StorageError(
                    f"Collection '{name}' has schema version {version} with no migration path"
                )
            data = step(data)
            version += 1
            logger.info("collection_migrated", collection=name, schema_version=version)
        return data

    def save(self, name: str, payload: Any) -> None:
        """Replace a collection payload"""
        data = json.dumps(payload)
        with self._connection() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO collections
                   (name, schema_version, payload, updated_at)
                   VALUES (?, ?, ?, ?)""",
                [name, SCHEMA_VERSION, data, datetime.now(timezone.utc).isoformat()],
            )

    def delete(self, name: str) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM collections WHERE name = ?", [name])

    def collections(self) -> List[str]:
        with self._connection() as conn:
            rows = conn.execute("SELECT name FROM collections ORDER BY name").fetchall()
        return [row[0] for row in rows]

    def get_stats(self) -> dict:
        """Get storage statistics"""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT name, schema_version, updated_at FROM collections ORDER BY name"
            ).fetchall()

        return {
            "db_path": self.db_path,
            "schema_version": SCHEMA_VERSION,
            "collections": {
                name: {"schema_version": version, "updated_at": updated_at}
                for name, version, updated_at in rows
            },
        }

    def clear(self) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM collections")


# =============================================================================
# Singleton
# =============================================================================

_storage: Optional[SQLiteStorage] = None


def get_storage() -> SQLiteStorage:
    """Get singleton storage instance"""
    global _storage
    if _storage is None:
        from config import get_settings
        _storage = SQLiteStorage(get_settings().db_path)
    return _storage
