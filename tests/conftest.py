"""
Pytest Configuration and Fixtures.

Provides a temporary SQLite database, a controllable clock and
factories for entries and rules.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Keep the API from starting the background scheduler on import
os.environ.setdefault("ALERTS_SCHEDULER_AUTOSTART", "false")

from alerts import (  # noqa: E402
    AlertEngine,
    AlertRule,
    AlertStore,
    GlobalSwitch,
    RuleStore,
    StorageError,
)
from db import SQLiteStorage  # noqa: E402
from series import EntryBuffer, ScoredEntry  # noqa: E402


T0 = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock the tests move by hand."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)
        return self.now


class FlakyStorage:
    """Wraps a storage backend and fails writes on demand."""

    def __init__(self, inner):
        self.inner = inner
        self.fail_saves = False
        self.fail_collections = set()
        self.saves = 0

    def load(self, name, default=None):
        return self.inner.load(name, default)

    def save(self, name, payload):
        if self.fail_saves or name in self.fail_collections:
            raise StorageError("disk unavailable")
        self.saves += 1
        self.inner.save(name, payload)


# ============================================================================
# STORAGE / STATE FIXTURES
# ============================================================================


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "alerts.db")


@pytest.fixture
def storage(db_path):
    return FlakyStorage(SQLiteStorage(db_path))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def buffer():
    return EntryBuffer(maxlen=1000)


@pytest.fixture
def rule_store(storage):
    return RuleStore(storage)


@pytest.fixture
def alert_store(storage):
    return AlertStore(storage)


@pytest.fixture
def switch(storage):
    return GlobalSwitch(storage)


@pytest.fixture
def engine(rule_store, alert_store, switch, buffer, clock):
    return AlertEngine(rule_store, alert_store, switch, buffer, clock=clock)


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def make_entry():
    def _make(at: datetime = T0, overall: float = 50.0, **dimensions) -> ScoredEntry:
        return ScoredEntry(
            timestamp=at,
            overall_score=overall,
            dimension_scores=dimensions,
        )
    return _make


@pytest.fixture
def make_rule():
    def _make(**overrides) -> AlertRule:
        fields = {
            "id": "",
            "name": "Test rule",
            "dimension": "overall",
            "condition": "above",
            "threshold": 75,
            "time_window_minutes": 60,
            "consecutive_count": 1,
            "priority": "medium",
        }
        fields.update(overrides)
        return AlertRule(**fields)
    return _make
