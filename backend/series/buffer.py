"""
In-Memory Entry Buffer
Bounded, append-only store of scored entries.

Purpose:
- The evaluator reads windows of recent entries every tick
- The scoring service appends through the API

This is READ-OPTIMIZED, NOT DURABLE.
"""

from collections import deque
from datetime import datetime
from typing import Iterable, List, Optional
import threading

from .models import ScoredEntry, IngestionResult


class OutOfOrderEntryError(ValueError):
    """Entry timestamp is older than the latest buffered entry."""

    error_code = "out_of_order_entry"


def select_window(entries: Iterable[ScoredEntry], since: datetime) -> List[ScoredEntry]:
    """Entries with timestamp >= since, oldest first"""
    return [e for e in entries if e.timestamp >= since]


class EntryBuffer:
    """
    Time-ordered buffer of scored entries.

    - Timestamps are monotonically non-decreasing
    - Oldest entries are evicted past maxlen
    - Guarded by a lock: the scheduler thread reads while the API appends

    Usage:
        buffer = EntryBuffer(maxlen=10000)
        buffer.append(entry)
        entries = buffer.snapshot()
    """

    def __init__(self, maxlen: int = 10000):
        self.maxlen = maxlen
        self._data: deque = deque(maxlen=maxlen)
        self._count: int = 0
        self._lock = threading.Lock()

    def append(self, entry: ScoredEntry) -> None:
        """Add single entry; rejects entries older than the latest"""
        with self._lock:
            if self._data and entry.timestamp < self._data[-1].timestamp:
                raise OutOfOrderEntryError(
                    f"Entry {entry.id} at {entry.timestamp.isoformat()} is older than "
                    f"latest entry at {self._data[-1].timestamp.isoformat()}"
                )
            self._data.append(entry)
            self._count += 1

    def ingest_batch(self, entries: List[ScoredEntry]) -> IngestionResult:
        if not entries:
            return IngestionResult(success=True, count=0, message="No entries")

        errors = []
        for entry in entries:
            try:
                self.append(entry)
            except OutOfOrderEntryError as e:
                errors.append(str(e))

        accepted = len(entries) - len(errors)
        return IngestionResult(
            success=not errors,
            count=accepted,
            errors=len(errors),
            error_messages=errors,
            message=f"Ingested {accepted} entries",
        )

    def snapshot(self) -> List[ScoredEntry]:
        """Consistent copy of every buffered entry (oldest first)"""
        with self._lock:
            return list(self._data)

    def window(self, since: datetime) -> List[ScoredEntry]:
        return select_window(self.snapshot(), since)

    def get(self, limit: int = None) -> List[ScoredEntry]:
        """Get entries (most recent last)"""
        data = self.snapshot()
        if limit:
            return data[-limit:]
        return data

    def get_latest(self) -> Optional[ScoredEntry]:
        with self._lock:
            return self._data[-1] if self._data else None

    def count(self) -> int:
        with self._lock:
            return len(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._count = 0

    def stats(self) -> dict:
        latest = self.get_latest()
        return {
            "total_ingested": self._count,
            "buffered": self.count(),
            "maxlen": self.maxlen,
            "latest_timestamp": latest.timestamp.isoformat() if latest else None,
        }


_buffer: Optional[EntryBuffer] = None


def get_entry_buffer() -> EntryBuffer:
    """Get singleton entry buffer"""
    global _buffer
    if _buffer is None:
        from config import get_settings
        _buffer = EntryBuffer(maxlen=get_settings().buffer_size)
    return _buffer
