"""
Time-Series Source
Scored entries pushed in by the external scoring service.

Exports:
    Models: ScoredEntry, IngestionResult, DIMENSIONS
    Buffer: EntryBuffer, get_entry_buffer, select_window
    Converters: to_scored_entry
"""

from .models import (
    ScoredEntry,
    IngestionResult,
    DIMENSIONS,
    to_scored_entry,
)

from .buffer import (
    EntryBuffer,
    OutOfOrderEntryError,
    get_entry_buffer,
    select_window,
)

__all__ = [
    # Models
    "ScoredEntry",
    "IngestionResult",
    "DIMENSIONS",
    "to_scored_entry",
    # Buffer
    "EntryBuffer",
    "OutOfOrderEntryError",
    "get_entry_buffer",
    "select_window",
]
