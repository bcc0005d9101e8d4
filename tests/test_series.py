"""
Tests for scored entries and the in-memory entry buffer.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from series import (
    EntryBuffer,
    OutOfOrderEntryError,
    ScoredEntry,
    select_window,
    to_scored_entry,
)

from conftest import T0


class TestScoredEntry:

    def test_parses_iso_z_timestamp(self):
        entry = ScoredEntry(timestamp="2026-10-17T12:00:00Z", overall_score=80)

        assert entry.timestamp == T0
        assert entry.id.startswith("entry_")

    def test_parses_unix_seconds_and_milliseconds(self):
        seconds = T0.timestamp()

        assert ScoredEntry(timestamp=seconds, overall_score=1).timestamp == T0
        assert ScoredEntry(timestamp=seconds * 1000, overall_score=1).timestamp == T0

    def test_naive_timestamp_is_utc(self):
        entry = ScoredEntry(timestamp=datetime(2026, 10, 17, 12, 0), overall_score=1)

        assert entry.timestamp == T0
        assert entry.timestamp.tzinfo is not None

    def test_unknown_dimension_rejected(self):
        with pytest.raises(ValidationError):
            ScoredEntry(timestamp=T0, overall_score=1, dimension_scores={"boredom": 4})

    def test_entries_are_immutable(self, make_entry):
        entry = make_entry(T0, overall=10)

        with pytest.raises(ValidationError):
            entry.overall_score = 99


class TestToScoredEntry:

    def test_snake_case_payload(self):
        entry = to_scored_entry({
            "id": "abc",
            "timestamp": "2026-10-17T12:00:00+00:00",
            "overall_score": 71.5,
            "dimension_scores": {"joy": 60},
            "text": "great day",
        })

        assert entry.id == "abc"
        assert entry.overall_score == 71.5
        assert entry.dimension_scores == {"joy": 60}
        assert entry.text == "great day"

    def test_camel_case_payload(self):
        entry = to_scored_entry({
            "ts": "2026-10-17T12:00:00Z",
            "overallScore": 0,
            "dimensionScores": {"anger": 12},
        })

        assert entry.timestamp == T0
        assert entry.overall_score == 0
        assert entry.dimension_scores == {"anger": 12}

    def test_sentiment_alias(self):
        entry = to_scored_entry({"time": T0.isoformat(), "score": 40, "sentiment": {"fear": 3}})

        assert entry.overall_score == 40
        assert entry.dimension_scores == {"fear": 3}

    def test_missing_score_is_invalid(self):
        with pytest.raises(ValidationError):
            to_scored_entry({"timestamp": T0.isoformat()})


class TestEntryBuffer:

    def test_append_keeps_order(self, buffer, make_entry):
        first = make_entry(T0)
        second = make_entry(T0)
        third = make_entry(T0 + timedelta(seconds=1))
        for entry in (first, second, third):
            buffer.append(entry)

        assert buffer.snapshot() == [first, second, third]
        assert buffer.get_latest() == third
        assert buffer.get(limit=2) == [second, third]

    def test_out_of_order_entry_rejected(self, buffer, make_entry):
        buffer.append(make_entry(T0))

        with pytest.raises(OutOfOrderEntryError):
            buffer.append(make_entry(T0 - timedelta(seconds=1)))

        assert buffer.count() == 1

    def test_ingest_batch_reports_rejections(self, buffer, make_entry):
        result = buffer.ingest_batch([
            make_entry(T0),
            make_entry(T0 - timedelta(minutes=1)),
            make_entry(T0 + timedelta(minutes=1)),
        ])

        assert result.success is False
        assert result.count == 2
        assert result.errors == 1
        assert len(result.error_messages) == 1

    def test_empty_batch(self, buffer):
        result = buffer.ingest_batch([])

        assert result.success is True
        assert result.count == 0

    def test_evicts_oldest_past_maxlen(self, make_entry):
        small = EntryBuffer(maxlen=2)
        entries = [make_entry(T0 + timedelta(minutes=i)) for i in range(3)]
        for entry in entries:
            small.append(entry)

        assert small.snapshot() == entries[1:]
        assert small.stats()["total_ingested"] == 3
        assert small.stats()["buffered"] == 2

    def test_window_is_inclusive(self, buffer, make_entry):
        old = make_entry(T0 - timedelta(minutes=61))
        edge = make_entry(T0 - timedelta(minutes=60))
        recent = make_entry(T0)
        for entry in (old, edge, recent):
            buffer.append(entry)

        assert buffer.window(T0 - timedelta(minutes=60)) == [edge, recent]
        assert select_window([old, edge, recent], T0 + timedelta(seconds=1)) == []

    def test_clear(self, buffer, make_entry):
        buffer.append(make_entry(T0))
        buffer.clear()

        assert buffer.count() == 0
        assert buffer.get_latest() is None
        # Older entries are accepted again after a clear
        buffer.append(make_entry(datetime(2020, 1, 1, tzinfo=timezone.utc)))
