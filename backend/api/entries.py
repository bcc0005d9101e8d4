"""
Entries API
Ingestion point for the external scoring service.

Endpoints:
    POST /api/entries          → Ingest a batch of scored entries
    GET  /api/entries          → Recent entries (optionally last N minutes)
    GET  /api/entries/stats    → Buffer statistics
"""

from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, ValidationError

from alerts.models import utc_now
from series import IngestionResult, get_entry_buffer, to_scored_entry

router = APIRouter(prefix="/entries", tags=["Entries"])


class EntryBatch(BaseModel):
    """Batch of entries from the scoring service"""
    entries: List[dict]

    model_config = {
        "json_schema_extra": {
            "example": {
                "entries": [
                    {
                        "timestamp": "2026-10-17T12:00:00Z",
                        "overall_score": 80,
                        "dimension_scores": {"joy": 70, "anger": 30},
                        "text": "Loving the new release",
                    }
                ]
            }
        }
    }


@router.post("", response_model=IngestionResult)
async def ingest_entries(batch: EntryBatch):
    """
    Ingest scored entries in timestamp order.

    Malformed entries and entries older than the latest buffered one
    are counted as errors; the rest are accepted.
    """
    buffer = get_entry_buffer()

    entries = []
    invalid = []
    for index, raw in enumerate(batch.entries):
        try:
            entries.append(to_scored_entry(raw))
        except (ValidationError, ValueError, TypeError) as e:
            invalid.append(f"entry[{index}]: {e}")

    result = buffer.ingest_batch(entries)
    if not invalid:
        return result

    return IngestionResult(
        success=False,
        count=result.count,
        errors=result.errors + len(invalid),
        error_messages=invalid + result.error_messages,
        message=f"Ingested {result.count} entries",
    )


@router.get("")
async def list_entries(
    minutes: Optional[int] = Query(default=None, gt=0),
    limit: int = Query(default=100, gt=0, le=10000),
):
    """Recent entries, oldest first"""
    buffer = get_entry_buffer()
    if minutes:
        entries = buffer.window(utc_now() - timedelta(minutes=minutes))[-limit:]
    else:
        entries = buffer.get(limit)

    return {
        "count": len(entries),
        "entries": [e.model_dump(mode="json") for e in entries],
    }


@router.get("/stats")
async def entry_stats():
    return get_entry_buffer().stats()
