"""
Scored Entry Models
The data contract between the external scoring service and the engine.

After normalization, the engine only sees ScoredEntry.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime, timezone
import uuid


# Named dimensions every entry may carry (the "overall" score is separate)
DIMENSIONS = ("joy", "sadness", "anger", "fear", "surprise", "love")


# =============================================================================
# ScoredEntry: The Core Data Contract
# =============================================================================

class ScoredEntry(BaseModel):
    """
    One time-series sample produced by the scoring service.

    Immutable once created. Scores use a 0-100 scale by convention.

    Fields:
        timestamp: Aware datetime (naive input is taken as UTC)
        overall_score: Aggregate score
        dimension_scores: Per-dimension scores, keys from DIMENSIONS
        text: Optional source text the entry was scored from
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"entry_{uuid.uuid4().hex[:12]}")
    timestamp: datetime
    overall_score: float
    dimension_scores: Dict[str, float] = Field(default_factory=dict)
    text: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v):
        """Handle various timestamp formats"""
        if isinstance(v, str):
            return datetime.fromisoformat(v.replace("Z", "+00:00"))
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            # Unix timestamp (seconds or milliseconds)
            if v > 1e12:
                return datetime.fromtimestamp(v / 1000, tz=timezone.utc)
            return datetime.fromtimestamp(v, tz=timezone.utc)
        return v

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("dimension_scores")
    @classmethod
    def known_dimensions(cls, v: Dict[str, float]) -> Dict[str, float]:
        unknown = sorted(set(v) - set(DIMENSIONS))
        if unknown:
            raise ValueError(f"Unknown dimensions: {', '.join(unknown)}")
        return v


# =============================================================================
# API Response Models
# =============================================================================

class IngestionResult(BaseModel):
    """Result of entry ingestion"""
    success: bool = True
    count: int = 0
    errors: int = 0
    error_messages: List[str] = []
    message: str = ""


# =============================================================================
# Converters: External → Internal
# =============================================================================

def to_scored_entry(data: dict) -> ScoredEntry:
    """
    Convert an external payload to ScoredEntry.

    This is the NORMALIZATION POINT for the scoring service.

    Handles:
    - timestamp/ts/time field variants
    - overallScore/overall_score/score variants
    - sentiment/dimensionScores/dimension_scores variants
    """
    ts = data.get("timestamp") or data.get("ts") or data.get("time")

    overall = data.get("overall_score")
    if overall is None:
        overall = data.get("overallScore", data.get("score"))

    scores = (
        data.get("dimension_scores")
        or data.get("dimensionScores")
        or data.get("sentiment")
        or {}
    )

    payload = {
        "timestamp": ts,
        "overall_score": overall,
        "dimension_scores": scores,
        "text": data.get("text"),
    }
    if data.get("id"):
        payload["id"] = str(data["id"])

    return ScoredEntry(**payload)
