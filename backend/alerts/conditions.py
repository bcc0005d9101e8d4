"""
Condition Logic
Sample selection, value extraction and condition semantics.

    above   every value > threshold
    below   every value < threshold
    equals  every |value - threshold| < EQUALS_TOLERANCE
    spike   newest - oldest > threshold   (needs 2+ values)
    drop    oldest - newest > threshold   (needs 2+ values)
"""

import math
from typing import List, Optional, Sequence

from series import ScoredEntry

from .exceptions import EvaluationError
from .models import AlertRule, Condition, Dimension, EQUALS_TOLERANCE


def extract_value(entry: ScoredEntry, dimension: Dimension) -> float:
    if dimension == Dimension.OVERALL:
        return entry.overall_score
    return entry.dimension_scores[dimension.value]


def sample_values(rule: AlertRule, window: Sequence[ScoredEntry]) -> Optional[List[float]]:
    """
    Values of the last `consecutive_count` entries in the window, oldest first.

    Returns None when the window holds fewer entries than required.
    Raises EvaluationError when an entry lacks the dimension or holds
    a non-finite score.
    """
    if len(window) < rule.consecutive_count:
        return None

    values = []
    for entry in window[-rule.consecutive_count:]:
        try:
            value = float(extract_value(entry, rule.dimension))
        except (KeyError, TypeError, ValueError) as e:
            raise EvaluationError(
                rule.id,
                f"Entry {entry.id} has no usable '{rule.dimension.value}' score",
                cause=e,
            ) from e
        if not math.isfinite(value):
            raise EvaluationError(
                rule.id,
                f"Entry {entry.id} has non-finite '{rule.dimension.value}' score: {value}",
            )
        values.append(value)
    return values


def condition_holds(condition: Condition, values: Sequence[float], threshold: float) -> bool:
    if not values:
        return False

    if condition == Condition.ABOVE:
        return all(v > threshold for v in values)
    if condition == Condition.BELOW:
        return all(v < threshold for v in values)
    if condition == Condition.EQUALS:
        return all(abs(v - threshold) < EQUALS_TOLERANCE for v in values)
    if condition == Condition.SPIKE:
        return len(values) >= 2 and values[-1] - values[0] > threshold
    if condition == Condition.DROP:
        return len(values) >= 2 and values[0] - values[-1] > threshold
    return False


def described_value(condition: Condition, values: Sequence[float]) -> float:
    """Value shown in the alert message: the change for spike/drop, else the latest"""
    if condition == Condition.SPIKE:
        return values[-1] - values[0]
    if condition == Condition.DROP:
        return values[0] - values[-1]
    return values[-1]
