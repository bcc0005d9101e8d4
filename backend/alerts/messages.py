"""
Alert Messages
Human-readable descriptions for triggered alerts.
"""

from typing import Tuple

from .models import AlertRule, Condition, Dimension

MAX_DIGITS = 6


def format_value(value: float, digits: int = 1) -> str:
    """Up to `digits` decimals, trailing zeros dropped (80 -> "80", 80.25 -> "80.2")"""
    text = f"{value:.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_comparison(value: float, threshold: float) -> Tuple[str, str]:
    """
    Format both sides of a strict comparison.

    Adds decimals until the two render differently, so 75.04 against 75
    prints as "75.04" and "75" rather than "75" twice.
    """
    for digits in range(1, MAX_DIGITS + 1):
        value_str = format_value(value, digits)
        threshold_str = format_value(threshold, digits)
        if value_str != threshold_str:
            return value_str, threshold_str
    return repr(float(value)), repr(float(threshold))


def dimension_label(dimension: Dimension) -> str:
    if dimension == Dimension.OVERALL:
        return "Overall sentiment"
    return dimension.value


def describe(rule: AlertRule, value: float) -> str:
    """
    Message for a rule firing with `value`.

    For spike and drop, `value` is the change across the samples,
    not the latest score.
    """
    label = dimension_label(rule.dimension)
    value_str = format_value(value)
    threshold_str = format_value(rule.threshold)
    if rule.condition in (Condition.ABOVE, Condition.BELOW):
        value_str, threshold_str = format_comparison(value, rule.threshold)

    if rule.condition == Condition.ABOVE:
        return f"{label} exceeded threshold: {value_str} > {threshold_str}"
    if rule.condition == Condition.BELOW:
        return f"{label} dropped below threshold: {value_str} < {threshold_str}"
    if rule.condition == Condition.EQUALS:
        return f"{label} reached target level: {value_str} ≈ {threshold_str}"
    if rule.condition == Condition.SPIKE:
        return f"{label} spiked by {value_str} points"
    if rule.condition == Condition.DROP:
        return f"{label} dropped by {value_str} points"
    return f"Alert triggered for {label}"
