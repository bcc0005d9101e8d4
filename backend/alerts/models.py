"""
Alert Models
Data structures for alert rules and triggered alerts.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from enum import Enum
import math
import uuid

from .exceptions import RuleValidationError


# =============================================================================
# Engine Constants
# =============================================================================

# Minimum time between two triggers of the same rule, engine-wide
COOLDOWN_PERIOD = timedelta(minutes=30)

# |value - threshold| must stay below this for the equals condition (0-100 scale)
EQUALS_TOLERANCE = 5.0

DEFAULT_TICK_SECONDS = 30


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO string / datetime -> aware datetime (naive is taken as UTC)"""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# Enums
# =============================================================================

class Dimension(str, Enum):
    """Scored dimension a rule watches"""
    OVERALL = "overall"
    JOY = "joy"
    SADNESS = "sadness"
    ANGER = "anger"
    FEAR = "fear"
    SURPRISE = "surprise"
    LOVE = "love"


# Dimensions carried in ScoredEntry.dimension_scores
NAMED_DIMENSIONS = frozenset(d.value for d in Dimension if d is not Dimension.OVERALL)


class Condition(str, Enum):
    """Rule conditions"""
    ABOVE = "above"
    BELOW = "below"
    EQUALS = "equals"  # within EQUALS_TOLERANCE
    SPIKE = "spike"    # newest - oldest > threshold
    DROP = "drop"      # oldest - newest > threshold


class Priority(str, Enum):
    """Alert urgency, passed through to the alert"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def _coerce_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise RuleValidationError(f"Invalid {field_name}: {value!r}. Use: {allowed}")


# =============================================================================
# AlertRule
# =============================================================================

# Fields an update() patch may touch; bookkeeping belongs to the evaluator
CONFIG_FIELDS = frozenset({
    "name",
    "enabled",
    "dimension",
    "condition",
    "threshold",
    "time_window_minutes",
    "consecutive_count",
    "priority",
})


@dataclass
class AlertRule:
    """
    User-defined monitoring rule.

    Example:
        "Alert me when anger spikes by more than 20 points across
         the last 2 entries of the past hour"
    """
    id: str
    name: str
    dimension: Dimension = Dimension.OVERALL
    condition: Condition = Condition.ABOVE
    threshold: float = 75.0
    time_window_minutes: int = 60
    consecutive_count: int = 1
    priority: Priority = Priority.MEDIUM
    enabled: bool = True
    last_triggered: Optional[datetime] = None
    trigger_count: int = 0
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if not self.id:
            self.id = f"rule_{uuid.uuid4().hex[:8]}"
        self.dimension = _coerce_enum(Dimension, self.dimension, "dimension")
        self.condition = _coerce_enum(Condition, self.condition, "condition")
        self.priority = _coerce_enum(Priority, self.priority, "priority")

    def validate(self) -> "AlertRule":
        """Raise RuleValidationError unless the rule can be evaluated"""
        if not isinstance(self.name, str) or not self.name.strip():
            raise RuleValidationError("Rule name must not be empty")

        if not isinstance(self.enabled, bool):
            raise RuleValidationError(f"enabled must be true or false, got {self.enabled!r}")

        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, float)):
            raise RuleValidationError(f"threshold must be a number, got {self.threshold!r}")
        if not math.isfinite(self.threshold) or self.threshold <= 0:
            raise RuleValidationError(f"threshold must be positive, got {self.threshold}")

        for name in ("time_window_minutes", "consecutive_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise RuleValidationError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise RuleValidationError(f"{name} must be positive, got {value}")

        return self

    @property
    def window(self) -> timedelta:
        return timedelta(minutes=self.time_window_minutes)

    def cooldown_elapsed(self, now: datetime) -> bool:
        """Check if the engine-wide cooldown has elapsed since the last trigger"""
        if self.last_triggered is None:
            return True
        return now - self.last_triggered >= COOLDOWN_PERIOD

    def copy(self, **changes) -> "AlertRule":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "dimension": self.dimension.value,
            "condition": self.condition.value,
            "threshold": self.threshold,
            "time_window_minutes": self.time_window_minutes,
            "consecutive_count": self.consecutive_count,
            "priority": self.priority.value,
            "enabled": self.enabled,
            "last_triggered": self.last_triggered.isoformat() if self.last_triggered else None,
            "trigger_count": self.trigger_count,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlertRule":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            dimension=data.get("dimension", Dimension.OVERALL.value),
            condition=data.get("condition", Condition.ABOVE.value),
            threshold=data.get("threshold", 75.0),
            time_window_minutes=data.get("time_window_minutes", 60),
            consecutive_count=data.get("consecutive_count", 1),
            priority=data.get("priority", Priority.MEDIUM.value),
            enabled=data.get("enabled", True),
            last_triggered=parse_datetime(data.get("last_triggered")),
            trigger_count=int(data.get("trigger_count", 0)),
            created_at=parse_datetime(data["created_at"]) if data.get("created_at") else utc_now(),
        )


# =============================================================================
# TriggeredAlert
# =============================================================================

@dataclass
class TriggeredAlert:
    """
    A fired alert.

    Rule name is copied at creation so renaming or deleting the rule
    later leaves history intact. Only `acknowledged` ever changes.
    """
    id: str
    rule_id: str
    rule_name: str
    timestamp: datetime
    dimension: Dimension
    value: float
    threshold: float
    condition: Condition
    priority: Priority
    message: str
    acknowledged: bool = False

    def __post_init__(self):
        if not self.id:
            self.id = f"alert_{uuid.uuid4().hex[:12]}"
        self.dimension = Dimension(self.dimension)
        self.condition = Condition(self.condition)
        self.priority = Priority(self.priority)

    def copy(self, **changes) -> "TriggeredAlert":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "timestamp": self.timestamp.isoformat(),
            "dimension": self.dimension.value,
            "value": self.value,
            "threshold": self.threshold,
            "condition": self.condition.value,
            "priority": self.priority.value,
            "message": self.message,
            "acknowledged": self.acknowledged,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggeredAlert":
        return cls(
            id=data.get("id", ""),
            rule_id=data["rule_id"],
            rule_name=data["rule_name"],
            timestamp=parse_datetime(data["timestamp"]),
            dimension=data["dimension"],
            value=float(data["value"]),
            threshold=float(data["threshold"]),
            condition=data["condition"],
            priority=data["priority"],
            message=data["message"],
            acknowledged=bool(data.get("acknowledged", False)),
        )

    @classmethod
    def from_rule(cls, rule: AlertRule, value: float, message: str, now: datetime) -> "TriggeredAlert":
        """Create alert from a triggered rule"""
        return cls(
            id="",
            rule_id=rule.id,
            rule_name=rule.name,
            timestamp=now,
            dimension=rule.dimension,
            value=value,
            threshold=rule.threshold,
            condition=rule.condition,
            priority=rule.priority,
            message=message,
        )
