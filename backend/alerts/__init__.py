"""
Alert System
Threshold rules that watch the scored entry series.

Structure:
    alerts/
    ├── models.py      → AlertRule, TriggeredAlert, enums, constants
    ├── conditions.py  → sample selection + condition semantics
    ├── messages.py    → describe()
    ├── store.py       → RuleStore, AlertStore, GlobalSwitch
    └── engine.py      → AlertEngine (one evaluation pass per tick)

Usage:
    from alerts import get_alert_engine, AlertRule, Condition, Dimension

    engine = get_alert_engine()

    engine.rules.create(AlertRule(
        id="",
        name="Anger spike",
        dimension=Dimension.ANGER,
        condition=Condition.SPIKE,
        threshold=20,
        consecutive_count=2,
    ))

    # Called by the scheduler every tick
    triggered = engine.evaluate()

    history = engine.alerts.list(limit=20)
"""

from .exceptions import (
    AlertEngineError,
    RuleValidationError,
    RuleNotFoundError,
    AlertNotFoundError,
    EvaluationError,
    StorageError,
)

from .models import (
    AlertRule,
    TriggeredAlert,
    Dimension,
    Condition,
    Priority,
    COOLDOWN_PERIOD,
    EQUALS_TOLERANCE,
    DEFAULT_TICK_SECONDS,
)

from .messages import describe

from .store import (
    RuleStore,
    AlertStore,
    GlobalSwitch,
    get_rule_store,
    get_alert_store,
    get_global_switch,
)

from .engine import (
    AlertEngine,
    get_alert_engine,
)

__all__ = [
    # Errors
    "AlertEngineError",
    "RuleValidationError",
    "RuleNotFoundError",
    "AlertNotFoundError",
    "EvaluationError",
    "StorageError",
    # Models
    "AlertRule",
    "TriggeredAlert",
    "Dimension",
    "Condition",
    "Priority",
    "COOLDOWN_PERIOD",
    "EQUALS_TOLERANCE",
    "DEFAULT_TICK_SECONDS",
    "describe",
    # Stores
    "RuleStore",
    "AlertStore",
    "GlobalSwitch",
    "get_rule_store",
    "get_alert_store",
    "get_global_switch",
    # Engine
    "AlertEngine",
    "get_alert_engine",
]
