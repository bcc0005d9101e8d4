"""
Alert State Stores
Rule Store, Alert Store and Global Switch.

Every store keeps its collection in memory and writes through to a
storage backend (anything with load(name, default) / save(name, payload),
normally db.SQLiteStorage). A mutation is applied to a copy, persisted,
and only then swapped in, so a failed write leaves the store unchanged.
"""

import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from .exceptions import AlertNotFoundError, RuleNotFoundError, RuleValidationError
from .models import AlertRule, TriggeredAlert, CONFIG_FIELDS

logger = structlog.get_logger(__name__)

RULES_COLLECTION = "rules"
ALERTS_COLLECTION = "alerts"
SWITCH_COLLECTION = "global_switch"


# =============================================================================
# Rule Store
# =============================================================================

class RuleStore:
    """Rule definitions plus the evaluator's trigger bookkeeping."""

    def __init__(self, storage: Any):
        self._storage = storage
        self._lock = threading.RLock()
        self._rules: Dict[str, AlertRule] = self._load()

    def _load(self) -> Dict[str, AlertRule]:
        data = self._storage.load(RULES_COLLECTION, [])
        rules = [AlertRule.from_dict(item) for item in data]
        return {rule.id: rule for rule in rules}

    def _commit(self, rules: Dict[str, AlertRule]) -> None:
        self._storage.save(RULES_COLLECTION, [r.to_dict() for r in rules.values()])
        self._rules = rules

    def _require(self, rule_id: str) -> AlertRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def create(self, rule: AlertRule) -> AlertRule:
        rule.validate()
        with self._lock:
            if rule.id in self._rules:
                raise RuleValidationError(f"Rule id already exists: {rule.id}")
            rules = dict(self._rules)
            rules[rule.id] = rule.copy()
            self._commit(rules)
        logger.info("rule_created", rule_id=rule.id, name=rule.name,
                    dimension=rule.dimension.value, condition=rule.condition.value)
        return rule.copy()

    def update(self, rule_id: str, patch: Dict[str, Any]) -> AlertRule:
        """Apply configuration changes; bookkeeping fields cannot be patched"""
        invalid = sorted(set(patch) - CONFIG_FIELDS)
        if invalid:
            raise RuleValidationError(f"Fields cannot be updated: {', '.join(invalid)}")

        with self._lock:
            updated = self._require(rule_id).copy(**patch).validate()
            rules = dict(self._rules)
            rules[rule_id] = updated
            self._commit(rules)
        logger.info("rule_updated", rule_id=rule_id, fields=sorted(patch))
        return updated.copy()

    def delete(self, rule_id: str) -> None:
        with self._lock:
            self._require(rule_id)
            rules = dict(self._rules)
            del rules[rule_id]
            self._commit(rules)
        logger.info("rule_deleted", rule_id=rule_id)

    def set_enabled(self, rule_id: str, enabled: bool) -> AlertRule:
        return self.update(rule_id, {"enabled": bool(enabled)})

    def get(self, rule_id: str) -> AlertRule:
        with self._lock:
            return self._require(rule_id).copy()

    def list(self) -> List[AlertRule]:
        """Copies of every rule in creation order"""
        with self._lock:
            return [rule.copy() for rule in self._rules.values()]

    def list_enabled(self) -> List[AlertRule]:
        return [rule for rule in self.list() if rule.enabled]

    def record_trigger(
        self,
        rule_id: str,
        expected_last_triggered: Optional[datetime],
        now: datetime,
    ) -> Optional[AlertRule]:
        """
        Compare-and-set the trigger bookkeeping.

        Succeeds only if the rule still exists and its last_triggered
        equals the value the caller evaluated against. Returns the
        updated rule, or None when the claim lost.
        """
        with self._lock:
            current = self._rules.get(rule_id)
            if current is None or current.last_triggered != expected_last_triggered:
                return None
            updated = current.copy(last_triggered=now, trigger_count=current.trigger_count + 1)
            rules = dict(self._rules)
            rules[rule_id] = updated
            self._commit(rules)
            return updated.copy()

    def release_trigger(
        self,
        rule_id: str,
        claimed_at: datetime,
        previous_last_triggered: Optional[datetime],
        previous_trigger_count: int,
    ) -> bool:
        """
        Undo a record_trigger claim whose alert could not be stored.

        Only restores the bookkeeping if last_triggered still holds the
        claim made at `claimed_at`. Returns True when the claim was undone.
        """
        with self._lock:
            current = self._rules.get(rule_id)
            if current is None or current.last_triggered != claimed_at:
                return False
            restored = current.copy(
                last_triggered=previous_last_triggered,
                trigger_count=previous_trigger_count,
            )
            rules = dict(self._rules)
            rules[rule_id] = restored
            self._commit(rules)
        logger.info("trigger_released", rule_id=rule_id)
        return True

    def reset_cooldowns(self) -> int:
        """Forget last_triggered on every rule; returns rules touched"""
        with self._lock:
            rules = {
                rule_id: rule.copy(last_triggered=None)
                for rule_id, rule in self._rules.items()
            }
            touched = sum(1 for r in self._rules.values() if r.last_triggered is not None)
            self._commit(rules)
        return touched

    def __len__(self) -> int:
        return len(self._rules)


# =============================================================================
# Alert Store
# =============================================================================

class AlertStore:
    """Append-only log of triggered alerts with acknowledge/clear lifecycle."""

    def __init__(self, storage: Any):
        self._storage = storage
        self._lock = threading.RLock()
        # Oldest first
        self._alerts: List[TriggeredAlert] = [
            TriggeredAlert.from_dict(item)
            for item in self._storage.load(ALERTS_COLLECTION, [])
        ]

    def _commit(self, alerts: List[TriggeredAlert]) -> None:
        self._storage.save(ALERTS_COLLECTION, [a.to_dict() for a in alerts])
        self._alerts = alerts

    def append(self, alert: TriggeredAlert) -> TriggeredAlert:
        with self._lock:
            self._commit(self._alerts + [alert])
        return alert

    def acknowledge(self, alert_id: str) -> TriggeredAlert:
        """Mark alert acknowledged; acknowledging twice changes nothing"""
        with self._lock:
            for index, alert in enumerate(self._alerts):
                if alert.id != alert_id:
                    continue
                if alert.acknowledged:
                    return alert.copy()
                updated = alert.copy(acknowledged=True)
                alerts = list(self._alerts)
                alerts[index] = updated
                self._commit(alerts)
                return updated.copy()
        raise AlertNotFoundError(alert_id)

    def clear_all(self) -> int:
        with self._lock:
            removed = len(self._alerts)
            self._commit([])
        logger.info("alerts_cleared", removed=removed)
        return removed

    def clear_acknowledged(self) -> int:
        with self._lock:
            kept = [a for a in self._alerts if not a.acknowledged]
            removed = len(self._alerts) - len(kept)
            self._commit(kept)
        logger.info("acknowledged_alerts_cleared", removed=removed)
        return removed

    def get(self, alert_id: str) -> TriggeredAlert:
        with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id:
                    return alert.copy()
        raise AlertNotFoundError(alert_id)

    def list(self, limit: int = None, unacknowledged_only: bool = False) -> List[TriggeredAlert]:
        """Alerts newest first"""
        with self._lock:
            alerts = [
                a.copy()
                for a in reversed(self._alerts)
                if not (unacknowledged_only and a.acknowledged)
            ]
        if limit:
            return alerts[:limit]
        return alerts

    def unacknowledged_count(self) -> int:
        with self._lock:
            return sum(1 for a in self._alerts if not a.acknowledged)

    def __len__(self) -> int:
        return len(self._alerts)


# =============================================================================
# Global Switch
# =============================================================================

class GlobalSwitch:
    """Engine-wide on/off toggle (on by default)."""

    def __init__(self, storage: Any, default: bool = True):
        self._storage = storage
        self._lock = threading.Lock()
        data = self._storage.load(SWITCH_COLLECTION, {"enabled": default})
        self._enabled = bool(data.get("enabled", default))

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set(self, enabled: bool) -> bool:
        with self._lock:
            self._storage.save(SWITCH_COLLECTION, {"enabled": bool(enabled)})
            self._enabled = bool(enabled)
        logger.info("global_switch_set", enabled=self._enabled)
        return self._enabled

    def toggle(self) -> bool:
        with self._lock:
            target = not self._enabled
        return self.set(target)


# =============================================================================
# Singletons
# =============================================================================

_rule_store: Optional[RuleStore] = None
_alert_store: Optional[AlertStore] = None
_global_switch: Optional[GlobalSwitch] = None


def get_rule_store() -> RuleStore:
    global _rule_store
    if _rule_store is None:
        from db import get_storage
        _rule_store = RuleStore(get_storage())
    return _rule_store


def get_alert_store() -> AlertStore:
    global _alert_store
    if _alert_store is None:
        from db import get_storage
        _alert_store = AlertStore(get_storage())
    return _alert_store


def get_global_switch() -> GlobalSwitch:
    global _global_switch
    if _global_switch is None:
        from db import get_storage
        _global_switch = GlobalSwitch(get_storage())
    return _global_switch
