from datetime import datetime
from typing import Callable, Dict, List, Optional, Any
import threading

import structlog

from series import EntryBuffer, ScoredEntry, select_window

from .conditions import sample_values, condition_holds, described_value
from .exceptions import EvaluationError, StorageError
from .messages import describe
from .models import AlertRule, TriggeredAlert, utc_now
from .store import RuleStore, AlertStore, GlobalSwitch

logger = structlog.get_logger(__name__)

AlertListener = Callable[[TriggeredAlert], None]


class AlertEngine:
    """
    Evaluates enabled rules against the entry buffer, one pass per tick.

    A pass uses a single `now` and a single snapshot of rules and entries.
    Passes are serialized, and each trigger is claimed on the rule with a
    compare-and-set on last_triggered before the alert is appended.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        alert_store: AlertStore,
        switch: GlobalSwitch,
        source: EntryBuffer,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.rules = rule_store
        self.alerts = alert_store
        self.switch = switch
        self.source = source
        self._clock = clock
        self._pass_lock = threading.Lock()
        self._listeners: List[AlertListener] = []
        self._stats = {
            "passes": 0,
            "skipped_passes": 0,
            "aborted_passes": 0,
            "rules_evaluated": 0,
            "triggers": 0,
            "suppressed": 0,
            "insufficient_data": 0,
            "evaluation_errors": 0,
            "last_pass_at": None,
            "start_time": utc_now(),
        }

    def evaluate(self, now: Optional[datetime] = None) -> List[TriggeredAlert]:
        """Run one evaluation pass; returns alerts raised, in firing order"""
        triggered: List[TriggeredAlert] = []
        with self._pass_lock:
            if not self.switch.enabled:
                self._stats["skipped_passes"] += 1
                logger.debug("evaluation_pass_skipped", reason="global_switch_off")
                return []

            now = now or self._clock()
            try:
                rules = self.rules.list_enabled()
                entries = self.source.snapshot()
                for rule in rules:
                    alert = self._evaluate_rule(rule, entries, now)
                    if alert is not None:
                        triggered.append(alert)
            except StorageError as e:
                self._stats["aborted_passes"] += 1
                logger.error("evaluation_pass_aborted", error=str(e), triggered=len(triggered))

            self._stats["passes"] += 1
            self._stats["last_pass_at"] = now

        self._notify(triggered)
        return triggered

    def _evaluate_rule(
        self,
        rule: AlertRule,
        entries: List[ScoredEntry],
        now: datetime,
    ) -> Optional[TriggeredAlert]:
        self._stats["rules_evaluated"] += 1
        window = select_window(entries, now - rule.window)

        try:
            values = sample_values(rule, window)
        except EvaluationError as e:
            self._stats["evaluation_errors"] += 1
            logger.warning("rule_evaluation_failed", rule_id=rule.id, error=e.message)
            return None

        if values is None:
            self._stats["insufficient_data"] += 1
            return None

        if not condition_holds(rule.condition, values, rule.threshold):
            return None

        if not rule.cooldown_elapsed(now):
            self._stats["suppressed"] += 1
            logger.debug("alert_suppressed", rule_id=rule.id, last_triggered=rule.last_triggered)
            return None

        if self.rules.record_trigger(rule.id, rule.last_triggered, now) is None:
            self._stats["suppressed"] += 1
            logger.info("trigger_claim_lost", rule_id=rule.id)
            return None

        message = describe(rule, described_value(rule.condition, values))
        alert = TriggeredAlert.from_rule(rule, values[-1], message, now)
        try:
            self.alerts.append(alert)
        except StorageError:
            # No alert stored, so the rule must not sit in cooldown for it
            self.rules.release_trigger(rule.id, now, rule.last_triggered, rule.trigger_count)
            raise
        self._stats["triggers"] += 1
        logger.info(
            "alert_triggered",
            rule_id=rule.id,
            alert_id=alert.id,
            priority=alert.priority.value,
            value=alert.value,
            message=message,
        )
        return alert

    def _notify(self, alerts: List[TriggeredAlert]) -> None:
        for alert in alerts:
            for callback in list(self._listeners):
                try:
                    callback(alert)
                except Exception:
                    logger.exception("alert_listener_failed", alert_id=alert.id)

    def on_alert(self, callback: AlertListener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: AlertListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def reset_cooldowns(self) -> int:
        with self._pass_lock:
            touched = self.rules.reset_cooldowns()
        logger.info("cooldowns_reset", rules=touched)
        return touched

    def stats(self) -> Dict[str, Any]:
        rules = self.rules.list()
        uptime = (utc_now() - self._stats["start_time"]).total_seconds()
        last_pass = self._stats["last_pass_at"]
        return {
            **self._stats,
            "start_time": self._stats["start_time"].isoformat(),
            "last_pass_at": last_pass.isoformat() if last_pass else None,
            "uptime_seconds": round(uptime, 2),
            "global_enabled": self.switch.enabled,
            "rules_count": len(rules),
            "enabled_rules": sum(1 for r in rules if r.enabled),
            "alerts_count": len(self.alerts),
            "unacknowledged_alerts": self.alerts.unacknowledged_count(),
            "listeners": len(self._listeners),
        }


_alert_engine: Optional[AlertEngine] = None


def get_alert_engine() -> AlertEngine:
    global _alert_engine
    if _alert_engine is None:
        from series import get_entry_buffer
        from .store import get_rule_store, get_alert_store, get_global_switch
        _alert_engine = AlertEngine(
            rule_store=get_rule_store(),
            alert_store=get_alert_store(),
            switch=get_global_switch(),
            source=get_entry_buffer(),
        )
    return _alert_engine
