"""
Alerts API
Endpoints for managing alert rules, the global switch and triggered alerts.

Endpoints:
    POST   /api/alerts/rules                     → Create alert rule
    GET    /api/alerts/rules                     → List all rules
    GET    /api/alerts/rules/{id}                → Get rule by ID
    PATCH  /api/alerts/rules/{id}                → Update rule
    DELETE /api/alerts/rules/{id}                → Delete rule
    POST   /api/alerts/rules/{id}/enable         → Enable rule
    POST   /api/alerts/rules/{id}/disable        → Disable rule
    GET    /api/alerts/history                   → Triggered alerts (newest first)
    POST   /api/alerts/history/{id}/acknowledge  → Acknowledge alert
    DELETE /api/alerts/history                   → Clear all alerts
    DELETE /api/alerts/history/acknowledged      → Clear acknowledged alerts
    GET    /api/alerts/switch                    → Global switch state
    PUT    /api/alerts/switch                    → Turn the engine on/off
    POST   /api/alerts/evaluate                  → Run one evaluation pass now
    GET    /api/alerts/stats                     → Engine + scheduler statistics
    POST   /api/alerts/reset                     → Clear cooldowns
    GET    /api/alerts/stream                    → SSE stream for new alerts
"""

import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from alerts import (
    get_alert_engine,
    AlertRule,
    RuleValidationError,
    TriggeredAlert,
    COOLDOWN_PERIOD,
)
from alerts.models import utc_now
from services import get_scheduler

router = APIRouter(prefix="/alerts", tags=["Alerts"])


# =============================================================================
# Request Models
# =============================================================================

class CreateRuleRequest(BaseModel):
    """Request body for creating a rule"""
    name: str
    dimension: str = "overall"  # overall, joy, sadness, anger, fear, surprise, love
    condition: str = "above"  # above, below, equals, spike, drop
    threshold: float = 75
    time_window_minutes: int = 60
    consecutive_count: int = 1
    priority: str = "medium"  # low, medium, high, critical
    enabled: bool = True

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Anger spike",
                "dimension": "anger",
                "condition": "spike",
                "threshold": 20,
                "time_window_minutes": 60,
                "consecutive_count": 2,
                "priority": "high",
            }
        }
    }


class UpdateRuleRequest(BaseModel):
    """Partial update; only fields present in the body are applied"""
    name: Optional[str] = None
    dimension: Optional[str] = None
    condition: Optional[str] = None
    threshold: Optional[float] = None
    time_window_minutes: Optional[int] = None
    consecutive_count: Optional[int] = None
    priority: Optional[str] = None
    enabled: Optional[bool] = None


class SwitchRequest(BaseModel):
    enabled: bool


# =============================================================================
# Rule Management
# =============================================================================

@router.post("/rules", status_code=201)
async def create_rule(request: CreateRuleRequest):
    """
    Create a new alert rule.

    threshold, time_window_minutes and consecutive_count must be positive
    and name must not be empty.
    """
    engine = get_alert_engine()

    rule = engine.rules.create(AlertRule(
        id="",
        name=request.name,
        dimension=request.dimension,
        condition=request.condition,
        threshold=request.threshold,
        time_window_minutes=request.time_window_minutes,
        consecutive_count=request.consecutive_count,
        priority=request.priority,
        enabled=request.enabled,
    ))

    return {
        "message": "Alert rule created",
        "rule": rule.to_dict()
    }


@router.get("/rules")
async def list_rules():
    """Get all alert rules"""
    engine = get_alert_engine()
    rules = engine.rules.list()

    return {
        "count": len(rules),
        "rules": [r.to_dict() for r in rules]
    }


@router.get("/rules/{rule_id}")
async def get_rule(rule_id: str):
    """Get a rule with its cooldown state"""
    engine = get_alert_engine()
    rule = engine.rules.get(rule_id)

    remaining = 0.0
    if rule.last_triggered is not None:
        elapsed = utc_now() - rule.last_triggered
        remaining = max(0.0, (COOLDOWN_PERIOD - elapsed).total_seconds())

    return {
        "rule": rule.to_dict(),
        "state": {
            "trigger_count": rule.trigger_count,
            "last_triggered": rule.last_triggered.isoformat() if rule.last_triggered else None,
            "cooldown_remaining_seconds": round(remaining, 1),
        }
    }


@router.patch("/rules/{rule_id}")
async def update_rule(rule_id: str, request: UpdateRuleRequest):
    patch = request.model_dump(exclude_unset=True)
    nulls = sorted(name for name, value in patch.items() if value is None)
    if nulls:
        raise RuleValidationError(f"Fields cannot be null: {', '.join(nulls)}")

    engine = get_alert_engine()
    rule = engine.rules.update(rule_id, patch)

    return {
        "message": f"Rule {rule_id} updated",
        "rule": rule.to_dict()
    }


@router.delete("/rules/{rule_id}")
async def delete_rule(rule_id: str):
    """Delete an alert rule (its alerts stay in history)"""
    engine = get_alert_engine()
    engine.rules.delete(rule_id)

    return {"message": f"Rule {rule_id} deleted"}


@router.post("/rules/{rule_id}/enable")
async def enable_rule(rule_id: str):
    engine = get_alert_engine()
    rule = engine.rules.set_enabled(rule_id, True)

    return {"message": f"Rule {rule_id} enabled", "rule": rule.to_dict()}


@router.post("/rules/{rule_id}/disable")
async def disable_rule(rule_id: str):
    engine = get_alert_engine()
    rule = engine.rules.set_enabled(rule_id, False)

    return {"message": f"Rule {rule_id} disabled", "rule": rule.to_dict()}


# =============================================================================
# Alert History
# =============================================================================

@router.get("/history")
async def get_history(
    limit: int = Query(default=50, gt=0, le=500),
    unacknowledged_only: bool = Query(default=False),
):
    """Get triggered alerts, newest first"""
    engine = get_alert_engine()
    history = engine.alerts.list(limit=limit, unacknowledged_only=unacknowledged_only)

    return {
        "count": len(history),
        "unacknowledged": engine.alerts.unacknowledged_count(),
        "alerts": [a.to_dict() for a in history]
    }


@router.post("/history/{alert_id}/acknowledge")
async def acknowledge_alert(alert_id: str):
    engine = get_alert_engine()
    alert = engine.alerts.acknowledge(alert_id)

    return {"message": "Alert acknowledged", "alert": alert.to_dict()}


@router.delete("/history")
async def clear_history():
    """Clear all alerts"""
    engine = get_alert_engine()
    removed = engine.alerts.clear_all()

    return {"message": "All alerts cleared", "removed": removed}


@router.delete("/history/acknowledged")
async def clear_acknowledged():
    """Clear acknowledged alerts only"""
    engine = get_alert_engine()
    removed = engine.alerts.clear_acknowledged()

    return {"message": "Acknowledged alerts cleared", "removed": removed}


# =============================================================================
# Global Switch
# =============================================================================

@router.get("/switch")
async def get_switch():
    engine = get_alert_engine()
    return {"enabled": engine.switch.enabled}


@router.put("/switch")
async def set_switch(request: SwitchRequest):
    """Turn the whole engine on or off; takes effect on the next tick"""
    engine = get_alert_engine()
    enabled = engine.switch.set(request.enabled)

    return {
        "message": "Alerts enabled" if enabled else "Alerts disabled",
        "enabled": enabled
    }


# =============================================================================
# SSE Stream
# =============================================================================

@router.get("/stream")
async def stream_alerts():
    """
    Server-Sent Events stream for new alerts.

    Connect via EventSource in browser:
        const es = new EventSource('/api/alerts/stream');
        es.onmessage = (e) => console.log(JSON.parse(e.data));
    """
    engine = get_alert_engine()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=1000)

    def enqueue(alert: TriggeredAlert) -> None:
        # Passes run on the scheduler thread
        loop.call_soon_threadsafe(_put_nowait, queue, alert)

    async def event_generator():
        engine.on_alert(enqueue)
        try:
            yield f"data: {json.dumps({'type': 'connected', 'message': 'Alert stream connected'})}\n\n"

            while True:
                try:
                    alert = await asyncio.wait_for(queue.get(), timeout=30.0)
                    yield f"data: {json.dumps(alert.to_dict())}\n\n"
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            engine.remove_listener(enqueue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"  # Disable nginx buffering
        }
    )


def _put_nowait(queue: asyncio.Queue, alert: TriggeredAlert) -> None:
    if queue.full():
        # Slow consumer: drop the oldest
        queue.get_nowait()
    queue.put_nowait(alert)


# =============================================================================
# Evaluation & Management
# =============================================================================

@router.post("/evaluate")
async def evaluate_now():
    """Run one evaluation pass immediately, outside the tick schedule"""
    engine = get_alert_engine()
    triggered = engine.evaluate()

    return {
        "global_enabled": engine.switch.enabled,
        "triggered_count": len(triggered),
        "triggered": [a.to_dict() for a in triggered]
    }


@router.get("/stats")
async def get_stats():
    """Get alert engine and scheduler statistics"""
    engine = get_alert_engine()
    scheduler = get_scheduler()

    return {
        "engine": engine.stats(),
        "scheduler": scheduler.stats.to_dict(),
    }


@router.post("/reset")
async def reset_cooldowns():
    """Clear every rule's cooldown so conditions can fire again"""
    engine = get_alert_engine()
    touched = engine.reset_cooldowns()

    return {"message": "Alert cooldowns reset", "rules": touched}
