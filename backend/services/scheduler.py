"""
Evaluation Scheduler
Runs one alert evaluation pass every tick, headless.

Usage:
    from services import get_scheduler

    scheduler = get_scheduler()
    scheduler.start()
    # A pass runs immediately, then every tick_interval_seconds
    scheduler.stop()
"""

import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from alerts import AlertEngine, TriggeredAlert, DEFAULT_TICK_SECONDS
from alerts.models import utc_now

logger = structlog.get_logger(__name__)


@dataclass
class SchedulerStats:
    """Scheduler statistics"""
    is_running: bool = False
    interval_seconds: float = DEFAULT_TICK_SECONDS
    ticks: int = 0
    last_tick_at: Optional[datetime] = None
    last_pass_triggered: int = 0
    started_at: Optional[datetime] = None
    errors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "interval_seconds": self.interval_seconds,
            "ticks": self.ticks,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_pass_triggered": self.last_pass_triggered,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "uptime_seconds": (utc_now() - self.started_at).total_seconds() if self.started_at else 0,
            "errors": self.errors,
        }


class EvaluationScheduler:
    """
    Fixed-interval ticker for the alert engine.

    Runs on a background thread with its own event loop, so the engine
    keeps evaluating without any UI or request driving it. A failing
    tick is logged and counted; the next tick runs regardless.
    """

    def __init__(self, engine: AlertEngine, interval_seconds: float = DEFAULT_TICK_SECONDS):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wake: Optional[asyncio.Event] = None
        self._stats = SchedulerStats(interval_seconds=interval_seconds)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> SchedulerStats:
        return self._stats

    def start(self) -> Dict[str, Any]:
        if self._running:
            return {"status": "already_running", "interval_seconds": self.interval_seconds}

        self._stats = SchedulerStats(
            is_running=True,
            interval_seconds=self.interval_seconds,
            started_at=utc_now(),
        )

        self._running = True
        self._thread = threading.Thread(target=self._run_async_loop, name="alert-scheduler", daemon=True)
        self._thread.start()

        logger.info("scheduler_started", interval_seconds=self.interval_seconds)
        return {"status": "started", "interval_seconds": self.interval_seconds}

    def stop(self, timeout: float = 5.0) -> Dict[str, Any]:
        if not self._running:
            return {"status": "not_running"}

        self._running = False
        self._stats.is_running = False

        loop, wake = self._loop, self._wake
        if loop is not None and wake is not None:
            try:
                loop.call_soon_threadsafe(wake.set)
            except RuntimeError:
                # Loop already closed
                pass

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

        logger.info("scheduler_stopped", ticks=self._stats.ticks)
        return {"status": "stopped", "ticks": self._stats.ticks}

    def run_once(self) -> List[TriggeredAlert]:
        """One tick: a full evaluation pass"""
        self._stats.ticks += 1
        self._stats.last_tick_at = utc_now()
        try:
            triggered = self.engine.evaluate()
        except Exception:
            self._stats.errors += 1
            logger.exception("scheduler_tick_failed", tick=self._stats.ticks)
            return []

        self._stats.last_pass_triggered = len(triggered)
        return triggered

    def _run_async_loop(self):
        """Run async event loop in background thread"""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        try:
            self._loop.run_until_complete(self._tick_loop())
        finally:
            self._loop.close()
            self._loop = None
            self._wake = None
            self._running = False
            self._stats.is_running = False

    async def _tick_loop(self):
        self._wake = asyncio.Event()
        while self._running:
            self.run_once()
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass


_scheduler: Optional[EvaluationScheduler] = None


def get_scheduler() -> EvaluationScheduler:
    """Get or create scheduler singleton"""
    global _scheduler
    if _scheduler is None:
        from alerts import get_alert_engine
        from config import get_settings
        _scheduler = EvaluationScheduler(
            get_alert_engine(),
            interval_seconds=get_settings().tick_interval_seconds,
        )
    return _scheduler
