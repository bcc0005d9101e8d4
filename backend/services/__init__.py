"""
Background Services
"""

from .scheduler import EvaluationScheduler, SchedulerStats, get_scheduler

__all__ = ["EvaluationScheduler", "SchedulerStats", "get_scheduler"]
