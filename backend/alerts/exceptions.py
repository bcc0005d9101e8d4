"""
Alert Engine Errors
Exception hierarchy shared by the stores, the evaluator and the API.

Validation errors reach the caller. Evaluation errors stay inside a pass
(one rule, logged). Storage errors abort the current pass or request.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes"""
    VALIDATION_ERROR = "validation_error"
    RULE_NOT_FOUND = "rule_not_found"
    ALERT_NOT_FOUND = "alert_not_found"
    EVALUATION_ERROR = "evaluation_error"
    STORAGE_ERROR = "storage_error"


class AlertEngineError(Exception):
    """Base class for every error raised by the alert engine."""

    error_code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code.value,
            "message": self.message,
        }

    def __str__(self) -> str:
        return self.message


class RuleValidationError(AlertEngineError):
    """Rule definition or patch rejected; nothing was persisted."""
    error_code = ErrorCode.VALIDATION_ERROR


class RuleNotFoundError(AlertEngineError):
    error_code = ErrorCode.RULE_NOT_FOUND

    def __init__(self, rule_id: str):
        super().__init__(f"Rule not found: {rule_id}")
        self.rule_id = rule_id


class AlertNotFoundError(AlertEngineError):
    error_code = ErrorCode.ALERT_NOT_FOUND

    def __init__(self, alert_id: str):
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id


class EvaluationError(AlertEngineError):
    """A single rule could not be evaluated against the current window."""
    error_code = ErrorCode.EVALUATION_ERROR

    def __init__(self, rule_id: str, message: str, cause: Optional[Exception] = None):
        super().__init__(message, cause)
        self.rule_id = rule_id

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "rule_id": self.rule_id}


class StorageError(AlertEngineError):
    """Persistence is unavailable or returned unreadable data."""
    error_code = ErrorCode.STORAGE_ERROR
