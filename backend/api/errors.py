"""
API Error Mapping
Engine errors → HTTP responses.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from alerts import (
    AlertEngineError,
    RuleValidationError,
    RuleNotFoundError,
    AlertNotFoundError,
    StorageError,
)

STATUS_CODES = {
    RuleValidationError: 400,
    RuleNotFoundError: 404,
    AlertNotFoundError: 404,
    StorageError: 503,
}


def status_for(error: AlertEngineError) -> int:
    for error_cls, status in STATUS_CODES.items():
        if isinstance(error, error_cls):
            return status
    return 500


async def engine_error_handler(request: Request, exc: AlertEngineError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": exc.message, **exc.to_dict()},
    )
