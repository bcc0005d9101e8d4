"""
API Routers
"""
from .alerts import router as alerts_router
from .entries import router as entries_router
from .errors import engine_error_handler

__all__ = ["alerts_router", "entries_router", "engine_error_handler"]
