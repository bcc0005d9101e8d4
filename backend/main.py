from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from alerts import AlertEngineError, get_alert_engine
from api import alerts_router, entries_router, engine_error_handler
from config import configure_logging, get_settings
from series import get_entry_buffer
from services import get_scheduler

settings = get_settings()
configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = get_scheduler()
    if settings.scheduler_autostart:
        scheduler.start()
    logger.info("application_started", db_path=settings.db_path,
                autostart=settings.scheduler_autostart)
    yield
    if scheduler.is_running:
        scheduler.stop()

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AlertEngineError, engine_error_handler)

app.include_router(entries_router, prefix=settings.api_prefix)
app.include_router(alerts_router, prefix=settings.api_prefix)

@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }

@app.get("/health")
async def health():
    engine = get_alert_engine()
    stats = engine.stats()
    scheduler = get_scheduler()
    buffer = get_entry_buffer()

    return {
        "status": "healthy",
        "engine": {
            "global_enabled": stats["global_enabled"],
            "passes": stats["passes"],
            "triggers": stats["triggers"],
            "rules_count": stats["rules_count"],
            "unacknowledged_alerts": stats["unacknowledged_alerts"],
            "uptime_seconds": stats["uptime_seconds"]
        },
        "scheduler": {
            "is_running": scheduler.is_running,
            "ticks": scheduler.stats.ticks,
            "interval_seconds": scheduler.interval_seconds
        },
        "entries": {
            "buffered": buffer.count()
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
