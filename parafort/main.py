# parafort/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI

from parafort.core.config import get_settings
from parafort.core.errors import register_exception_handlers
from parafort.core.logging import configure_logging
from parafort.db.session import engine
from parafort.middleware.request_logging import RequestLoggingMiddleware

# ---------------------------
# MODELS (registers every table on Base)
# ---------------------------
from parafort.models import Base

# ---------------------------
# ROUTERS
# ---------------------------
from parafort.api import health
from parafort.api.v1 import compliance as compliance_api
from parafort.api.v1 import notifications as notifications_api
from parafort.worker.scheduler import make_scheduler

settings = get_settings()
configure_logging(settings.log_level)
log = logging.getLogger("parafort.main")

# ---------------------------
# CREATE TABLES (dev-only; production runs alembic)
# ---------------------------
if settings.enable_create_all:
    Base.metadata.create_all(bind=engine)

# ---------------------------
# APP
# ---------------------------
app = FastAPI(title="ParaFort Compliance", version="1.0.0")
app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)

app.include_router(compliance_api.router, prefix="/api/v1", tags=["compliance"])
app.include_router(notifications_api.router, prefix="/api/v1", tags=["notifications"])
app.include_router(health.router, prefix="/api", tags=["health"])


# ---------------------------
# Scheduler (daily reminders, weekly materialization)
# ---------------------------
@app.on_event("startup")
def _start_scheduler():
    app.state.scheduler = None
    if not settings.enable_scheduler:
        return
    try:
        app.state.scheduler = make_scheduler(settings)
        app.state.scheduler.start()
        log.info("compliance scheduler started")
    except Exception:
        # keep the API running if the scheduler cannot start
        log.exception("compliance scheduler failed to start")
        app.state.scheduler = None


@app.on_event("shutdown")
def _stop_scheduler():
    sched = getattr(app.state, "scheduler", None)
    if sched:
        sched.shutdown(wait=False)
