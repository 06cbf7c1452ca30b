# parafort/worker/scheduler.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

try:
    from tzlocal import get_localzone  # optional dependency
except Exception:
    get_localzone = None  # type: ignore

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from parafort.core.config import Settings, get_settings
from parafort.db.session import SessionLocal
from parafort.services.compliance import ComplianceEngine

log = logging.getLogger("parafort.scheduler")


def _with_engine(fn: Callable[[ComplianceEngine], Any], *, session_factory=SessionLocal, **engine_kwargs) -> Optional[Any]:
    """Run `fn` against a fresh session/engine; returns None (and logs) on failure."""
    db = session_factory()
    try:
        return fn(ComplianceEngine(db, **engine_kwargs))
    except Exception:
        db.rollback()
        log.exception("scheduled job step %s failed", getattr(fn, "__name__", fn))
        return None
    finally:
        db.close()


def run_daily_compliance(**engine_kwargs) -> Dict[str, Any]:
    """
    Daily pipeline:
      - roll completed recurring entries forward
      - dispatch every reminder whose fire date has arrived
    """
    rolled = _with_engine(lambda e: e.roll_forward_completed(), **engine_kwargs)
    report = _with_engine(lambda e: e.dispatch_due().as_dict(), **engine_kwargs)
    out = {"rolled_forward": rolled or 0, "dispatch": report}
    log.info("daily compliance run: %s", out)
    return out


def run_weekly_materialization(**engine_kwargs) -> Dict[str, int]:
    """Materialize calendars for businesses created in the last NEW_ENTITY_SCAN_DAYS."""
    out = _with_engine(lambda e: e.materialize_recent_entities(), **engine_kwargs)
    out = out or {"entities": 0, "created": 0, "errors": 0}
    log.info("weekly materialization: %s", out)
    return out


def run_weekly_report(**engine_kwargs) -> Optional[Dict[str, Any]]:
    """Admin snapshot of upcoming/overdue events and reminder totals."""
    return _with_engine(lambda e: e.weekly_report(), **engine_kwargs)


def _resolve_timezone(settings: Settings) -> str:
    if settings.app_timezone:
        return settings.app_timezone
    if get_localzone:
        try:
            return str(get_localzone())
        except Exception:
            return "UTC"
    return "UTC"


def make_scheduler(settings: Optional[Settings] = None) -> BackgroundScheduler:
    """
    BackgroundScheduler configured from env:
      - APP_TIMEZONE           (default: system tz via tzlocal or 'UTC')
      - APP_SCHEDULER_HOUR     (default: 9)
      - APP_SCHEDULER_MINUTE   (default: 0)
    The weekly new-business sweep runs Sundays at 10:00, the admin report
    Mondays at 08:00.
    """
    settings = settings or get_settings()
    sched = BackgroundScheduler(timezone=_resolve_timezone(settings))

    sched.add_job(
        run_daily_compliance,
        CronTrigger(hour=settings.scheduler_hour, minute=settings.scheduler_minute),
        id="daily_compliance",
        replace_existing=True,
    )
    sched.add_job(
        run_weekly_materialization,
        CronTrigger(day_of_week="sun", hour=10, minute=0),
        id="weekly_materialization",
        replace_existing=True,
    )
    sched.add_job(
        run_weekly_report,
        CronTrigger(day_of_week="mon", hour=8, minute=0),
        id="weekly_report",
        replace_existing=True,
    )
    return sched
