"""APScheduler wiring and the job bodies run against the test database."""

from datetime import date

from parafort.core.config import Settings
from parafort.models.compliance_calendar import ComplianceCalendarEntry
from parafort.worker.scheduler import (
    make_scheduler,
    run_daily_compliance,
    run_weekly_materialization,
    run_weekly_report,
)


def test_jobs_registered():
    sched = make_scheduler(Settings(app_timezone="UTC", scheduler_hour=7, scheduler_minute=30))
    jobs = {job.id: job for job in sched.get_jobs()}
    assert set(jobs) == {"daily_compliance", "weekly_materialization", "weekly_report"}
    assert "hour='7'" in str(jobs["daily_compliance"].trigger)
    assert "day_of_week='sun'" in str(jobs["weekly_materialization"].trigger)
    assert "day_of_week='mon'" in str(jobs["weekly_report"].trigger)


def _engine_kwargs(session_factory, clock, catalog, channels, settings):
    return dict(session_factory=session_factory, clock=clock, catalog=catalog, channels=channels, settings=settings)


def test_weekly_then_daily(session_factory, clock, catalog, channels, settings, make_entity, email_channel, db):
    make_entity()
    kwargs = _engine_kwargs(session_factory, clock, catalog, channels, settings)

    weekly = run_weekly_materialization(**kwargs)
    daily = run_daily_compliance(**kwargs)

    assert weekly["entities"] == 1
    assert weekly["created"] == 7
    assert daily["rolled_forward"] == 0
    assert daily["dispatch"]["sent"] == 4
    assert len(email_channel.sent) == 2


def test_daily_rolls_completed_entries(session_factory, clock, catalog, channels, settings, make_entity, db):
    entity = make_entity()
    kwargs = _engine_kwargs(session_factory, clock, catalog, channels, settings)
    run_weekly_materialization(**kwargs)

    fee = db.query(ComplianceCalendarEntry).filter_by(business_entity_id=entity.id, event_type="ca_llc_fee").one()
    fee.status = "completed"
    db.commit()

    daily = run_daily_compliance(**kwargs)

    assert daily["rolled_forward"] == 1
    dues = sorted(r.due_date for r in db.query(ComplianceCalendarEntry).filter_by(event_type="ca_llc_fee"))
    assert dues == [date(2025, 4, 15), date(2026, 4, 15)]


def test_job_failure_is_contained(settings):
    """A session that cannot query makes the job return empty counts instead of raising."""
    class _Session:
        def rollback(self):
            pass

        def close(self):
            pass

    out = run_weekly_materialization(session_factory=_Session, settings=settings, catalog=None, channels={})
    assert out == {"entities": 0, "created": 0, "errors": 0}


def test_weekly_report_job(session_factory, clock, catalog, channels, settings, make_entity):
    make_entity()
    kwargs = _engine_kwargs(session_factory, clock, catalog, channels, settings)
    run_weekly_materialization(**kwargs)

    report = run_weekly_report(**kwargs)

    assert report["businesses"] == 1
    assert report["upcoming_events"] == 7
    assert report["notifications"]["due_now"] == 4
