"""Dashboard summary, reminder statistics and the weekly admin report."""

from datetime import date, timedelta

import pytest

from parafort.core.exceptions import NotFoundError
from parafort.models.compliance_notification import ComplianceNotification


def test_summary_right_after_materialization(compliance, make_entity):
    entity = make_entity()
    compliance.materialize(entity.id)

    summary = compliance.dashboard_summary(entity.id)

    assert summary["total_events"] == 7
    assert summary["upcoming_events"] == 7
    assert summary["overdue_events"] == 0
    assert summary["completed_events"] == 0
    assert summary["events_next_30_days"] == 1
    assert [(e.event_type, e.due_date) for e in summary["next_events"]] == [
        ("franchise_tax", date(2025, 3, 15)),
        ("quarterly_taxes", date(2025, 4, 15)),
        ("ca_llc_fee", date(2025, 4, 15)),
        ("quarterly_taxes", date(2025, 6, 15)),
        ("quarterly_taxes", date(2025, 9, 15)),
    ]


def test_summary_counts_missed_deadlines_as_overdue(compliance, make_entity, clock):
    """On 2025-03-21 the franchise tax is past due; the completed fee rolled to 2026."""
    entity = make_entity()
    compliance.materialize(entity.id)
    clock.advance(timedelta(days=20))
    fee = next(e for e in compliance.calendar.list_for_entity(entity.id) if e.event_type == "ca_llc_fee")
    compliance.complete_entry(fee.id)

    summary = compliance.dashboard_summary(entity.id)

    assert summary["total_events"] == 8
    assert summary["overdue_events"] == 1
    assert summary["completed_events"] == 1
    assert summary["upcoming_events"] == 6
    assert summary["events_next_30_days"] == 1
    assert summary["next_events"][0].due_date == date(2025, 4, 15)
    assert summary["next_events"][-1].event_type == "ca_llc_fee"
    assert summary["next_events"][-1].due_date == date(2026, 4, 15)


def test_summary_unknown_entity(compliance):
    with pytest.raises(NotFoundError):
        compliance.dashboard_summary(404)


def test_notification_stats_before_and_after_dispatch(compliance, make_entity, db):
    entity = make_entity()
    compliance.materialize(entity.id)
    scheduled = db.query(ComplianceNotification).count()

    before = compliance.notification_stats(entity.id)
    assert before["total"] == scheduled
    assert before["pending"] == scheduled
    assert before["due_now"] == 4
    assert before["sent"] == before["failed"] == before["cancelled"] == 0

    compliance.dispatch_due()
    after = compliance.notification_stats(entity.id)

    assert after["sent"] == 4
    assert after["pending"] == scheduled - 4
    assert after["due_now"] == 0
    assert after["generated_at"] == compliance.clock.now()


def test_notification_stats_scope(compliance, make_entity):
    one = make_entity(name="Sunrise Coffee LLC")
    two = make_entity(name="Moonlight Bakery LLC")
    compliance.materialize(one.id)
    compliance.materialize(two.id)

    overall = compliance.notification_stats()
    single = compliance.notification_stats(one.id)

    assert overall["total"] == 2 * single["total"]
    assert overall["due_now"] == 8


def test_weekly_report(compliance, make_entity):
    compliance.materialize(make_entity().id)
    compliance.dispatch_due()

    report = compliance.weekly_report()

    assert report["businesses"] == 1
    assert report["upcoming_events"] == 7
    assert report["overdue_events"] == 0
    assert report["events_next_30_days"] == 1
    assert report["completed_events"] == 0
    assert report["notifications"]["sent"] == 4
