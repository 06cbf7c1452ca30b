"""Reminder scheduling: one pending row per lead time and channel."""

from datetime import date

from parafort.crud.compliance_notification import NotificationStore
from parafort.models.compliance_calendar import ComplianceCalendarEntry
from parafort.services.reminders import ReminderScheduler, recipient_for


def _entry(db, entity, due=date(2025, 3, 15), **kw):
    values = dict(
        business_entity_id=entity.id,
        event_type="franchise_tax",
        event_title="Franchise Tax Payment",
        event_description="Pay state franchise tax",
        due_date=due,
        status="pending",
        priority="high",
        category="tax",
        is_recurring=True,
        recurring_interval="annual",
    )
    values.update(kw)
    entry = ComplianceCalendarEntry(**values)
    db.add(entry)
    db.flush()
    return entry


def test_one_row_per_lead_time_and_channel(db, make_entity, clock):
    entity = make_entity(contact_phone="+15551234567")
    entry = _entry(db, entity)
    scheduler = ReminderScheduler(NotificationStore(db), clock=clock)

    rows = scheduler.schedule(entry, [90, 30, 14, 7, 1], ["email", "sms", "dashboard"], entity=entity)

    assert len(rows) == 15
    assert {r.notification_type for r in rows} == {"email", "sms", "dashboard"}
    email_dates = sorted(r.scheduled_date for r in rows if r.notification_type == "email")
    assert email_dates == [
        date(2024, 12, 15), date(2025, 2, 13), date(2025, 3, 1), date(2025, 3, 8), date(2025, 3, 14),
    ]
    assert all(r.status == "pending" and r.delivery_attempts == 0 for r in rows)
    sms = next(r for r in rows if r.notification_type == "sms")
    assert sms.recipient == "+15551234567"


def test_channels_without_recipient_are_skipped(db, make_entity, clock):
    entity = make_entity(contact_phone=None)
    entry = _entry(db, entity)
    rows = ReminderScheduler(NotificationStore(db), clock=clock).schedule(
        entry, [7, 1], ["email", "sms"], entity=entity
    )
    assert {r.notification_type for r in rows} == {"email"}
    assert len(rows) == 2


def test_reminder_text(db, make_entity, clock):
    entity = make_entity()
    entry = _entry(db, entity)
    rows = ReminderScheduler(NotificationStore(db), clock=clock).schedule(
        entry, [30, 1], ["dashboard"], entity=entity
    )
    titles = [r.title for r in rows]
    assert titles == ["Upcoming: Franchise Tax Payment (30 days)", "Due Tomorrow: Franchise Tax Payment"]
    assert "Sunrise Coffee LLC" in rows[0].message
    assert "March 15, 2025" in rows[0].message


def test_dashboard_recipient_falls_back_to_business(make_entity):
    entity = make_entity(user_id=None)
    assert recipient_for("dashboard", entity) == f"business:{entity.id}"
    assert recipient_for("email", entity) == "owner@sunrise.test"
    assert recipient_for("fax", entity) is None
