"""Entry lifecycle and roll-forward of recurring obligations."""

from datetime import date

import pytest

from parafort.core.exceptions import InvalidTransitionError, NotFoundError
from parafort.models.compliance_calendar import ComplianceCalendarEntry


def _entry(compliance, entity_id, event_type, due=None):
    for e in compliance.calendar.list_for_entity(entity_id):
        if e.event_type == event_type and (due is None or e.due_date == due):
            return e
    raise AssertionError(f"no {event_type} entry")


def test_california_llc_fee_rolls_to_next_april(compliance, make_entity, clock):
    entity = make_entity()
    compliance.materialize(entity.id)
    fee = _entry(compliance, entity.id, "ca_llc_fee")
    assert fee.due_date == date(2025, 4, 15)

    done, nxt = compliance.complete_entry(fee.id)

    assert done.status == "completed"
    assert done.completed_date == clock.now()
    assert nxt is not None
    assert nxt.due_date == date(2026, 4, 15)
    assert nxt.status == "pending"
    assert nxt.is_recurring is True and nxt.recurring_interval == "annual"

    new_reminders = compliance.notifications.list_for_entry(nxt.id)
    assert sorted({n.scheduled_date for n in new_reminders}) == [
        date(2026, 3, 16), date(2026, 4, 1), date(2026, 4, 8), date(2026, 4, 14),
    ]
    assert all(n.status == "pending" for n in new_reminders)


def test_completion_cancels_pending_reminders(compliance, make_entity):
    entity = make_entity()
    compliance.materialize(entity.id)
    fee = _entry(compliance, entity.id, "ca_llc_fee")

    compliance.complete_entry(fee.id)

    statuses = {n.status for n in compliance.notifications.list_for_entry(fee.id)}
    assert statuses == {"cancelled"}


def test_quarterly_rolls_three_months_from_due_date(compliance, make_entity):
    entity = make_entity()
    compliance.materialize(entity.id)
    q2 = _entry(compliance, entity.id, "quarterly_taxes", date(2025, 4, 15))

    _, nxt = compliance.complete_entry(q2.id)

    assert nxt.due_date == date(2025, 7, 15)


def test_roll_forward_skips_existing_occurrence(compliance, make_entity):
    """Completing Jun 15 would roll to Sep 15, which materialization already created."""
    entity = make_entity()
    compliance.materialize(entity.id)
    q2 = _entry(compliance, entity.id, "quarterly_taxes", date(2025, 6, 15))
    before = compliance.calendar.count_for_entity(entity.id)

    _, nxt = compliance.complete_entry(q2.id)

    assert nxt is None
    assert compliance.calendar.count_for_entity(entity.id) == before


def test_non_recurring_never_rolls_forward(compliance, make_entity):
    entity = make_entity(state="WY", formation_date=date(2025, 2, 1))
    compliance.materialize(entity.id)
    boir = _entry(compliance, entity.id, "boir_filing")
    before = compliance.calendar.count_for_entity(entity.id)

    done, nxt = compliance.complete_entry(boir.id)

    assert done.status == "completed"
    assert nxt is None
    assert compliance.roll_forward(boir.id) is None
    assert compliance.calendar.count_for_entity(entity.id) == before


def test_pending_entry_does_not_roll_forward(compliance, make_entity):
    entity = make_entity()
    compliance.materialize(entity.id)
    fee = _entry(compliance, entity.id, "ca_llc_fee")
    assert compliance.roll_forward(fee.id) is None


def test_sweep_is_idempotent(compliance, make_entity, db, clock):
    entity = make_entity()
    compliance.materialize(entity.id)
    fee = _entry(compliance, entity.id, "ca_llc_fee")
    # completed outside complete_entry, so nothing rolled yet
    compliance.calendar.mark_completed(fee, clock.now())
    db.commit()

    assert compliance.roll_forward_completed() == 1
    assert compliance.roll_forward_completed() == 0
    rows = db.query(ComplianceCalendarEntry).filter_by(event_type="ca_llc_fee").all()
    assert sorted(r.due_date for r in rows) == [date(2025, 4, 15), date(2026, 4, 15)]


def test_cancel_entry(compliance, make_entity):
    entity = make_entity()
    compliance.materialize(entity.id)
    fee = _entry(compliance, entity.id, "ca_llc_fee")
    before = compliance.calendar.count_for_entity(entity.id)

    cancelled = compliance.cancel_entry(fee.id)

    assert cancelled.status == "cancelled"
    assert {n.status for n in compliance.notifications.list_for_entry(fee.id)} == {"cancelled"}
    assert compliance.calendar.count_for_entity(entity.id) == before


def test_illegal_transitions(compliance, make_entity):
    entity = make_entity()
    compliance.materialize(entity.id)
    fee = _entry(compliance, entity.id, "ca_llc_fee")
    compliance.complete_entry(fee.id)

    with pytest.raises(InvalidTransitionError):
        compliance.complete_entry(fee.id)
    with pytest.raises(InvalidTransitionError):
        compliance.cancel_entry(fee.id)


def test_unknown_entry(compliance):
    with pytest.raises(NotFoundError):
        compliance.complete_entry(12345)
    with pytest.raises(NotFoundError):
        compliance.roll_forward(12345)
