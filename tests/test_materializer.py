"""Materialization of calendar rows and their reminder schedule."""

import logging
from datetime import date, datetime

import pytest
from sqlalchemy.orm import sessionmaker

from parafort.core.exceptions import NotFoundError
from parafort.crud.compliance_calendar import CalendarStore
from parafort.db.session import make_engine
from parafort.models import Base
from parafort.models.business_entity import BusinessEntity
from parafort.models.compliance_calendar import ComplianceCalendarEntry
from parafort.models.compliance_notification import ComplianceNotification
from parafort.services.materializer import build_entry

from conftest import NOW


def _by_type(entries):
    out = {}
    for e in entries:
        out.setdefault(e.event_type, []).append(e.due_date)
    return {k: sorted(v) for k, v in out.items()}


def test_california_llc_calendar(compliance, make_entity):
    """LLC formed 2024-01-10 in CA, materialized on 2025-03-01: only future deadlines."""
    entity = make_entity()
    created = compliance.materialize(entity.id)

    assert _by_type(created) == {
        "quarterly_taxes": [date(2025, 4, 15), date(2025, 6, 15), date(2025, 9, 15), date(2026, 1, 15)],
        "franchise_tax": [date(2025, 3, 15)],
        "ca_llc_fee": [date(2025, 4, 15)],
        "ca_statement_of_information": [date(2027, 1, 1)],
    }
    fee = next(e for e in created if e.event_type == "ca_llc_fee")
    assert fee.status == "pending"
    assert fee.is_recurring is True
    assert fee.recurring_interval == "annual"
    assert fee.priority == "high"
    assert fee.event_title == "California LLC Annual Fee"


def test_materialize_is_idempotent(compliance, make_entity, db):
    entity = make_entity()
    first = compliance.materialize(entity.id)
    n_entries = db.query(ComplianceCalendarEntry).count()
    n_notifications = db.query(ComplianceNotification).count()

    second = compliance.materialize(entity.id)

    assert len(first) == n_entries
    assert second == []
    assert db.query(ComplianceCalendarEntry).count() == n_entries
    assert db.query(ComplianceNotification).count() == n_notifications


def test_materialize_unknown_entity_writes_nothing(compliance, db):
    with pytest.raises(NotFoundError):
        compliance.materialize(999)
    assert db.query(ComplianceCalendarEntry).count() == 0
    assert db.query(ComplianceNotification).count() == 0


def test_state_and_type_filters(compliance, make_entity):
    """A Texas corporation gets franchise tax and annual report but no California items."""
    entity = make_entity(entity_type="Corporation", state="TX", formation_date=date(2024, 11, 5))
    types = {e.event_type for e in compliance.materialize(entity.id)}
    assert "franchise_tax" in types
    assert "annual_report" in types
    assert not any(t.startswith("ca_") for t in types)


def test_new_business_gets_boir_and_first_year_items(compliance, make_entity):
    entity = make_entity(state="WY", formation_date=date(2025, 2, 1))
    due = _by_type(compliance.materialize(entity.id))
    assert due["boir_filing"] == [date(2025, 5, 2)]
    assert due["tax_filing"] == [date(2026, 2, 1)]
    assert due["business_license_renewal"] == [date(2026, 2, 1)]


def test_missing_formation_date_falls_back_to_created_at(compliance, make_entity):
    entity = make_entity(state="WY", formation_date=None, created_at=datetime(2025, 2, 1, 12))
    due = _by_type(compliance.materialize(entity.id))
    assert due["tax_filing"] == [date(2026, 2, 1)]


def test_recent_entities_sweep(compliance, make_entity, clock):
    make_entity(name="Old Co", created_at=datetime(2024, 1, 10))
    recent = make_entity(name="New Co", created_at=datetime(2025, 2, 27))

    result = compliance.materialize_recent_entities()

    assert result["entities"] == 1
    assert result["errors"] == 0
    assert result["created"] == len(compliance.calendar.list_for_entity(recent.id))


def test_sweep_logs_and_counts_a_failing_entity(compliance, make_entity, monkeypatch, caplog):
    entity = make_entity(name="New Co", created_at=datetime(2025, 2, 27))

    def _boom(*args, **kwargs):
        raise RuntimeError("catalogue exploded")

    monkeypatch.setattr(compliance.materializer, "materialize", _boom)
    with caplog.at_level(logging.ERROR, logger="parafort.materializer"):
        result = compliance.materialize_recent_entities()

    assert result == {"entities": 1, "created": 0, "errors": 1}
    assert f"materialize failed for business entity {entity.id}" in caplog.text


def test_same_key_inserted_by_another_session_is_skipped(tmp_path, catalog):
    """Two sessions on one file database; the second insert of a key hits the unique constraint."""
    eng = make_engine(f"sqlite:///{tmp_path / 'calendar.db'}")
    Base.metadata.create_all(bind=eng)
    Session = sessionmaker(bind=eng, autocommit=False, autoflush=False, expire_on_commit=False, future=True)
    first, second = Session(), Session()
    try:
        entity = BusinessEntity(name="Sunrise Coffee LLC", entity_type="LLC", state="CA", created_at=NOW)
        second.add(entity)
        second.commit()
        entity_id = entity.id
        template = catalog.template("ca_llc_fee")
        due = date(2025, 4, 15)

        store = CalendarStore(first)
        assert store.find_by_key(entity_id, "ca_llc_fee", due) is None
        # end the read so the other writer can commit on SQLite
        first.commit()

        assert CalendarStore(second).insert(build_entry(entity_id, template, due, NOW)) is not None
        second.commit()

        assert store.insert(build_entry(entity_id, template, due, NOW)) is None

        # the outer transaction survives the failed savepoint
        later = store.insert(build_entry(entity_id, template, date(2026, 4, 15), NOW))
        assert later is not None
        first.commit()

        dues = sorted(r.due_date for r in second.query(ComplianceCalendarEntry).all())
        assert dues == [date(2025, 4, 15), date(2026, 4, 15)]
    finally:
        first.close()
        second.close()
        eng.dispose()
