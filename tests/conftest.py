"""Shared fixtures: in-memory database, pinned clock, recording channels, engine."""

import os

# must be set before parafort.core.config caches its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENABLE_CREATE_ALL", "0")
os.environ.setdefault("ENABLE_SCHEDULER", "0")

from datetime import date, datetime
from typing import List, Optional, Tuple

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from parafort.core.clock import FixedClock
from parafort.core.config import DEFAULT_RULES_PATH, Settings
from parafort.core.exceptions import DeliveryFailure
from parafort.db.session import make_engine
from parafort.models import Base
from parafort.models.business_entity import BusinessEntity
from parafort.services.channels import DashboardChannel, DeliveryResult, SendChannel
from parafort.services.compliance import ComplianceEngine
from parafort.services.compliance_catalog import load_catalog

NOW = datetime(2025, 3, 1, 9, 0, 0)


class RecordingChannel(SendChannel):
    """Delivers everything and keeps (recipient, subject, body) for assertions."""

    def __init__(self, name: str = "email"):
        self.name = name
        self.sent: List[Tuple[Optional[str], str, str]] = []
        self.html: List[Optional[str]] = []

    def send(self, recipient, subject, body, html=None):
        self.sent.append((recipient, subject, body))
        self.html.append(html)
        return DeliveryResult(delivered=True, provider="test")


class FailingChannel(SendChannel):
    """Never delivers; `raise_failure` switches from a returned failure to DeliveryFailure."""

    def __init__(self, name: str = "email", raise_failure: bool = False):
        self.name = name
        self.raise_failure = raise_failure
        self.calls = 0

    def send(self, recipient, subject, body, html=None):
        self.calls += 1
        if self.raise_failure:
            raise DeliveryFailure("provider timeout")
        return DeliveryResult(delivered=False, error="provider rejected message", provider="test")


@pytest.fixture
def db_engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def catalog():
    return load_catalog(DEFAULT_RULES_PATH)


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        notify_channels=("email", "dashboard"),
        client_url="https://app.parafort.test",
        enable_scheduler=False,
        enable_create_all=False,
    )


@pytest.fixture
def email_channel():
    return RecordingChannel("email")


@pytest.fixture
def channels(email_channel):
    return {"email": email_channel, "dashboard": DashboardChannel()}


@pytest.fixture
def compliance(db, clock, catalog, channels, settings):
    return ComplianceEngine(db, clock=clock, catalog=catalog, channels=channels, settings=settings)


@pytest.fixture
def make_entity(db):
    """Factory: persist a business entity (defaults: California LLC formed 2024-01-10)."""

    def _make(**overrides) -> BusinessEntity:
        values = dict(
            user_id="user-1",
            name="Sunrise Coffee LLC",
            entity_type="LLC",
            state="CA",
            formation_date=date(2024, 1, 10),
            contact_email="owner@sunrise.test",
            contact_phone=None,
            created_at=NOW,
        )
        values.update(overrides)
        entity = BusinessEntity(**values)
        db.add(entity)
        db.commit()
        return entity

    return _make
