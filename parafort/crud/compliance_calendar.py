# parafort/crud/compliance_calendar.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from parafort.models.compliance_calendar import ComplianceCalendarEntry

log = logging.getLogger("parafort.crud.calendar")


class CalendarStore:
    """
    Persistence for compliance calendar rows. Methods flush but never commit:
    the calling service owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, entry_id: int) -> Optional[ComplianceCalendarEntry]:
        return self.db.get(ComplianceCalendarEntry, entry_id)

    def find_by_key(self, business_entity_id: int, event_type: str, due_date: date) -> Optional[ComplianceCalendarEntry]:
        return (
            self.db.query(ComplianceCalendarEntry)
            .filter(
                ComplianceCalendarEntry.business_entity_id == business_entity_id,
                ComplianceCalendarEntry.event_type == event_type,
                ComplianceCalendarEntry.due_date == due_date,
            )
            .first()
        )

    def insert(self, entry: ComplianceCalendarEntry) -> Optional[ComplianceCalendarEntry]:
        """
        Insert inside a savepoint. A unique-key collision (a concurrent run got
        there first) rolls back only the savepoint and returns None.
        """
        try:
            with self.db.begin_nested():
                self.db.add(entry)
                self.db.flush()
        except IntegrityError:
            log.debug(
                "duplicate calendar entry skipped entity=%s type=%s due=%s",
                entry.business_entity_id, entry.event_type, entry.due_date,
            )
            return None
        return entry

    def mark_completed(self, entry: ComplianceCalendarEntry, at: datetime) -> ComplianceCalendarEntry:
        entry.status = "completed"
        entry.completed_date = at
        entry.updated_at = at
        self.db.flush()
        return entry

    def mark_cancelled(self, entry: ComplianceCalendarEntry, at: datetime) -> ComplianceCalendarEntry:
        entry.status = "cancelled"
        entry.updated_at = at
        self.db.flush()
        return entry

    def list_for_entity(
        self,
        business_entity_id: int,
        *,
        status: Optional[str] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[ComplianceCalendarEntry]:
        q = self._filtered(business_entity_id, status=status, due_from=due_from, due_to=due_to)
        q = q.order_by(ComplianceCalendarEntry.due_date.asc(), ComplianceCalendarEntry.id.asc())
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def count(
        self,
        business_entity_id: Optional[int] = None,
        *,
        status: Optional[str] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        due_before: Optional[date] = None,
    ) -> int:
        """Row count; `due_before` is exclusive, `due_from`/`due_to` inclusive."""
        q = self._filtered(business_entity_id, status=status, due_from=due_from, due_to=due_to)
        if due_before is not None:
            q = q.filter(ComplianceCalendarEntry.due_date < due_before)
        return q.count()

    def _filtered(self, business_entity_id, *, status=None, due_from=None, due_to=None):
        q = self.db.query(ComplianceCalendarEntry)
        if business_entity_id is not None:
            q = q.filter(ComplianceCalendarEntry.business_entity_id == business_entity_id)
        if status:
            q = q.filter(ComplianceCalendarEntry.status == status)
        if due_from is not None:
            q = q.filter(ComplianceCalendarEntry.due_date >= due_from)
        if due_to is not None:
            q = q.filter(ComplianceCalendarEntry.due_date <= due_to)
        return q

    def completed_recurring(self) -> List[ComplianceCalendarEntry]:
        return (
            self.db.query(ComplianceCalendarEntry)
            .filter(
                ComplianceCalendarEntry.status == "completed",
                ComplianceCalendarEntry.is_recurring.is_(True),
            )
            .order_by(ComplianceCalendarEntry.id.asc())
            .all()
        )

    def count_for_entity(self, business_entity_id: int) -> int:
        return (
            self.db.query(ComplianceCalendarEntry)
            .filter(ComplianceCalendarEntry.business_entity_id == business_entity_id)
            .count()
        )
