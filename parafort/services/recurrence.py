# parafort/services/recurrence.py
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from parafort.core.exceptions import InvalidTransitionError, NotFoundError
from parafort.crud.compliance_calendar import CalendarStore
from parafort.crud.compliance_notification import NotificationStore
from parafort.models.compliance_calendar import ComplianceCalendarEntry
from parafort.services.compliance_catalog import ComplianceCatalog
from parafort.services.due_dates import add_interval
from parafort.services.reminders import ReminderScheduler

log = logging.getLogger("parafort.recurrence")

# allowed calendar status moves
TRANSITIONS = {
    "pending": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


class RecurrenceRoller:
    """
    Completion/cancellation of calendar entries and creation of the next
    occurrence of recurring ones. `roll_forward` only flushes; the public
    lifecycle methods commit.
    """

    def __init__(
        self,
        db: Session,
        *,
        catalog: ComplianceCatalog,
        calendar: CalendarStore,
        notifications: NotificationStore,
        scheduler: ReminderScheduler,
        clock,
        channels: Sequence[str],
    ):
        self.db = db
        self.catalog = catalog
        self.calendar = calendar
        self.notifications = notifications
        self.scheduler = scheduler
        self.clock = clock
        self.channels = tuple(channels)

    def roll_forward(self, completed: ComplianceCalendarEntry) -> Optional[ComplianceCalendarEntry]:
        if completed.status != "completed" or not completed.is_recurring:
            return None
        if not completed.recurring_interval:
            log.warning("recurring entry=%s has no interval; not rolled forward", completed.id)
            return None

        next_due = add_interval(completed.due_date, completed.recurring_interval)
        if self.calendar.find_by_key(completed.business_entity_id, completed.event_type, next_due) is not None:
            log.debug("entry=%s already rolled forward to %s", completed.id, next_due)
            return None

        now = self.clock.now()
        entry = self.calendar.insert(
            ComplianceCalendarEntry(
                business_entity_id=completed.business_entity_id,
                event_type=completed.event_type,
                event_title=completed.event_title,
                event_description=completed.event_description,
                due_date=next_due,
                status="pending",
                priority=completed.priority,
                category=completed.category,
                is_recurring=True,
                recurring_interval=completed.recurring_interval,
                created_at=now,
                updated_at=now,
            )
        )
        if entry is None:
            return None

        self.scheduler.schedule(
            entry,
            self.catalog.lead_times_for(completed.event_type),
            self.channels,
            entity=completed.business_entity,
        )
        log.info(
            "rolled entry=%s (%s) forward: %s -> %s as entry=%s",
            completed.id, completed.event_type, completed.due_date, next_due, entry.id,
        )
        return entry

    def roll_forward_completed(self) -> int:
        """Sweep every completed recurring entry; safe to run repeatedly."""
        created = 0
        for completed in self.calendar.completed_recurring():
            try:
                if self.roll_forward(completed) is not None:
                    created += 1
                self.db.commit()
            except Exception:
                self.db.rollback()
                log.exception("roll-forward failed for entry=%s", completed.id)
        return created

    # ---- lifecycle -----------------------------------------------------------
    def _load(self, entry_id: int, target: str) -> ComplianceCalendarEntry:
        entry = self.calendar.get(entry_id)
        if entry is None:
            raise NotFoundError("compliance_calendar_entry", entry_id)
        if target not in TRANSITIONS.get(entry.status, set()):
            raise InvalidTransitionError(entry.id, entry.status, target)
        return entry

    def complete_entry(self, entry_id: int) -> Tuple[ComplianceCalendarEntry, Optional[ComplianceCalendarEntry]]:
        entry = self._load(entry_id, "completed")
        try:
            self.calendar.mark_completed(entry, self.clock.now())
            cancelled = self.notifications.cancel_pending_for_entry(entry.id)
            next_entry = self.roll_forward(entry)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        log.info(
            "entry=%s completed; %d pending reminders cancelled; next=%s",
            entry.id, cancelled, next_entry.id if next_entry is not None else None,
        )
        return entry, next_entry

    def cancel_entry(self, entry_id: int) -> ComplianceCalendarEntry:
        entry = self._load(entry_id, "cancelled")
        try:
            self.calendar.mark_cancelled(entry, self.clock.now())
            cancelled = self.notifications.cancel_pending_for_entry(entry.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        log.info("entry=%s cancelled; %d pending reminders cancelled", entry.id, cancelled)
        return entry
