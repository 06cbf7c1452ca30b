# parafort/services/compliance.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from parafort.core.clock import SystemClock
from parafort.core.config import Settings, get_settings
from parafort.core.exceptions import NotFoundError
from parafort.crud.business_entity import EntityStore
from parafort.crud.compliance_calendar import CalendarStore
from parafort.crud.compliance_notification import NotificationStore
from parafort.crud.notification import InAppNotificationStore
from parafort.models.compliance_calendar import ComplianceCalendarEntry
from parafort.models.compliance_notification import NOTIFICATION_STATUS, ComplianceNotification
from parafort.models.notification import Notification
from parafort.services.channels import SendChannel, build_channels
from parafort.services.compliance_catalog import ComplianceCatalog, get_catalog
from parafort.services.dispatcher import DispatchReport, NotificationDispatcher
from parafort.services.due_dates import dashboard_urgency, days_until
from parafort.services.materializer import EventMaterializer
from parafort.services.recurrence import RecurrenceRoller
from parafort.services.reminders import ReminderScheduler

log = logging.getLogger("parafort.compliance")

DASHBOARD_WINDOW_DAYS = 30
SUMMARY_NEXT_EVENTS = 5


class ComplianceEngine:
    """
    Wires the stores, the catalogue, the channels and the clock together for
    one database session. API routes and scheduler jobs build one per request
    or per job run.
    """

    def __init__(
        self,
        db: Session,
        *,
        clock=None,
        catalog: Optional[ComplianceCatalog] = None,
        channels: Optional[Mapping[str, SendChannel]] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.catalog = catalog or get_catalog()
        self.channels = dict(channels) if channels is not None else build_channels(self.settings)

        self.entities = EntityStore(db)
        self.calendar = CalendarStore(db)
        self.notifications = NotificationStore(db)
        self.in_app = InAppNotificationStore(db)

        # reminders are only scheduled for channels that can deliver them
        channel_names = [c for c in self.settings.notify_channels if c in self.channels]
        if "dashboard" not in channel_names:
            channel_names.append("dashboard")

        self.scheduler = ReminderScheduler(self.notifications, clock=self.clock)
        self.materializer = EventMaterializer(
            db,
            catalog=self.catalog,
            entities=self.entities,
            calendar=self.calendar,
            scheduler=self.scheduler,
            clock=self.clock,
            channels=channel_names,
        )
        self.roller = RecurrenceRoller(
            db,
            catalog=self.catalog,
            calendar=self.calendar,
            notifications=self.notifications,
            scheduler=self.scheduler,
            clock=self.clock,
            channels=channel_names,
        )
        self.dispatcher = NotificationDispatcher(
            db,
            notifications=self.notifications,
            in_app=self.in_app,
            channels=self.channels,
            clock=self.clock,
            client_url=self.settings.client_url,
            max_batch=self.settings.notify_max_batch,
        )

    # ---- commands --------------------------------------------------------------
    def materialize(self, business_entity_id: int) -> List[ComplianceCalendarEntry]:
        return self.materializer.materialize(business_entity_id)

    def materialize_recent_entities(self, since: Optional[datetime] = None) -> Dict[str, int]:
        if since is None:
            since = self.clock.now() - timedelta(days=self.settings.new_entity_scan_days)
        return self.materializer.materialize_recent_entities(since)

    def dispatch_due(self, now: Optional[datetime] = None) -> DispatchReport:
        return self.dispatcher.dispatch_due(now)

    def roll_forward(self, entry_id: int) -> Optional[ComplianceCalendarEntry]:
        entry = self.calendar.get(entry_id)
        if entry is None:
            raise NotFoundError("compliance_calendar_entry", entry_id)
        try:
            created = self.roller.roll_forward(entry)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return created

    def roll_forward_completed(self) -> int:
        return self.roller.roll_forward_completed()

    def complete_entry(self, entry_id: int) -> Tuple[ComplianceCalendarEntry, Optional[ComplianceCalendarEntry]]:
        return self.roller.complete_entry(entry_id)

    def cancel_entry(self, entry_id: int) -> ComplianceCalendarEntry:
        return self.roller.cancel_entry(entry_id)

    # ---- queries ---------------------------------------------------------------
    def _require_entity(self, business_entity_id: int) -> None:
        if self.entities.get_business_entity(business_entity_id) is None:
            raise NotFoundError("business_entity", business_entity_id)

    def upcoming_events(self, business_entity_id: int, days: int = 90) -> List[ComplianceCalendarEntry]:
        self._require_entity(business_entity_id)
        today = self.clock.now().date()
        return self.calendar.list_for_entity(
            business_entity_id,
            status="pending",
            due_from=today,
            due_to=today + timedelta(days=days),
        )

    def dashboard_events(self, business_entity_id: int) -> List[Dict[str, Any]]:
        """Pending entries for the next 30 days, each with days_until_due and urgency."""
        now = self.clock.now()
        out = []
        for entry in self.upcoming_events(business_entity_id, DASHBOARD_WINDOW_DAYS):
            days = days_until(entry.due_date, now)
            out.append({"entry": entry, "days_until_due": days, "urgency": dashboard_urgency(days)})
        return out

    def dashboard_summary(self, business_entity_id: int) -> Dict[str, Any]:
        """
        Headline counts for one business plus its next few deadlines.

        "overdue" is derived: a pending entry whose due date is before today.
        """
        self._require_entity(business_entity_id)
        today = self.clock.now().date()
        count = self.calendar.count
        return {
            "business_entity_id": business_entity_id,
            "total_events": count(business_entity_id),
            "upcoming_events": count(business_entity_id, status="pending", due_from=today),
            "overdue_events": count(business_entity_id, status="pending", due_before=today),
            "completed_events": count(business_entity_id, status="completed"),
            "events_next_30_days": count(
                business_entity_id,
                status="pending",
                due_from=today,
                due_to=today + timedelta(days=DASHBOARD_WINDOW_DAYS),
            ),
            "next_events": self.calendar.list_for_entity(
                business_entity_id, status="pending", due_from=today, limit=SUMMARY_NEXT_EVENTS
            ),
        }

    def notification_stats(self, business_entity_id: Optional[int] = None) -> Dict[str, Any]:
        """Reminder totals by status, for one business or across all of them."""
        if business_entity_id is not None:
            self._require_entity(business_entity_id)
        now = self.clock.now()
        by_status = self.notifications.count_by_status(business_entity_id)
        out: Dict[str, Any] = {s: by_status.get(s, 0) for s in NOTIFICATION_STATUS}
        out["total"] = sum(by_status.values())
        out["due_now"] = self.notifications.count_due(now, business_entity_id)
        out["generated_at"] = now
        return out

    def weekly_report(self) -> Dict[str, Any]:
        """System-wide compliance snapshot for administrators (weekly job)."""
        today = self.clock.now().date()
        count = self.calendar.count
        report = {
            "businesses": self.entities.count(),
            "upcoming_events": count(status="pending", due_from=today),
            "overdue_events": count(status="pending", due_before=today),
            "events_next_30_days": count(
                status="pending", due_from=today, due_to=today + timedelta(days=DASHBOARD_WINDOW_DAYS)
            ),
            "completed_events": count(status="completed"),
            "notifications": self.notification_stats(),
        }
        log.info(
            "weekly compliance report: businesses=%d upcoming=%d overdue=%d next_30_days=%d",
            report["businesses"], report["upcoming_events"], report["overdue_events"],
            report["events_next_30_days"],
        )
        return report

    def dashboard_notifications(self, business_entity_id: int) -> List[ComplianceNotification]:
        self._require_entity(business_entity_id)
        today: date = self.clock.now().date()
        return self.notifications.list_dashboard(
            business_entity_id, today - timedelta(days=DASHBOARD_WINDOW_DAYS), today
        )

    def list_in_app_notifications(
        self,
        business_entity_id: int,
        *,
        unread_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Notification]:
        self._require_entity(business_entity_id)
        return self.in_app.list_for_entity(
            business_entity_id, unread_only=unread_only, limit=limit, offset=offset
        )

    def mark_in_app_read(self, notification_id: int) -> Notification:
        obj = self.in_app.mark_read(notification_id)
        if obj is None:
            raise NotFoundError("notification", notification_id)
        self.db.commit()
        return obj
