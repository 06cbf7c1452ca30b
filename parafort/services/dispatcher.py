# parafort/services/dispatcher.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Set

from sqlalchemy.orm import Session

from parafort.core.exceptions import DeliveryFailure
from parafort.crud.compliance_notification import NotificationStore
from parafort.crud.notification import InAppNotificationStore
from parafort.models.compliance_notification import ComplianceNotification, MAX_DELIVERY_ATTEMPTS
from parafort.models.notification import Notification
from parafort.services.channels import DeliveryResult, SendChannel
from parafort.services.due_dates import days_until, urgency_tier
from parafort.services.messages import in_app_text, render_reminder

log = logging.getLogger("parafort.dispatcher")


@dataclass
class DispatchReport:
    selected: int = 0
    sent: int = 0
    retried: int = 0
    failed: int = 0
    cancelled: int = 0
    errors: int = 0
    in_app_created: int = 0
    by_urgency: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class NotificationDispatcher:
    """
    Sweeps pending reminders whose fire date has arrived and pushes them
    through their channel.

    Each notification is handled and committed on its own; one bad row never
    stops the sweep. Rows leave the pending set only by being sent, by
    exhausting MAX_DELIVERY_ATTEMPTS, or by their calendar entry closing.
    """

    def __init__(
        self,
        db: Session,
        *,
        notifications: NotificationStore,
        in_app: InAppNotificationStore,
        channels: Mapping[str, SendChannel],
        clock,
        client_url: str = "",
        max_batch: int = 200,
    ):
        self.db = db
        self.notifications = notifications
        self.in_app = in_app
        self.channels = dict(channels)
        self.clock = clock
        self.dashboard_url = f"{client_url.rstrip('/')}/compliance-dashboard"
        self.max_batch = max_batch

    def dispatch_due(self, now: Optional[datetime] = None) -> DispatchReport:
        now = now or self.clock.now()
        report = DispatchReport()

        # batches of max_batch until nothing due is left; a row is tried once per run
        seen: Set[int] = set()
        while True:
            due = self.notifications.find_due(now, limit=self.max_batch, exclude_ids=seen)
            if not due:
                break
            report.selected += len(due)

            for notification in due:
                notification_id = notification.id
                seen.add(notification_id)
                try:
                    outcome = self._dispatch_one(notification, now, report)
                    self.db.commit()
                except Exception:
                    self.db.rollback()
                    report.errors += 1
                    log.exception("dispatch failed for notification=%s", notification_id)
                    self._record_crash(notification_id)
                    continue
                setattr(report, outcome, getattr(report, outcome) + 1)

        log.info(
            "dispatch run at %s: selected=%d sent=%d retried=%d failed=%d cancelled=%d errors=%d in_app=%d",
            now.isoformat(), report.selected, report.sent, report.retried,
            report.failed, report.cancelled, report.errors, report.in_app_created,
        )
        return report

    # ---- per notification ----------------------------------------------------
    def _dispatch_one(self, n: ComplianceNotification, now: datetime, report: DispatchReport) -> str:
        entry = n.calendar_entry
        if entry is None or entry.status != "pending":
            # entry closed after the reminder was queued
            n.status = "cancelled"
            self.db.flush()
            return "cancelled"

        entity = entry.business_entity
        days = days_until(entry.due_date, now)
        urgency = urgency_tier(days, entry.priority)
        report.by_urgency[urgency] = report.by_urgency.get(urgency, 0) + 1

        if self._write_in_app(n, entry, entity, days, now):
            report.in_app_created += 1

        content = render_reminder(
            urgency=urgency,
            event_title=entry.event_title,
            event_description=entry.event_description,
            due_date=entry.due_date,
            days_until_due=days,
            priority=entry.priority,
            business_name=entity.name if entity is not None else None,
            entity_type=entity.entity_type if entity is not None else None,
            dashboard_url=self.dashboard_url,
        )
        result = self._send(n, content["subject"], content["body"], content.get("html"))

        if result.delivered:
            self.notifications.mark_sent(n, now)
            log.debug("notification=%s sent via %s (%s)", n.id, n.notification_type, result.provider or "-")
            return "sent"

        attempts = self.notifications.increment_attempts(n, result.error)
        if attempts >= MAX_DELIVERY_ATTEMPTS:
            self.notifications.mark_failed(n, result.error)
            log.error(
                "notification=%s failed permanently after %d attempts: %s",
                n.id, attempts, result.error,
            )
            return "failed"

        log.warning(
            "notification=%s delivery attempt %d/%d failed: %s",
            n.id, attempts, MAX_DELIVERY_ATTEMPTS, result.error,
        )
        return "retried"

    def _send(self, n: ComplianceNotification, subject: str, body: str, html: Optional[str] = None) -> DeliveryResult:
        channel = self.channels.get(n.notification_type)
        if channel is None:
            return DeliveryResult(delivered=False, error=f"channel '{n.notification_type}' not configured")
        try:
            return channel.send(n.recipient, subject, body, html=html)
        except DeliveryFailure as exc:
            return DeliveryResult(delivered=False, error=exc.message, provider=channel.name)

    def _write_in_app(self, n: ComplianceNotification, entry, entity, days: int, now: datetime) -> bool:
        # one bell notification per (entry, fire date), whichever channel gets there first
        if self.in_app.exists_for_slot(entry.id, n.scheduled_date):
            return False
        text = in_app_text(
            event_title=entry.event_title,
            event_description=entry.event_description,
            business_name=entity.name if entity is not None else None,
            days_until_due=days,
        )
        self.in_app.insert(
            Notification(
                business_entity_id=entry.business_entity_id,
                user_id=entity.user_id if entity is not None else None,
                compliance_calendar_id=entry.id,
                reminder_date=n.scheduled_date,
                type="compliance_reminder",
                category="compliance",
                title=text["title"],
                message=text["message"],
                priority=entry.priority,
                action_url=self.dashboard_url,
                is_read=False,
                created_at=now,
            )
        )
        return True

    def _record_crash(self, notification_id: int) -> None:
        """Count an unexpected crash as a delivery attempt so the row cannot loop forever."""
        try:
            n = self.db.get(ComplianceNotification, notification_id)
            if n is None or n.status != "pending":
                return
            attempts = self.notifications.increment_attempts(n, "unexpected dispatch error")
            if attempts >= MAX_DELIVERY_ATTEMPTS:
                self.notifications.mark_failed(n)
            self.db.commit()
        except Exception:
            self.db.rollback()
            log.exception("could not record failed attempt for notification=%s", notification_id)
