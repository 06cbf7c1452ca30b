# parafort/services/reminders.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from parafort.crud.compliance_notification import NotificationStore
from parafort.models.business_entity import BusinessEntity
from parafort.models.compliance_calendar import ComplianceCalendarEntry
from parafort.models.compliance_notification import ComplianceNotification, NOTIFICATION_TYPES
from parafort.services.due_dates import reminder_dates
from parafort.services.messages import reminder_message, reminder_title

log = logging.getLogger("parafort.reminders")


def recipient_for(channel: str, entity: Optional[BusinessEntity]) -> Optional[str]:
    """Address a channel delivers to; dashboard rows are keyed by the owning user."""
    if entity is None:
        return None
    if channel == "email":
        return entity.contact_email or None
    if channel == "sms":
        return entity.contact_phone or None
    if channel == "dashboard":
        return entity.user_id or f"business:{entity.id}"
    return None


class ReminderScheduler:
    """
    Turns one calendar entry into (lead time x channel) pending notifications.

    Fire dates that are already in the past are still created: the dispatcher's
    `scheduled_date <= now` sweep picks them up on its next pass.
    """

    def __init__(self, notifications: NotificationStore, *, clock):
        self.notifications = notifications
        self.clock = clock

    def schedule(
        self,
        entry: ComplianceCalendarEntry,
        lead_times: Iterable[int],
        channels: Sequence[str],
        *,
        entity: Optional[BusinessEntity] = None,
    ) -> List[ComplianceNotification]:
        entity = entity or entry.business_entity
        business_name = entity.name if entity is not None else None
        now: datetime = self.clock.now()

        leads = [int(n) for n in lead_times]
        created: List[ComplianceNotification] = []
        for lead, fire_date in zip(leads, reminder_dates(entry.due_date, leads)):
            for channel in channels:
                if channel not in NOTIFICATION_TYPES:
                    log.warning("unknown notification channel %r ignored (entry=%s)", channel, entry.id)
                    continue
                recipient = recipient_for(channel, entity)
                if recipient is None:
                    log.debug("no %s recipient for entity=%s; reminder not scheduled", channel, entry.business_entity_id)
                    continue

                n = ComplianceNotification(
                    business_entity_id=entry.business_entity_id,
                    compliance_calendar_id=entry.id,
                    notification_type=channel,
                    title=reminder_title(entry.event_title, lead),
                    message=reminder_message(
                        event_title=entry.event_title,
                        event_description=entry.event_description,
                        due_date=entry.due_date,
                        days_until_due=lead,
                        priority=entry.priority,
                        category=entry.category,
                        business_name=business_name,
                    ),
                    scheduled_date=fire_date,
                    status="pending",
                    delivery_attempts=0,
                    recipient=recipient,
                    created_at=now,
                )
                created.append(self.notifications.insert(n))

        log.debug(
            "scheduled %d reminders for entry=%s due=%s (past fire dates: %d)",
            len(created), entry.id, entry.due_date,
            sum(1 for n in created if n.scheduled_date <= now.date()),
        )
        return created
