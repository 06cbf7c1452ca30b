# parafort/crud/compliance_notification.py
from __future__ import annotations

from datetime import date, datetime
from typing import Collection, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from parafort.models.compliance_notification import ComplianceNotification, MAX_DELIVERY_ATTEMPTS


class NotificationStore:
    """Scheduled reminder rows and their delivery bookkeeping (flush only)."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, notification: ComplianceNotification) -> ComplianceNotification:
        self.db.add(notification)
        self.db.flush()
        return notification

    def find_due(
        self,
        now: datetime,
        *,
        limit: int = 200,
        exclude_ids: Optional[Collection[int]] = None,
    ) -> List[ComplianceNotification]:
        """Pending rows whose fire date has arrived and that still have attempts left."""
        today = now.date() if isinstance(now, datetime) else now
        q = (
            self.db.query(ComplianceNotification)
            .options(joinedload(ComplianceNotification.calendar_entry))
            .filter(
                ComplianceNotification.status == "pending",
                ComplianceNotification.scheduled_date <= today,
                ComplianceNotification.delivery_attempts < MAX_DELIVERY_ATTEMPTS,
            )
        )
        if exclude_ids:
            q = q.filter(ComplianceNotification.id.notin_(list(exclude_ids)))
        return (
            q.order_by(ComplianceNotification.scheduled_date.asc(), ComplianceNotification.id.asc())
            .limit(limit)
            .all()
        )

    def count_due(self, now: datetime, business_entity_id: Optional[int] = None) -> int:
        today = now.date() if isinstance(now, datetime) else now
        q = self.db.query(ComplianceNotification).filter(
            ComplianceNotification.status == "pending",
            ComplianceNotification.scheduled_date <= today,
            ComplianceNotification.delivery_attempts < MAX_DELIVERY_ATTEMPTS,
        )
        if business_entity_id is not None:
            q = q.filter(ComplianceNotification.business_entity_id == business_entity_id)
        return q.count()

    def count_by_status(self, business_entity_id: Optional[int] = None) -> Dict[str, int]:
        q = self.db.query(ComplianceNotification.status, func.count(ComplianceNotification.id))
        if business_entity_id is not None:
            q = q.filter(ComplianceNotification.business_entity_id == business_entity_id)
        return {status: int(n) for status, n in q.group_by(ComplianceNotification.status).all()}

    def mark_sent(self, notification: ComplianceNotification, at: datetime) -> None:
        notification.status = "sent"
        notification.sent_date = at
        notification.delivery_attempts = (notification.delivery_attempts or 0) + 1
        notification.error_text = None
        self.db.flush()

    def increment_attempts(self, notification: ComplianceNotification, error: Optional[str] = None) -> int:
        notification.delivery_attempts = (notification.delivery_attempts or 0) + 1
        if error:
            notification.error_text = error[:2000]
        self.db.flush()
        return notification.delivery_attempts

    def mark_failed(self, notification: ComplianceNotification, error: Optional[str] = None) -> None:
        notification.status = "failed"
        if error:
            notification.error_text = error[:2000]
        self.db.flush()

    def cancel_pending_for_entry(self, compliance_calendar_id: int) -> int:
        count = (
            self.db.query(ComplianceNotification)
            .filter(
                ComplianceNotification.compliance_calendar_id == compliance_calendar_id,
                ComplianceNotification.status == "pending",
            )
            .update({ComplianceNotification.status: "cancelled"}, synchronize_session="fetch")
        )
        self.db.flush()
        return int(count or 0)

    def list_for_entry(self, compliance_calendar_id: int) -> List[ComplianceNotification]:
        return (
            self.db.query(ComplianceNotification)
            .filter(ComplianceNotification.compliance_calendar_id == compliance_calendar_id)
            .order_by(ComplianceNotification.scheduled_date.asc(), ComplianceNotification.id.asc())
            .all()
        )

    def list_dashboard(self, business_entity_id: int, since: date, until: date) -> List[ComplianceNotification]:
        return (
            self.db.query(ComplianceNotification)
            .filter(
                ComplianceNotification.business_entity_id == business_entity_id,
                ComplianceNotification.notification_type == "dashboard",
                ComplianceNotification.scheduled_date >= since,
                ComplianceNotification.scheduled_date <= until,
            )
            .order_by(ComplianceNotification.scheduled_date.desc(), ComplianceNotification.id.desc())
            .all()
        )
