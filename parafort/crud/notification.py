# parafort/crud/notification.py
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from parafort.models.notification import Notification


class InAppNotificationStore:
    def __init__(self, db: Session):
        self.db = db

    def exists_for_slot(self, compliance_calendar_id: int, reminder_date: date) -> bool:
        row = (
            self.db.query(Notification.id)
            .filter(
                Notification.compliance_calendar_id == compliance_calendar_id,
                Notification.reminder_date == reminder_date,
            )
            .first()
        )
        return row is not None

    def insert(self, notification: Notification) -> Notification:
        self.db.add(notification)
        self.db.flush()
        return notification

    def list_for_entity(
        self,
        business_entity_id: int,
        *,
        unread_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Notification]:
        q = self.db.query(Notification).filter(Notification.business_entity_id == business_entity_id)
        if unread_only:
            q = q.filter(Notification.is_read.is_(False))
        return q.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit).all()

    def mark_read(self, notification_id: int) -> Optional[Notification]:
        obj = self.db.get(Notification, notification_id)
        if obj is not None:
            obj.is_read = True
            self.db.flush()
        return obj
