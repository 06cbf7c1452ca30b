# parafort/models/compliance_notification.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from parafort.db.base import Base

NOTIFICATION_TYPES = ("email", "sms", "dashboard")
NOTIFICATION_STATUS = ("pending", "sent", "failed", "cancelled")

# delivery_attempts at this value is terminal ('failed')
MAX_DELIVERY_ATTEMPTS = 3


class ComplianceNotification(Base):
    """One scheduled reminder for one calendar entry on one channel."""

    __tablename__ = "compliance_notifications"

    id = Column(Integer, primary_key=True)
    business_entity_id = Column(
        Integer, ForeignKey("business_entities.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    compliance_calendar_id = Column(
        Integer, ForeignKey("compliance_calendar.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    notification_type = Column(String(20), nullable=False)  # email | sms | dashboard
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    scheduled_date = Column(Date, nullable=False, index=True)
    sent_date = Column(DateTime, nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    delivery_attempts = Column(Integer, nullable=False, default=0)
    error_text = Column(Text, nullable=True)

    recipient = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    calendar_entry = relationship("ComplianceCalendarEntry", back_populates="notifications")

    __table_args__ = (
        CheckConstraint(
            f"notification_type IN {NOTIFICATION_TYPES}",
            name="ck_compliance_notifications_type_allowed",
        ),
        CheckConstraint(
            f"status IN {NOTIFICATION_STATUS}",
            name="ck_compliance_notifications_status_allowed",
        ),
        Index("ix_compliance_notifications_status_scheduled", "status", "scheduled_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<ComplianceNotification id={self.id} entry={self.compliance_calendar_id} "
            f"type={self.notification_type} on={self.scheduled_date} status={self.status} "
            f"attempts={self.delivery_attempts}>"
        )
