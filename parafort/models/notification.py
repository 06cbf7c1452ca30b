# parafort/models/notification.py
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey, UniqueConstraint
from parafort.db.base import Base


class Notification(Base):
    """
    In-app (dashboard bell) notification. Written by the dispatcher for every
    reminder slot, whatever happened on the external channel.
    """

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    business_entity_id = Column(
        Integer, ForeignKey("business_entities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(64), nullable=True, index=True)
    compliance_calendar_id = Column(
        Integer, ForeignKey("compliance_calendar.id", ondelete="CASCADE"), nullable=True
    )
    # reminder slot this row belongs to (one per entry per fire date)
    reminder_date = Column(Date, nullable=True)

    type = Column(String(50), nullable=False, default="compliance_reminder")
    category = Column(String(50), nullable=False, default="compliance")
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(10), nullable=False, default="medium")
    action_url = Column(String(255), nullable=True)

    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "compliance_calendar_id", "reminder_date",
            name="uq_notifications_entry_reminder_date",
        ),
    )
