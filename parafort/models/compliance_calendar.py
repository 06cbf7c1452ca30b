# parafort/models/compliance_calendar.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from parafort.db.base import Base

# NOTE: keep simple string "enums" for SQLite portability
ENTRY_STATUS = ("pending", "completed", "cancelled")
ENTRY_PRIORITY = ("high", "medium", "low")
RECURRING_INTERVALS = ("monthly", "quarterly", "annual", "biennial")


class ComplianceCalendarEntry(Base):
    __tablename__ = "compliance_calendar"

    id = Column(Integer, primary_key=True, index=True)

    business_entity_id = Column(
        Integer, ForeignKey("business_entities.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    # boir_filing, annual_report, ca_llc_fee, ...
    event_type = Column(String(64), nullable=False, index=True)
    event_title = Column(String(255), nullable=False)
    event_description = Column(Text, nullable=True)

    due_date = Column(Date, nullable=False, index=True)

    # pending | completed | cancelled
    status = Column(String(20), nullable=False, default="pending", index=True)
    completed_date = Column(DateTime, nullable=True)

    priority = Column(String(10), nullable=False, default="medium")
    category = Column(String(50), nullable=False)

    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_interval = Column(String(20), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    business_entity = relationship("BusinessEntity")
    notifications = relationship(
        "ComplianceNotification",
        back_populates="calendar_entry",
        order_by="ComplianceNotification.scheduled_date",
    )

    __table_args__ = (
        # dedup key for materialization and roll-forward
        UniqueConstraint(
            "business_entity_id", "event_type", "due_date",
            name="uq_compliance_calendar_entity_event_due",
        ),
        CheckConstraint(
            f"status IN {ENTRY_STATUS}",
            name="ck_compliance_calendar_status_allowed",
        ),
        CheckConstraint(
            f"priority IN {ENTRY_PRIORITY}",
            name="ck_compliance_calendar_priority_allowed",
        ),
        CheckConstraint(
            "(NOT is_recurring) OR (recurring_interval IS NOT NULL)",
            name="ck_compliance_calendar_recurring_interval",
        ),
        Index("ix_compliance_calendar_entity_status_due", "business_entity_id", "status", "due_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<ComplianceCalendarEntry id={self.id} entity={self.business_entity_id} "
            f"type={self.event_type!r} due={self.due_date} status={self.status}>"
        )
