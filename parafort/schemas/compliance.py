# parafort/schemas/compliance.py
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EntryStatus = Literal["pending", "completed", "cancelled"]
NotificationStatus = Literal["pending", "sent", "failed", "cancelled"]
DashboardUrgency = Literal["high", "medium", "low"]


class CalendarEntryOut(BaseModel):
    id: int
    business_entity_id: int
    event_type: str
    event_title: str
    event_description: Optional[str] = None
    due_date: date
    status: EntryStatus
    completed_date: Optional[datetime] = None
    priority: str
    category: str
    is_recurring: bool
    recurring_interval: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DashboardEventOut(CalendarEntryOut):
    days_until_due: int = Field(..., description="Whole days from today to the due date.")
    urgency: DashboardUrgency


class MaterializeResult(BaseModel):
    business_entity_id: int
    created: int = Field(..., description="Number of new calendar rows.")
    items: List[CalendarEntryOut] = Field(default_factory=list)


class CompleteResult(BaseModel):
    entry: CalendarEntryOut
    next_entry: Optional[CalendarEntryOut] = Field(
        None, description="Next occurrence created for a recurring entry, if any."
    )


class ComplianceNotificationOut(BaseModel):
    id: int
    business_entity_id: int
    compliance_calendar_id: int
    notification_type: str
    title: str
    message: str
    scheduled_date: date
    sent_date: Optional[datetime] = None
    status: NotificationStatus
    delivery_attempts: int
    error_text: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class InAppNotificationOut(BaseModel):
    id: int
    business_entity_id: int
    compliance_calendar_id: Optional[int] = None
    reminder_date: Optional[date] = None
    type: str
    category: str
    title: str
    message: str
    priority: str
    action_url: Optional[str] = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DispatchReportOut(BaseModel):
    selected: int = 0
    sent: int = 0
    retried: int = 0
    failed: int = 0
    cancelled: int = 0
    errors: int = 0
    in_app_created: int = 0
    by_urgency: Dict[str, int] = Field(default_factory=dict)


class DashboardSummaryOut(BaseModel):
    business_entity_id: int
    total_events: int
    upcoming_events: int
    overdue_events: int = Field(..., description="Pending entries whose due date has passed.")
    completed_events: int
    events_next_30_days: int
    next_events: List[CalendarEntryOut] = Field(default_factory=list)


class NotificationStatsOut(BaseModel):
    total: int = 0
    pending: int = 0
    sent: int = 0
    failed: int = 0
    cancelled: int = 0
    due_now: int = Field(0, description="Pending reminders the next dispatch run would pick up.")
    generated_at: datetime
