# parafort/api/v1/compliance.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from parafort.core.deps import get_engine
from parafort.schemas.compliance import (
    CalendarEntryOut,
    CompleteResult,
    ComplianceNotificationOut,
    DashboardEventOut,
    DashboardSummaryOut,
    MaterializeResult,
    NotificationStatsOut,
)
from parafort.services.compliance import ComplianceEngine

router = APIRouter(tags=["compliance"])


# -----------------------------
# Business entity calendar
# -----------------------------
@router.post(
    "/business-entities/{business_entity_id}/compliance/materialize",
    response_model=MaterializeResult,
)
def materialize_calendar(
    business_entity_id: int = Path(..., ge=1),
    engine: ComplianceEngine = Depends(get_engine),
) -> MaterializeResult:
    """Create the missing compliance calendar rows (and their reminders) for a business."""
    created = engine.materialize(business_entity_id)
    return MaterializeResult(
        business_entity_id=business_entity_id,
        created=len(created),
        items=[CalendarEntryOut.model_validate(e) for e in created],
    )


@router.get(
    "/business-entities/{business_entity_id}/compliance/upcoming",
    response_model=List[CalendarEntryOut],
)
def upcoming_events(
    business_entity_id: int = Path(..., ge=1),
    days: int = Query(90, ge=1, le=730, description="Look-ahead window in days"),
    engine: ComplianceEngine = Depends(get_engine),
):
    return engine.upcoming_events(business_entity_id, days)


@router.get(
    "/business-entities/{business_entity_id}/compliance/dashboard",
    response_model=List[DashboardEventOut],
)
def dashboard_events(
    business_entity_id: int = Path(..., ge=1),
    engine: ComplianceEngine = Depends(get_engine),
):
    return [
        DashboardEventOut(
            **CalendarEntryOut.model_validate(row["entry"]).model_dump(),
            days_until_due=row["days_until_due"],
            urgency=row["urgency"],
        )
        for row in engine.dashboard_events(business_entity_id)
    ]


@router.get(
    "/business-entities/{business_entity_id}/compliance/summary",
    response_model=DashboardSummaryOut,
)
def dashboard_summary(
    business_entity_id: int = Path(..., ge=1),
    engine: ComplianceEngine = Depends(get_engine),
):
    """Upcoming / overdue / completed counts and the next five deadlines."""
    return engine.dashboard_summary(business_entity_id)


@router.get("/compliance/notification-stats", response_model=NotificationStatsOut)
def notification_stats(
    business_entity_id: Optional[int] = Query(None, ge=1),
    engine: ComplianceEngine = Depends(get_engine),
):
    return engine.notification_stats(business_entity_id)


@router.get(
    "/business-entities/{business_entity_id}/compliance/notifications",
    response_model=List[ComplianceNotificationOut],
)
def dashboard_notifications(
    business_entity_id: int = Path(..., ge=1),
    engine: ComplianceEngine = Depends(get_engine),
):
    return engine.dashboard_notifications(business_entity_id)


# -----------------------------
# Entry lifecycle
# -----------------------------
@router.post("/compliance/entries/{entry_id}/complete", response_model=CompleteResult)
def complete_entry(
    entry_id: int = Path(..., ge=1),
    engine: ComplianceEngine = Depends(get_engine),
) -> CompleteResult:
    entry, next_entry = engine.complete_entry(entry_id)
    return CompleteResult(
        entry=CalendarEntryOut.model_validate(entry),
        next_entry=CalendarEntryOut.model_validate(next_entry) if next_entry is not None else None,
    )


@router.post("/compliance/entries/{entry_id}/cancel", response_model=CalendarEntryOut)
def cancel_entry(
    entry_id: int = Path(..., ge=1),
    engine: ComplianceEngine = Depends(get_engine),
):
    return engine.cancel_entry(entry_id)
