# parafort/api/v1/notifications.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path, Query

from parafort.core.deps import get_engine
from parafort.schemas.compliance import DispatchReportOut, InAppNotificationOut
from parafort.services.compliance import ComplianceEngine

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[InAppNotificationOut])
def list_notifications(
    business_entity_id: int = Query(..., ge=1),
    unread_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    engine: ComplianceEngine = Depends(get_engine),
):
    """In-app compliance notifications for one business, newest first."""
    return engine.list_in_app_notifications(
        business_entity_id, unread_only=unread_only, limit=limit, offset=offset
    )


@router.post("/{notification_id}/read", response_model=InAppNotificationOut)
def mark_read(
    notification_id: int = Path(..., ge=1),
    engine: ComplianceEngine = Depends(get_engine),
):
    return engine.mark_in_app_read(notification_id)


@router.post("/dispatch", response_model=DispatchReportOut)
def dispatch_now(engine: ComplianceEngine = Depends(get_engine)) -> DispatchReportOut:
    """Run one dispatch sweep immediately (same work as the daily job)."""
    return DispatchReportOut(**engine.dispatch_due().as_dict())
