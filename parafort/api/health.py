# parafort/api/health.py
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from parafort.core.deps import get_db
from parafort.core.exceptions import ConfigurationError
from parafort.services.compliance_catalog import get_catalog

router = APIRouter(tags=["health"])

_NO_STORE = {"Cache-Control": "no-store"}


@router.get("/healthz")
def healthz() -> dict:
    # liveness only; no database or catalogue access
    return {
        "ok": True,
        "service": "parafort-compliance",
        "status": "healthy",
        "ts": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/readyz")
def readyz(db: Session = Depends(get_db)):
    """Ready when the database answers and the compliance rule catalogue loads."""
    body = {"ok": True}

    t0 = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        body.update(ok=False, db="down", db_error=str(e))
    else:
        body.update(db="up", db_latency_ms=round((time.perf_counter() - t0) * 1000.0, 2))

    try:
        catalog = get_catalog()
    except ConfigurationError as e:
        body.update(ok=False, catalog="invalid", catalog_error=e.message)
    else:
        body["catalog"] = {
            "version": catalog.version,
            "templates": len(catalog.templates),
            "rules": len(catalog.rules),
        }

    code = status.HTTP_200_OK if body["ok"] else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=body, headers=_NO_STORE)
