# parafort/core/errors.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from parafort.core.exceptions import ComplianceError

log = logging.getLogger("parafort.errors")


# -----------------------------
# Trace id
# -----------------------------
def _ensure_trace_id(request: Request) -> str:
    """Reuse the middleware's trace id, then X-Request-ID, else mint one."""
    val = getattr(request.state, "trace_id", None)
    if val:
        return str(val)

    v = request.headers.get("x-request-id") or request.headers.get("x-correlation-id")
    trace_id = v or uuid.uuid4().hex
    request.state.trace_id = trace_id
    return trace_id


def _payload(
    *,
    message: str,
    typ: str,
    status: int,
    trace_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "ok": False,
        "error": {
            "type": typ,
            "message": message,
            "status": status,
            "trace_id": trace_id,
        },
    }
    if details is not None:
        body["error"]["details"] = details
    return body


# -----------------------------
# Handlers
# -----------------------------
def register_exception_handlers(app: FastAPI) -> None:
    """JSON error envelope for every failure path; X-Request-ID always echoed."""

    @app.exception_handler(ComplianceError)
    async def compliance_exc_handler(request: Request, exc: ComplianceError):
        trace_id = _ensure_trace_id(request)
        status_code = int(exc.status_code)
        level = logging.ERROR if status_code >= 500 else logging.WARNING
        log.log(
            level,
            "%s %s %s -> %s | trace_id=%s | %s",
            type(exc).__name__, request.method, request.url.path, status_code, trace_id, exc.message,
        )
        return JSONResponse(
            status_code=status_code,
            headers={"X-Request-ID": trace_id},
            content=_payload(
                message=exc.message,
                typ=exc.error_type,
                status=status_code,
                trace_id=trace_id,
                details=exc.details,
            ),
        )

    @app.exception_handler(HTTPException)
    async def http_exc_handler(request: Request, exc: HTTPException):
        trace_id = _ensure_trace_id(request)
        status_code = int(exc.status_code)
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        details = exc.detail if isinstance(exc.detail, dict) else None

        headers = dict(exc.headers or {})
        headers["X-Request-ID"] = trace_id

        level = logging.ERROR if status_code >= 500 else logging.WARNING
        log.log(
            level,
            "HTTPException %s %s -> %s | trace_id=%s | detail=%r",
            request.method, request.url.path, status_code, trace_id, exc.detail,
        )
        return JSONResponse(
            status_code=status_code,
            headers=headers,
            content=_payload(
                message=message,
                typ="http_error",
                status=status_code,
                trace_id=trace_id,
                details=details,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        trace_id = _ensure_trace_id(request)
        errors = exc.errors()
        log.warning(
            "ValidationError %s %s -> 422 | trace_id=%s | errors=%s",
            request.method, request.url.path, trace_id, errors,
        )
        return JSONResponse(
            status_code=422,
            headers={"X-Request-ID": trace_id},
            content=_payload(
                message="Validation failed.",
                typ="validation_error",
                status=422,
                trace_id=trace_id,
                details=[{k: e.get(k) for k in ("loc", "msg", "type")} for e in errors],
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        trace_id = _ensure_trace_id(request)
        log.exception(
            "Unhandled exception %s %s -> 500 | trace_id=%s",
            request.method, request.url.path, trace_id,
        )
        return JSONResponse(
            status_code=500,
            headers={"X-Request-ID": trace_id},
            content=_payload(
                message="Internal server error.",
                typ="internal_error",
                status=500,
                trace_id=trace_id,
            ),
        )
