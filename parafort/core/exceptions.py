# parafort/core/exceptions.py
from __future__ import annotations

from typing import Any, Optional


class ComplianceError(Exception):
    """Base class for compliance engine errors."""

    status_code = 500
    error_type = "compliance_error"

    def __init__(self, message: str, *, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(ComplianceError):
    """Referenced business entity or calendar entry does not exist."""

    status_code = 404
    error_type = "not_found"

    def __init__(self, kind: str, ident: Any):
        super().__init__(f"{kind} {ident} not found", details={"kind": kind, "id": ident})
        self.kind = kind
        self.ident = ident


class InvalidTransitionError(ComplianceError):
    status_code = 409
    error_type = "invalid_transition"

    def __init__(self, entry_id: int, current: str, target: str):
        super().__init__(
            f"Calendar entry {entry_id} cannot move from '{current}' to '{target}'",
            details={"entry_id": entry_id, "from": current, "to": target},
        )
        self.current = current
        self.target = target


class DeliveryFailure(ComplianceError):
    """Transient channel failure; retried through the persisted attempts counter."""

    status_code = 502
    error_type = "delivery_failure"


class ConfigurationError(ComplianceError):
    """Malformed rule catalogue or missing channel credentials."""

    status_code = 500
    error_type = "configuration_error"
