"""
Plan gate error hierarchy.

Provides:
- PlanGateError: base for all plan gate failures
- SyncFailure: entitlement/usage synchronization failed (absorbed by the coordinator)
- BackendRequestError: transport or HTTP failure talking to the backend
"""

from typing import Optional


class PlanGateError(Exception):
    """Base exception for plan gate failures."""

    error_code = "PLAN_GATE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class SyncFailure(PlanGateError):
    """
    Raised when a remote sync step fails or times out.

    Never escapes SyncCoordinator's public operations: it is always converted
    into the fail-safe fallback state.
    """

    error_code = "SYNC_FAILED"

    def __init__(self, operation: str, detail: str, cause: Optional[Exception] = None):
        self.operation = operation
        self.detail = detail
        self.cause = cause
        super().__init__(f"{operation} sync failed: {detail}")

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "operation": self.operation,
            "message": self.detail,
        }


class BackendRequestError(SyncFailure):
    """Raised by the backend client on transport errors and non-2xx responses."""

    error_code = "BACKEND_REQUEST_FAILED"

    def __init__(self, path: str, detail: str, status_code: Optional[int] = None):
        self.path = path
        self.status_code = status_code
        super().__init__(operation=path, detail=detail)

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.status_code is not None:
            d["status_code"] = self.status_code
        return d
