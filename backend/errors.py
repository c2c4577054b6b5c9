"""
Dispatch error kinds

Raised by the dispatch services and translated to HTTP responses by the
handler registered in main.py. Every kind carries its status code so the
services never import FastAPI.
"""

from typing import Any, List, Optional


class DispatchError(Exception):
    """Base class for caller-visible dispatch failures."""

    kind = "ConflictOrInternal"
    status_code = 500

    def __init__(self, detail: str, details: Optional[List[Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.kind, "detail": self.detail}
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailed(DispatchError):
    """Malformed or missing input. `details` holds field-level errors."""

    kind = "ValidationError"
    status_code = 400

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls(message, details=[{"loc": [field], "msg": message}])


class UnauthenticatedError(DispatchError):
    kind = "Unauthenticated"
    status_code = 401


class ForbiddenError(DispatchError):
    kind = "Forbidden"
    status_code = 403


class NotFoundError(DispatchError):
    kind = "NotFound"
    status_code = 404


class ConflictOrInternalError(DispatchError):
    """Record store failure. Integrity conflicts surface as 409."""

    kind = "ConflictOrInternal"

    def __init__(self, detail: str, conflict: bool = False, details: Optional[List[Any]] = None):
        super().__init__(detail, details)
        self.status_code = 409 if conflict else 500
