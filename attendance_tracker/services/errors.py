"""
Domain errors for attendance operations.
They are HTTPExceptions so route handlers let them propagate unchanged;
main.py renders them as {"error": <message>, **extra}.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class AttendanceError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.extra = extra or {}

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        body.update(self.extra)
        return body


class ValidationError(AttendanceError):
    """Malformed input or a business rule rejecting the request."""


class ConflictError(AttendanceError):
    """Lifecycle conflict: duplicate open check-in, nothing to close."""


class ForbiddenError(AttendanceError):
    status_code = status.HTTP_403_FORBIDDEN
