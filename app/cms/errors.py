"""
Error taxonomy for the API.

Services raise these; the app factory turns them into JSON responses. Anything
that is not a CMSError is treated as unexpected and answered with a generic 500.
"""
from __future__ import annotations

from typing import Any


class CMSError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class Unauthenticated(CMSError):
    status_code = 401
    message = "Unauthorized"


class Forbidden(CMSError):
    status_code = 403
    message = "Forbidden"

    def __init__(self, message: str | None = None, *, permission: str | None = None) -> None:
        super().__init__(message)
        self.permission = permission


class NotFound(CMSError):
    status_code = 404
    message = "Not found"


class ValidationFailed(CMSError):
    status_code = 400
    message = "Validation failed"

    def __init__(self, errors: list[dict[str, str]], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.errors}


class Conflict(CMSError):
    # Duplicate slugs are reported as a bad request, not 409.
    status_code = 400
    message = "Conflict"
