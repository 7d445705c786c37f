# errors.py — error types raised by the data layer and converted by actions.py
from __future__ import annotations


class TrackerError(RuntimeError):
    """Base error. `code` mirrors the HTTP-ish category the UI reacts to."""

    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthRequiredError(TrackerError):
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required."):
        super().__init__(message)


class NotFoundError(TrackerError):
    code = "NOT_FOUND"


class ValidationError(TrackerError):
    code = "BAD_REQUEST"


class ConflictError(TrackerError):
    code = "CONFLICT"
