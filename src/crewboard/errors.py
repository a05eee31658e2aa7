"""Operational error taxonomy.

Every error a handler or service raises on purpose is an AppError. It
carries its own HTTP status and its message is shown to the client
verbatim. Anything else that escapes a request is a bug: it is logged
and reduced to a generic 500 outside development (see api/errors.py).
"""


class AppError(Exception):
    """Known, expected failure with an explicit HTTP status."""

    status_code: int = 500
    is_operational: bool = True

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def status(self) -> str:
        """'fail' for client errors, 'error' for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400


class Unauthorized(AppError):
    """Missing, invalid or expired credential."""

    status_code = 401


class Forbidden(AppError):
    """Authenticated, but the role does not allow it."""

    status_code = 403


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409


class InternalError(AppError):
    status_code = 500
