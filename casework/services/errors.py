"""Service-layer exceptions.

Each error carries the HTTP status it maps to; `main.py` registers one
handler for the whole hierarchy so routers can let them propagate.
"""


class CaseworkError(Exception):
    """Base exception for service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CaseworkError, ValueError):
    """Missing or malformed input."""

    status_code = 400


class ForbiddenError(CaseworkError):
    """Caller lacks the required role, permission or stage grant."""

    status_code = 403


class NotFoundError(CaseworkError):
    status_code = 404


class ConflictError(CaseworkError):
    """Duplicate key, blocked delete or concurrent modification."""

    status_code = 409
