"""
core/errors.py -- Error taxonomy shared by every layer.

Each error carries the HTTP status it maps to, a stable machine-readable
code, and a message that is always safe to show the caller. api/main.py
renders all of them in the same ErrorResponse envelope.

  ValidationError  400  malformed or missing input
  ConflictError    400  natural-key uniqueness violation
  AuthError        400/401/403  token or credential problems (status per site)
  NotFoundError    404  no record for the given id / natural key
  InternalError    500  store failure, hashing failure, anything unexpected

InternalError messages are generic by construction. Details go to the log,
never to the response body.

Layer rule: core/ is the kernel. No imports from api/, auth/, or org/.
"""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base class for errors that map to a structured HTTP response."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.detail = detail


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class ConflictError(AppError):
    """A natural key is already taken. field names the key that collided."""

    status_code = 400
    code = "already_exists"

    def __init__(self, message: str, *, field: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.field = field


class AuthError(AppError):
    status_code = 401
    code = "unauthorized"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "An unexpected error occurred.", **kwargs) -> None:
        super().__init__(message, **kwargs)
