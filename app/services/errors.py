# FILE: app/services/errors.py
from __future__ import annotations

from typing import Any, Optional


class LabError(Exception):
    """
    Base for business errors raised by services.
    Routes do not catch these; app.api.exception_handlers renders them.
    """
    status_code = 400
    code = "error"

    def __init__(self, msg: str, *, details: Optional[Any] = None):
        super().__init__(msg)
        self.msg = msg
        self.details = details


class ValidationError(LabError):
    status_code = 422
    code = "validation_error"


class ConflictError(LabError):
    status_code = 409
    code = "conflict"


class NotFoundError(LabError):
    status_code = 404
    code = "not_found"


class AuthError(LabError):
    status_code = 401
    code = "auth_error"


class ForbiddenError(LabError):
    status_code = 403
    code = "forbidden"


class InternalError(LabError):
    status_code = 500
    code = "internal_error"
