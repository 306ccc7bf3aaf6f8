# app/core/exceptions.py
"""Typed errors raised by the scheduling services and mapped to HTTP responses"""
from typing import Optional


class SchedulingError(Exception):
    """Base class for every error that crosses the service boundary"""

    status_code = 500
    code = "scheduling_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self):
        return {"error": self.code, "detail": self.message}


class ValidationError(SchedulingError):
    """Malformed rule or booking input; the caller can fix it and retry"""

    status_code = 400
    code = "validation_error"


class ConflictError(SchedulingError):
    """The slot was taken; availability should be re-fetched"""

    status_code = 409
    code = "slot_unavailable"


class InvalidTransitionError(SchedulingError):
    status_code = 409
    code = "invalid_transition"

    def __init__(self, source, target):
        source_value = getattr(source, "value", source)
        target_value = getattr(target, "value", target)
        super().__init__(f"Cannot change booking status from {source_value} to {target_value}")
        self.source = source_value
        self.target = target_value


class NotFoundError(SchedulingError):
    """Absent, or owned by another business"""

    status_code = 404
    code = "not_found"


class PermissionDeniedError(SchedulingError):
    status_code = 403
    code = "permission_denied"


class StorageError(SchedulingError):
    """Connection loss or a constraint failure we could not classify"""

    status_code = 503
    code = "storage_error"
