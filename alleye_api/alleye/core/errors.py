"""
Domain exceptions raised by services.

Routes let these propagate; the handlers registered in alleye.api.main turn
them into the standard ErrorResponse envelope.
"""
from __future__ import annotations

from typing import Any, Optional


class AlleyeError(Exception):
    """Base class for service-level errors."""

    status_code: int = 400
    error_type: str = "alleye_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(AlleyeError):
    status_code = 404
    error_type = "not_found"


class PermissionDeniedError(AlleyeError):
    status_code = 403
    error_type = "permission_denied"


class ValidationFailedError(AlleyeError):
    status_code = 422
    error_type = "validation_error"


class ExternalServiceError(AlleyeError):
    """A hosted collaborator (auth, storage, completion API) failed."""

    status_code = 502
    error_type = "external_service_error"

    def __init__(self, service: str, message: str, details: Optional[Any] = None) -> None:
        self.service = service
        super().__init__(message, details)


class AuthenticationError(AlleyeError):
    status_code = 401
    error_type = "authentication_error"
