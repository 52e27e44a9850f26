"""
Business-rule exceptions raised by the service layer.

Services raise these synchronously; the HTTP layer maps them to status codes
in one place (see civicworks.main).
"""

from typing import Optional


class CivicWorksError(Exception):
    """Base exception carrying a client-safe message and HTTP status."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class ValidationError(CivicWorksError):
    """Missing or malformed required field."""

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail)
        self.field = field


class NotFoundError(CivicWorksError):
    """Report, comment, notification or user id did not resolve."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", resource_id: Optional[str] = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class ForbiddenError(CivicWorksError):
    """Caller is not the owner of the resource."""

    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, detail: str = "Not authorized to perform this action"):
        super().__init__(detail)


class ConflictError(CivicWorksError):
    """Write conflicts with existing state (e.g. duplicate email)."""

    status_code = 409
    error_code = "CONFLICT"

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(detail)
