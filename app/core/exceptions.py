"""Custom application exceptions."""

from typing import Any
from uuid import UUID


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    @property
    def details(self) -> dict[str, Any] | None:
        """Structured fields rendered alongside the message."""
        return None


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class SchedulingConflictException(ConflictException):
    """Proposed interval overlaps an active appointment of the same practitioner."""

    def __init__(self, conflicting_appointment_id: UUID | None, message: str | None = None):
        """Initialize with the ID of the colliding appointment."""
        self.conflicting_appointment_id = conflicting_appointment_id
        super().__init__(
            message
            or "The practitioner already has an appointment in the selected time range"
        )

    @property
    def details(self) -> dict[str, Any]:
        return {
            "conflicting_appointment_id": (
                str(self.conflicting_appointment_id)
                if self.conflicting_appointment_id
                else None
            )
        }


class InvalidTransitionException(BadRequestException):
    """Requested status change is not an edge of the lifecycle."""

    def __init__(self, current: str, requested: str, entity: str = "appointment"):
        """Initialize with the current and requested states."""
        self.current = current
        self.requested = requested
        self.entity = entity
        super().__init__(f"Invalid {entity} status transition: {current} -> {requested}")

    @property
    def details(self) -> dict[str, Any]:
        return {"current_status": self.current, "requested_status": self.requested}


class StoreException(AppException):
    """Persistence or coordination backend failure."""

    def __init__(self, message: str = "Storage backend unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
