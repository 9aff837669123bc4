"""Custom application exceptions."""

from app.core.routes import Destination


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


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


class ServiceUnavailableException(AppException):
    """External service failure exception."""

    def __init__(self, message: str = "Service unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


class ProfileNotFoundError(NotFoundException):
    """No profile row exists for the requested id."""

    def __init__(self, profile_id: str):
        """Remember which id was missing."""
        self.profile_id = profile_id
        super().__init__(f"Profile {profile_id} not found")


class ProfileConflictError(ConflictException):
    """A profile row with the same id already exists."""

    def __init__(self, profile_id: str):
        """Remember which id collided."""
        self.profile_id = profile_id
        super().__init__(f"Profile {profile_id} already exists")


class StoreError(ServiceUnavailableException):
    """Profile store unreachable, unauthorized or returned malformed data."""


class AuthServiceError(ServiceUnavailableException):
    """Identity provider call failed."""


class RedirectException(AppException):
    """Access denied; send the client elsewhere without an error body."""

    def __init__(self, destination: Destination):
        """Initialize with 303 status code."""
        self.destination = destination
        super().__init__(f"Redirect to {destination.value}", status_code=303)
