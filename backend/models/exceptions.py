"""
Custom domain exceptions for the application.

These exceptions are raised by the service layer and converted to HTTP
responses by the centralized exception handlers in main.py. The
authentication module uses them too, so auth stays HTTP-agnostic.

Every exception carries a correlation ID for log/Sentry cross-referencing.
"""

from datetime import datetime

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use request correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class PermissionDeniedException(DomainException):
    """Raised when user lacks required permissions."""

    pass


class ValidationException(DomainException):
    """Raised when input validation fails."""

    pass


class ConflictException(DomainException):
    """Raised when operation conflicts with existing data."""

    pass


class AuthenticationException(DomainException):
    """Raised when authentication fails."""

    pass


class AlreadyExistsException(ConflictException):
    """Raised when trying to create a resource that already exists."""

    pass


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    pass


class UpstreamServiceException(DomainException):
    """Raised when an external collaborator (media store, geocoder) fails."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service} failed: {message}")
        self.service = service


# Users and authentication


class UserNotFoundException(NotFoundException):
    """User not found."""

    pass


class UserAlreadyExistsException(AlreadyExistsException):
    """User already exists."""

    pass


class InvalidCredentialsException(AuthenticationException):
    """Invalid email or password."""

    pass


class InactiveUserException(PermissionDeniedException):
    """User account is inactive or blocked."""

    pass


class InsufficientPermissionsException(PermissionDeniedException):
    """User's role does not allow the action."""

    pass


class PasswordValidationException(ValidationException):
    """Password does not meet strength requirements."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class AccountLockedException(DomainException):
    """Raised when login is attempted on a temporarily locked account."""

    def __init__(self, locked_until: datetime, minutes_remaining: int) -> None:
        super().__init__(
            f"Account is locked. Try again in {minutes_remaining} minutes"
        )
        self.locked_until = locked_until
        self.minutes_remaining = minutes_remaining


class InvalidOrExpiredTokenException(BusinessRuleException):
    """Password reset token is unknown or past its expiry."""

    def __init__(self) -> None:
        super().__init__("Token is invalid or has expired")


# Reports


class ReportNotFoundException(NotFoundException):
    """Report not found."""

    def __init__(self, report_id: int) -> None:
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class InvalidCoordinatesException(ValidationException):
    """Latitude/longitude outside the valid range."""

    pass


class OutOfServiceAreaException(BusinessRuleException):
    """Reported point lies outside the declared city's bounding box."""

    def __init__(self, city: str) -> None:
        super().__init__(f"Location is outside our service area ({city})")
        self.city = city


class InvalidStatusTransitionException(ValidationException):
    """Requested status is not reachable from the report's current status."""

    def __init__(self, current_status: str, requested_status: str) -> None:
        super().__init__(
            f"Invalid status transition from {current_status} to {requested_status}"
        )
        self.current_status = current_status
        self.requested_status = requested_status


class ImageValidationException(ValidationException):
    """Uploaded file is not an acceptable image."""

    pass
