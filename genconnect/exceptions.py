"""
Domain exceptions for GenConnect.

Services raise these; the API layer renders them in the standard error
envelope via ``DomainException.status_code``.
"""
from typing import Any, Dict, Optional

from fastapi import status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "DOMAIN_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details or None,
            }
        }


class ValidationException(DomainException):
    """Raised when input fails business validation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "ACCESS_DENIED"


class NotFoundException(DomainException):
    """Raised when a requested resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ConflictException(DomainException):
    """Raised when the request conflicts with existing state."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class RequestExpiredException(DomainException):
    """Raised when a pending session request is acted on after its expiry."""

    status_code = status.HTTP_410_GONE
    default_code = "REQUEST_EXPIRED"


class AvailabilityOverlapException(ConflictException):
    """Raised when a new availability window overlaps an existing one."""

    def __init__(self, day_label: str, new_range: str, conflicting_range: str):
        super().__init__(
            message=f"Time slot overlaps with existing availability on {day_label}",
            code="AVAILABILITY_OVERLAP",
            details={
                "day": day_label,
                "new_window": new_range,
                "conflicting_window": conflicting_range,
            },
        )


class BookingConflictException(ConflictException):
    """Raised when a booking overlaps another session of the same tutor."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="This time slot conflicts with an existing booking",
            code="BOOKING_CONFLICT",
            details=details,
        )


class InvalidTransitionException(ConflictException):
    """Raised when a session status change is not allowed from its current status."""

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            message=f"Cannot change session from '{current_status}' to '{target_status}'",
            code="INVALID_TRANSITION",
            details={"current_status": current_status, "target_status": target_status},
        )


class SessionStatusConflictException(ConflictException):
    """Raised when acting on a session that is not in the required status."""

    def __init__(self, current_status: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Session is {current_status}, not pending",
            code="INVALID_SESSION_STATUS",
            details={"status": current_status},
        )
