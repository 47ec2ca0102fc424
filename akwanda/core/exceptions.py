"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Unauthorized(AppException):
    """Caller's role does not permit the requested operation."""

    def __init__(self, detail: str = "You don't have permission to perform this action") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidDateRange(ValidationError):
    """Check-out is not after check-in."""

    def __init__(self, detail: str = "check_out must be after check_in") -> None:
        super().__init__(detail=detail)


class DateRangeConflict(AppException):
    """Requested dates overlap an existing reservation or room lock."""

    def __init__(self, detail: str = "The selected dates are not available") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class CapacityExceeded(ValidationError):
    """Guest composition exceeds the room or property limits."""

    def __init__(self, detail: str = "Guest count exceeds capacity") -> None:
        super().__init__(detail=detail)


class InvalidStateTransition(AppException):
    """Booking lifecycle transition is not allowed."""

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class HostBlocked(AppException):
    """Host account is blocked; its properties cannot take bookings."""

    def __init__(self, detail: str = "This property is temporarily unavailable") -> None:
        super().__init__(status_code=status.HTTP_423_LOCKED, detail=detail)


class InvalidAmount(ValidationError):
    """Non-positive payment or fine amount."""

    def __init__(self, detail: str = "Amount must be greater than zero") -> None:
        super().__init__(detail=detail)
