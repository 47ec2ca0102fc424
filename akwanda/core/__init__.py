"""Core utilities and security modules."""

from akwanda.core.exceptions import (
    AppException,
    AuthenticationError,
    CapacityExceeded,
    DateRangeConflict,
    HostBlocked,
    InvalidAmount,
    InvalidDateRange,
    InvalidStateTransition,
    NotFoundError,
    Unauthorized,
    ValidationError,
)
from akwanda.core.security import Actor, create_access_token, verify_token

__all__ = [
    "Actor",
    "AppException",
    "AuthenticationError",
    "CapacityExceeded",
    "DateRangeConflict",
    "HostBlocked",
    "InvalidAmount",
    "InvalidDateRange",
    "InvalidStateTransition",
    "NotFoundError",
    "Unauthorized",
    "ValidationError",
    "create_access_token",
    "verify_token",
]
