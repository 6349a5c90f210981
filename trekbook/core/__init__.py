"""Core utilities and security modules."""

from trekbook.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
    InvalidBookingStatus,
    InvalidStatusTransition,
    NotFoundError,
    ValidationError,
)
from trekbook.core.security import create_access_token, verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ExternalServiceError",
    "InvalidBookingStatus",
    "InvalidStatusTransition",
    "NotFoundError",
    "ValidationError",
    "create_access_token",
    "verify_token",
]
