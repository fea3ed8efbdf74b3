"""
Utility modules for the Rental Bookings API.
"""

from .auth import (
    create_access_token,
    create_refresh_token,
    verify_token,
    TokenPayload
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    AuthError,
    ForbiddenError,
    ConflictError,
    BadRequestError,
    PersistenceError,
    ExternalServiceError,
    ReconciliationError,
    InvalidCredentialsError,
    TokenExpiredError,
    InvalidTokenError,
    InactiveUserError,
    InsufficientPermissionsError,
    BookingStateError,
    PaymentVerificationError,
    persistence_error
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    "create_access_token",
    "create_refresh_token",
    "verify_token",
    "TokenPayload",

    "APIException",
    "ValidationError",
    "NotFoundError",
    "AuthError",
    "ForbiddenError",
    "ConflictError",
    "BadRequestError",
    "PersistenceError",
    "ExternalServiceError",
    "ReconciliationError",
    "InvalidCredentialsError",
    "TokenExpiredError",
    "InvalidTokenError",
    "InactiveUserError",
    "InsufficientPermissionsError",
    "BookingStateError",
    "PaymentVerificationError",
    "persistence_error",
]
