"""
Custom exception classes for the Rental Bookings API.
Provides structured error handling with appropriate HTTP status codes.
"""

import asyncio
from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class ValidationError(APIException):
    """Missing or invalid input; recoverable by correcting the request."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class AuthError(APIException):
    """No identity or an invalid one; the client must re-authenticate."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    """Access forbidden exception."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class ConflictError(APIException):
    """Resource conflict exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT"
        )


class BadRequestError(APIException):
    """Bad request exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="BAD_REQUEST"
        )


class PersistenceError(APIException):
    """The data store rejected or did not answer a read or write."""

    def __init__(self, detail: str = "Data store operation failed", conflict: bool = False):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT if conflict else status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="PERSISTENCE_ERROR"
        )


class ExternalServiceError(APIException):
    """The payment gateway could not be reached or returned an error."""

    def __init__(self, service: str, detail: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{service} error: {detail}",
            error_code="EXTERNAL_SERVICE_ERROR"
        )
        self.service = service


class ReconciliationError(APIException):
    """
    A payment was verified at the gateway but could not be recorded.
    Requires operator attention; nothing is compensated automatically.
    """

    def __init__(self, booking_id: str, transaction_id: Optional[str] = None):
        detail = "Payment succeeded but recording failed"
        if transaction_id:
            detail += f" (booking {booking_id}, transaction {transaction_id})"
        else:
            detail += f" (booking {booking_id})"
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="RECONCILIATION_ERROR"
        )
        self.booking_id = booking_id
        self.transaction_id = transaction_id


# Authentication specific exceptions
class InvalidCredentialsError(AuthError):
    """Invalid login credentials exception."""

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(detail)


class TokenExpiredError(AuthError):
    """JWT token expired exception."""

    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail)


class InvalidTokenError(AuthError):
    """Invalid JWT token exception."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail)


class InactiveUserError(ForbiddenError):
    """Inactive user account exception."""

    def __init__(self, detail: str = "User account is inactive"):
        super().__init__(detail)


class InsufficientPermissionsError(ForbiddenError):
    """Insufficient permissions exception."""

    def __init__(self, action: str):
        super().__init__(f"Insufficient permissions to {action}")


# Booking and payment specific exceptions
class BookingStateError(ConflictError):
    """Requested transition is not allowed from the booking's current status."""

    def __init__(self, current: str, target: str, detail: Optional[str] = None):
        super().__init__(detail or f"Booking cannot move from '{current}' to '{target}'")
        self.current = current
        self.target = target


class PaymentVerificationError(BadRequestError):
    """Gateway signature did not match the payment and order ids."""

    def __init__(self, detail: str = "Payment signature verification failed"):
        super().__init__(detail)


class DuplicateResourceError(ConflictError):
    """Duplicate resource exception."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' already exists")


# File upload exceptions
class FileUploadError(BadRequestError):
    """File upload error exception."""

    def __init__(self, detail: str):
        super().__init__(f"File upload error: {detail}")


def persistence_error(error: Exception, action: str) -> PersistenceError:
    """Translate a data store failure into a PersistenceError."""
    if isinstance(error, IntegrityError):
        return PersistenceError(f"Failed to {action}: conflicting data", conflict=True)
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return PersistenceError(f"Failed to {action}: data store timed out")
    return PersistenceError(f"Failed to {action}")
