"""
Pydantic schemas for request/response validation.
"""

from .auth import (
    LoginRequest,
    RefreshTokenRequest,
    AccessTokenResponse,
    CurrentUserResponse,
    LoginResponse
)

from .user import (
    RegisterRequest,
    UserCreate,
    UserResponse,
    UserListResponse
)

from .image import (
    PropertyImageResponse,
    ImageUploadResponse
)

from .property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse
)

from .booking import (
    BookingCreate,
    BookingResponse,
    BookingListResponse
)

from .payment import (
    CheckoutResponse,
    PaymentConfirmRequest,
    PaymentFailureRequest,
    PaymentResponse,
    PaymentConfirmResponse,
    PaymentListResponse,
    ReconciliationResponse
)

from .dashboard import DashboardResponse

from .error import (
    ErrorDetail,
    ErrorResponse,
    APIErrorResponse,
    error_responses,
    get_common_error_responses
)

__all__ = [
    "LoginRequest",
    "RefreshTokenRequest",
    "AccessTokenResponse",
    "CurrentUserResponse",
    "LoginResponse",
    "RegisterRequest",
    "UserCreate",
    "UserResponse",
    "UserListResponse",
    "PropertyImageResponse",
    "ImageUploadResponse",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "PropertyListResponse",
    "BookingCreate",
    "BookingResponse",
    "BookingListResponse",
    "CheckoutResponse",
    "PaymentConfirmRequest",
    "PaymentFailureRequest",
    "PaymentResponse",
    "PaymentConfirmResponse",
    "PaymentListResponse",
    "ReconciliationResponse",
    "DashboardResponse",
    "ErrorDetail",
    "ErrorResponse",
    "APIErrorResponse",
    "error_responses",
    "get_common_error_responses",
]
