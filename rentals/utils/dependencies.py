"""
FastAPI dependency injection utilities for authentication, services and collaborators.
Provides reusable dependencies for route protection and service construction.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from rentals.database import get_db
from rentals.models.user import User
from rentals.services.auth import AuthService
from rentals.services.booking import BookingService
from rentals.services.dashboard import DashboardService
from rentals.services.gateway import RazorpayGateway
from rentals.services.image import ImageService
from rentals.services.payment import PaymentService
from rentals.services.property import PropertyService
from rentals.utils.exceptions import AuthError, InactiveUserError
from rentals.utils.file_utils import LocalObjectStorage


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_object_storage() -> LocalObjectStorage:
    """Object storage for property images."""
    return LocalObjectStorage()


def get_payment_gateway() -> RazorpayGateway:
    """
    Payment gateway client built from settings.
    Tests override this dependency with a fake gateway.
    """
    return RazorpayGateway()


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


async def get_property_service(
    db: AsyncSession = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_object_storage)
) -> PropertyService:
    return PropertyService(db, storage=storage)


async def get_image_service(
    db: AsyncSession = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_object_storage)
) -> ImageService:
    return ImageService(db, storage=storage)


async def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService(db)


async def get_payment_service(
    db: AsyncSession = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway)
) -> PaymentService:
    return PaymentService(db, gateway=gateway)


async def get_dashboard_service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer credentials
        auth_service: Authentication service

    Returns:
        Current User object

    Raises:
        AuthError: If no token is provided or the token is invalid or expired
        InactiveUserError: If user account is inactive
    """
    if not credentials:
        raise AuthError("Authentication token required")

    return await auth_service.get_current_user(credentials.credentials)


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current active user (additional check for user status).

    Raises:
        InactiveUserError: If user account is inactive
    """
    if not current_user.is_active:
        raise InactiveUserError()

    return current_user
