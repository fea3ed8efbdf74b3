"""
Authentication API endpoints for registration, login, token refresh and the current user.
"""

from fastapi import APIRouter, Depends, status
from rentals.models.user import User
from rentals.services.auth import AuthService
from rentals.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
    CurrentUserResponse
)
from rentals.schemas.user import RegisterRequest, UserResponse
from rentals.schemas.error import error_responses
from rentals.utils.dependencies import get_auth_service, get_current_active_user


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description="Create a guest account. Owner and admin accounts are created by an admin.",
    responses=error_responses(409, 422)
)
async def register(
    register_data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    """
    Register a new user with the ``user`` role.

    Raises:
        DuplicateResourceError: If the email is already registered
        ValidationError: If the registration data is invalid
    """
    user = await auth_service.register(register_data)
    return UserResponse.model_validate(user.to_dict())


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate user with email and password, returns JWT tokens",
    responses=error_responses(401, 403, 422)
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Args:
        login_data: Login credentials (email and password)
        auth_service: Authentication service

    Returns:
        Login response with user info, permissions and JWT tokens

    Raises:
        InvalidCredentialsError: If credentials are invalid
        InactiveUserError: If user account is inactive
    """
    user, access_token, refresh_token = await auth_service.login(
        email=login_data.email,
        password=login_data.password
    )

    user_response = CurrentUserResponse.model_validate({
        **user.to_dict(),
        "permissions": auth_service.permissions_for(user)
    })

    return LoginResponse(
        user=user_response,
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=auth_service.access_token_ttl_seconds
    )


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
    description="Generate new access token using refresh token",
    responses=error_responses(401, 403)
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> AccessTokenResponse:
    """
    Create new access token from refresh token.

    Raises:
        InvalidTokenError: If refresh token is invalid
        TokenExpiredError: If refresh token is expired
        InactiveUserError: If user account is inactive
    """
    access_token = await auth_service.refresh_access_token(refresh_data.refresh_token)

    return AccessTokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=auth_service.access_token_ttl_seconds
    )


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    description="Get the authenticated user's profile and permissions",
    responses=error_responses(401, 403)
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> CurrentUserResponse:
    return CurrentUserResponse.model_validate({
        **current_user.to_dict(),
        "permissions": auth_service.permissions_for(current_user)
    })
