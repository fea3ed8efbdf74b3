"""
Admin user management endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from rentals.models.user import User, UserRole
from rentals.services.auth import AuthService
from rentals.schemas.user import UserCreate, UserResponse, UserListResponse
from rentals.schemas.error import error_responses, get_common_error_responses
from rentals.utils.dependencies import get_auth_service, get_current_active_user


router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "",
    response_model=UserListResponse,
    status_code=status.HTTP_200_OK,
    summary="List users",
    description="Paginated user list, optionally filtered by role. Admin only.",
    responses=get_common_error_responses()
)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of users per page"),
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserListResponse:
    users, total = await auth_service.list_users(
        current_user, role=role, skip=(page - 1) * page_size, limit=page_size
    )
    return UserListResponse(
        users=[UserResponse.model_validate(user.to_dict()) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create an account with any role. Admin only.",
    responses=error_responses(401, 403, 409, 422)
)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    """
    Create a user account on behalf of someone else.

    Raises:
        InsufficientPermissionsError: If the requester is not an admin
        DuplicateResourceError: If the email is already registered
    """
    user = await auth_service.create_user(user_data, current_user)
    return UserResponse.model_validate(user.to_dict())
