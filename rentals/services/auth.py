"""
Authentication service for registration, login, token management and user administration.
Handles JWT token generation and validation and the admin-only user operations.
"""

from typing import Optional, Tuple, List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from rentals.config import settings
from rentals.repositories.user import UserRepository
from rentals.models.user import User, UserRole
from rentals.schemas.user import RegisterRequest, UserCreate
from rentals.services.policy import Action, AuthorizationPolicy, policy as default_policy
from rentals.utils.auth import (
    create_access_token,
    create_refresh_token,
    verify_token
)
from rentals.utils.exceptions import (
    APIException,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    ValidationError,
    DuplicateResourceError,
    persistence_error
)
from jose import JWTError
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service for user identity and account management.
    """

    def __init__(self, db_session: AsyncSession, policy: Optional[AuthorizationPolicy] = None):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.policy = policy or default_policy

    @property
    def access_token_ttl_seconds(self) -> int:
        return settings.access_token_expire_minutes * 60

    async def register(self, data: RegisterRequest) -> User:
        """
        Self-service sign-up. New accounts always get the 'user' role.

        Raises:
            DuplicateResourceError: If the email is already registered
            ValidationError: If the user data is invalid
        """
        create_data = data.model_dump()
        create_data["role"] = UserRole.USER
        user = await self._create(create_data)
        logger.info(f"User registered: {user.email} (ID: {user.id})")
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If credentials are invalid
            InactiveUserError: If user account is inactive
            ValidationError: If input validation fails
        """
        if not email or not email.strip():
            raise ValidationError("Email is required")
        if not password:
            raise ValidationError("Password is required")

        try:
            user = await self.user_repo.authenticate_user(email, password)
        except SQLAlchemyError as e:
            raise persistence_error(e, "authenticate user")

        if not user:
            logger.warning(f"Failed authentication attempt for email: {email}")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning(f"Login attempt by inactive user: {email}")
            raise InactiveUserError()

        return user

    def create_tokens(self, user: User) -> Tuple[str, str]:
        """
        Create access and refresh tokens for user.

        Returns:
            Tuple of (access_token, refresh_token)
        """
        access_token = create_access_token(user_id=user.id, email=user.email, role=user.role)
        refresh_token = create_refresh_token(user_id=user.id, email=user.email)
        return access_token, refresh_token

    async def login(self, email: str, password: str) -> Tuple[User, str, str]:
        """
        Authenticate user and create tokens.

        Returns:
            Tuple of (user, access_token, refresh_token)
        """
        user = await self.authenticate_user(email, password)
        access_token, refresh_token = self.create_tokens(user)
        logger.info(f"User logged in: {user.email}")
        return user, access_token, refresh_token

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Create new access token from refresh token.

        Raises:
            InvalidTokenError: If refresh token is invalid
            TokenExpiredError: If refresh token is expired
            InactiveUserError: If user account is inactive
        """
        user = await self._user_from_token(refresh_token, "refresh")
        return create_access_token(user_id=user.id, email=user.email, role=user.role)

    async def get_current_user(self, token: str) -> User:
        """
        Resolve the user behind an access token.

        Raises:
            InvalidTokenError: If token is invalid or the user no longer exists
            TokenExpiredError: If token is expired
            InactiveUserError: If user account is inactive
        """
        return await self._user_from_token(token, "access")

    def permissions_for(self, user: User) -> List[str]:
        return sorted(action.value for action in self.policy.allowed_actions(user))

    async def list_users(
        self,
        current_user: User,
        role: Optional[UserRole] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[User], int]:
        """Admin listing of accounts, optionally filtered by role."""
        self.policy.require(current_user, Action.USER_LIST)
        try:
            return await self.user_repo.list_users(role=role, skip=skip, limit=limit)
        except SQLAlchemyError as e:
            raise persistence_error(e, "list users")

    async def create_user(self, data: UserCreate, current_user: User) -> User:
        """
        Admin creation of an account with any role.

        Raises:
            InsufficientPermissionsError: If the requester is not an admin
            DuplicateResourceError: If the email is already registered
        """
        self.policy.require(current_user, Action.USER_CREATE)
        user = await self._create(data.model_dump())
        logger.info(f"User {user.email} created with role {user.role.value} by {current_user.email}")
        return user

    async def _create(self, create_data: dict) -> User:
        try:
            if await self.user_repo.get_by_email(create_data["email"]):
                raise DuplicateResourceError("User", create_data["email"])
            return await self.user_repo.create_user(create_data)
        except APIException:
            raise
        except ValueError as e:
            raise ValidationError(str(e))
        except SQLAlchemyError as e:
            raise persistence_error(e, "create user")

    async def _user_from_token(self, token: str, token_type: str) -> User:
        try:
            payload = verify_token(token, token_type=token_type)
            user_id = uuid.UUID(payload.user_id)
        except JWTError as e:
            if "expired" in str(e).lower():
                raise TokenExpiredError()
            raise InvalidTokenError(str(e))
        except ValueError:
            raise InvalidTokenError("Invalid token subject")

        try:
            user = await self.user_repo.get_by_id(user_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "load user")

        if not user:
            raise InvalidTokenError("User no longer exists")
        if not user.is_active:
            raise InactiveUserError()
        return user
