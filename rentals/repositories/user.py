"""
User repository for authentication and user management operations.
Provides secure user operations with password handling and role filters.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from rentals.repositories.base import BaseRepository
from rentals.models.user import User, UserRole
from typing import Optional, List, Dict, Any, Tuple
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for user management with authentication support.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        """
        Create a new user with email validation and password hashing.

        Args:
            user_data: Dictionary containing user information
                      Must include: email, password
                      Optional: first_name, last_name, phone_number, role (defaults to USER)

        Returns:
            Created user instance

        Raises:
            ValueError: If validation fails or the email is taken
        """
        try:
            data = dict(user_data)
            email = User.validate_email_format(data.pop("email"))

            existing_user = await self.get_by_email(email)
            if existing_user:
                raise ValueError(f"User with email {email} already exists")

            hashed_password = User.hash_password(data.pop("password"))

            create_data = {
                **data,
                "email": email,
                "hashed_password": hashed_password,
                "role": data.get("role") or UserRole.USER,
                "is_active": data.get("is_active", True),
            }

            created_user = await self.create(create_data)
            logger.info(f"Created user: {created_user.email} (ID: {created_user.id})")
            return created_user
        except ValueError as e:
            logger.warning(f"User validation failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create user: {e}")
            raise

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by (normalized) email address."""
        try:
            normalized_email = email.lower().strip()
            result = await self.db.execute(select(User).where(User.email == normalized_email))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate user with email and password.

        Returns:
            User instance if authentication successful, None otherwise
        """
        try:
            user = await self.get_by_email(email)

            if not user:
                logger.debug(f"Authentication failed: user {email} not found")
                return None

            if not user.verify_password(password):
                logger.debug(f"Authentication failed: invalid password for {email}")
                return None

            logger.info(f"User authenticated successfully: {email}")
            return user
        except Exception as e:
            logger.error(f"Failed to authenticate user {email}: {e}")
            raise

    async def list_users(
        self,
        role: Optional[UserRole] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[User], int]:
        """
        List users, optionally filtered by role, newest first.

        Returns:
            Tuple of (users list, total count)
        """
        try:
            filters = {"role": role} if role is not None else None
            total_count = await self.count(filters)
            users = await self.get_multi(skip=skip, limit=limit, filters=filters, order_by="-created_at")

            logger.debug(f"Retrieved {len(users)} users (role={role.value if role else 'any'})")
            return users, total_count
        except Exception as e:
            logger.error(f"Failed to list users: {e}")
            raise
