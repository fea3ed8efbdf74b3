"""
Property service for managing property listings with business logic validation.
Handles CRUD operations, ownership checks and listing visibility rules.
"""

from typing import Optional, List, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from rentals.repositories.property import PropertyRepository, PropertyFilters
from rentals.repositories.image import ImageRepository
from rentals.models.property import Property, STATUS_AVAILABLE
from rentals.models.user import User
from rentals.schemas.property import PropertyCreate, PropertyUpdate
from rentals.services.policy import Action, AuthorizationPolicy, policy as default_policy
from rentals.utils.file_utils import LocalObjectStorage
from rentals.utils.exceptions import (
    NotFoundError,
    ValidationError,
    InsufficientPermissionsError,
    persistence_error
)
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyService:
    """
    Property service for managing property listings.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        storage: Optional[LocalObjectStorage] = None,
        policy: Optional[AuthorizationPolicy] = None
    ):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.image_repo = ImageRepository(db_session)
        self.storage = storage or LocalObjectStorage()
        self.policy = policy or default_policy

    async def create_property(self, property_data: PropertyCreate, current_user: User) -> Property:
        """
        Create a new property listing owned by the current user.

        Raises:
            InsufficientPermissionsError: If the role cannot list properties
            ValidationError: If property data is invalid
            PersistenceError: If the store rejects the write
        """
        self.policy.require(current_user, Action.PROPERTY_CREATE)

        create_data = property_data.model_dump()
        create_data["owner_id"] = current_user.id

        try:
            property_obj = await self.property_repo.create_property(create_data)
            property_obj = await self.property_repo.get_property_with_details(property_obj.id)
        except ValueError as e:
            raise ValidationError(str(e))
        except SQLAlchemyError as e:
            raise persistence_error(e, "create property")

        logger.info(f"Property created by user {current_user.email}: {property_obj.title} (ID: {property_obj.id})")
        return property_obj

    async def get_property(self, property_id: uuid.UUID, current_user: Optional[User] = None) -> Property:
        """
        Get property by ID with owner and images.

        Raises:
            NotFoundError: If property doesn't exist
        """
        if current_user is not None:
            self.policy.require(current_user, Action.PROPERTY_VIEW)
        try:
            property_obj = await self.property_repo.get_property_with_details(property_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "load property")

        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        return property_obj

    async def update_property(
        self,
        property_id: uuid.UUID,
        property_data: PropertyUpdate,
        current_user: User
    ) -> Property:
        """
        Update property fields. Only the owner or an admin may do this.

        Raises:
            NotFoundError: If property doesn't exist
            InsufficientPermissionsError: If user cannot manage the property
        """
        existing = await self.get_property(property_id)
        if not self.policy.can_manage_property(current_user, existing):
            raise InsufficientPermissionsError("update this property")

        update_data = property_data.model_dump(exclude_unset=True)
        if not update_data:
            return existing

        try:
            await self.property_repo.update(property_id, update_data)
            updated = await self.property_repo.get_property_with_details(property_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "update property")

        logger.info(f"Property {property_id} updated by {current_user.email}: {sorted(update_data)}")
        return updated

    async def delete_property(self, property_id: uuid.UUID, current_user: User) -> bool:
        """
        Delete a property, its stored images and (by cascade) its bookings.

        Raises:
            NotFoundError: If property doesn't exist
            InsufficientPermissionsError: If user cannot manage the property
        """
        existing = await self.get_property(property_id)
        if not self.policy.can_manage_property(current_user, existing):
            raise InsufficientPermissionsError("delete this property")

        try:
            keys = await self.image_repo.get_storage_keys(property_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "delete property")

        removed = self.storage.delete(keys)
        if len(removed) != len(keys):
            logger.warning(f"Property {property_id}: {len(keys) - len(removed)} stored image(s) were already missing")

        try:
            deleted = await self.property_repo.delete(property_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "delete property")

        logger.info(f"Property {property_id} deleted by {current_user.email}")
        return deleted

    async def list_properties(
        self,
        current_user: User,
        skip: int = 0,
        limit: int = 20,
        location: Optional[str] = None,
        property_type: Optional[str] = None,
        search_text: Optional[str] = None
    ) -> Tuple[List[Property], int]:
        """
        Browse listings.

        Admins see every property. Everyone else sees available properties
        owned by someone else.
        """
        self.policy.require(current_user, Action.PROPERTY_VIEW)

        if self.policy.can(current_user, Action.PROPERTY_MANAGE_ANY):
            filters = PropertyFilters()
        else:
            filters = PropertyFilters(status=STATUS_AVAILABLE, exclude_owner_id=current_user.id)
        filters.location = location
        filters.property_type = property_type.strip().lower() if property_type else None
        filters.search_text = search_text

        try:
            return await self.property_repo.list_properties(filters, skip=skip, limit=limit)
        except SQLAlchemyError as e:
            raise persistence_error(e, "list properties")

    async def list_my_properties(
        self,
        current_user: User,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Property], int]:
        """Properties owned by the current user, any status."""
        try:
            return await self.property_repo.list_properties(
                PropertyFilters(owner_id=current_user.id), skip=skip, limit=limit
            )
        except SQLAlchemyError as e:
            raise persistence_error(e, "list properties")
