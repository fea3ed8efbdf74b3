"""
Property repository for managing rental listings.
Provides listing queries filtered by status and ownership plus owner statistics.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, or_
from sqlalchemy.orm import selectinload
from rentals.repositories.base import BaseRepository
from rentals.models.property import Property, STATUS_AVAILABLE
from typing import Optional, List, Dict, Any, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyFilters:
    """Data class for property listing filters."""

    def __init__(
        self,
        status: Optional[str] = None,
        owner_id: Optional[uuid.UUID] = None,
        exclude_owner_id: Optional[uuid.UUID] = None,
        location: Optional[str] = None,
        property_type: Optional[str] = None,
        search_text: Optional[str] = None
    ):
        self.status = status
        self.owner_id = owner_id
        self.exclude_owner_id = exclude_owner_id
        self.location = location
        self.property_type = property_type
        self.search_text = search_text

    def apply(self, query):
        if self.status:
            query = query.where(Property.status == self.status)
        if self.owner_id:
            query = query.where(Property.owner_id == self.owner_id)
        if self.exclude_owner_id:
            query = query.where(Property.owner_id != self.exclude_owner_id)
        if self.location:
            query = query.where(Property.location.ilike(f"%{self.location.strip()}%"))
        if self.property_type:
            query = query.where(Property.property_type == self.property_type)
        if self.search_text:
            term = f"%{self.search_text.strip()}%"
            query = query.where(or_(Property.title.ilike(term), Property.description.ilike(term)))
        return query


class PropertyRepository(BaseRepository[Property]):
    """
    Repository for property listings.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    async def create_property(self, property_data: Dict[str, Any]) -> Property:
        """
        Create a new property with validation.

        Args:
            property_data: Dictionary containing property information

        Returns:
            Created property instance

        Raises:
            ValueError: If validation fails
        """
        try:
            Property(**property_data).validate_all()

            created_property = await self.create(property_data)
            logger.info(f"Created property: {created_property.title} (ID: {created_property.id})")
            return created_property
        except ValueError as e:
            logger.warning(f"Property validation failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create property: {e}")
            raise

    async def get_property_with_details(self, property_id: uuid.UUID) -> Optional[Property]:
        """
        Get property with owner and images freshly loaded.

        Returns:
            Property with loaded relationships or None if not found
        """
        try:
            query = (
                select(Property)
                .options(selectinload(Property.owner), selectinload(Property.images))
                .where(Property.id == property_id)
                .execution_options(populate_existing=True)
            )
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get property with details {property_id}: {e}")
            raise

    async def list_properties(
        self,
        filters: PropertyFilters,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Property], int]:
        """
        List properties matching the filters, newest first.

        Returns:
            Tuple of (properties list, total count)
        """
        try:
            query = filters.apply(select(Property))
            count_query = filters.apply(select(func.count(Property.id)))

            total_count = (await self.db.execute(count_query)).scalar() or 0

            query = query.order_by(desc(Property.created_at)).offset(skip).limit(limit)
            result = await self.db.execute(query)
            properties = list(result.scalars().all())

            logger.debug(f"Retrieved {len(properties)} of {total_count} properties")
            return properties, total_count
        except Exception as e:
            logger.error(f"Failed to list properties: {e}")
            raise

    async def get_owner_statistics(self, owner_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
        """
        Property counts by status for an owner (or for everyone).

        Returns:
            Dictionary with total, available and per-status counts
        """
        try:
            query = select(Property.status, func.count(Property.id)).group_by(Property.status)
            if owner_id:
                query = query.where(Property.owner_id == owner_id)

            result = await self.db.execute(query)
            by_status = {row[0]: row[1] for row in result.all()}

            return {
                "total_properties": sum(by_status.values()),
                "available_properties": by_status.get(STATUS_AVAILABLE, 0),
                "properties_by_status": by_status,
            }
        except Exception as e:
            logger.error(f"Failed to get property statistics for owner {owner_id}: {e}")
            raise
