"""
Repository for PropertyImage model operations.
"""

import uuid
from typing import List
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.models.image import PropertyImage
from rentals.repositories.base import BaseRepository


class ImageRepository(BaseRepository[PropertyImage]):
    """Repository for PropertyImage database operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(PropertyImage, db)

    async def get_by_property_id(self, property_id: uuid.UUID) -> List[PropertyImage]:
        """Images of a property in gallery order."""
        query = (
            select(PropertyImage)
            .where(PropertyImage.property_id == property_id)
            .order_by(PropertyImage.display_order.asc(), PropertyImage.created_at.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_storage_keys(self, property_id: uuid.UUID) -> List[str]:
        """Storage keys of every image attached to a property."""
        query = select(PropertyImage.storage_key).where(PropertyImage.property_id == property_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def next_display_order(self, property_id: uuid.UUID) -> int:
        query = select(func.max(PropertyImage.display_order)).where(
            PropertyImage.property_id == property_id
        )
        current = (await self.db.execute(query)).scalar()
        return 0 if current is None else current + 1
