"""
Generic async repository shared by every table.
Failures are rolled back (when this call owns the commit), logged and re-raised.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from rentals.database import Base
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type
import uuid
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    CRUD operations for one model.

    Write methods commit by default. Passing ``commit=False`` only flushes,
    leaving the transaction open so a service can group several writes
    under one commit.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    @property
    def _name(self) -> str:
        return self.model.__name__

    async def _finish(self, commit: bool) -> None:
        if commit:
            await self.db.commit()
        else:
            await self.db.flush()

    async def _failed(self, action: str, error: Exception, rollback: bool = False) -> None:
        if rollback:
            await self.db.rollback()
        logger.error(f"Failed to {action} {self._name}: {error}")

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        """Equality filters on model columns; list values become IN clauses. Unknown keys are ignored."""
        for field, value in (filters or {}).items():
            column = getattr(self.model, field, None)
            if column is None:
                continue
            query = query.where(column.in_(value) if isinstance(value, list) else column == value)
        return query

    async def create(self, obj_in: Dict[str, Any], commit: bool = True) -> ModelType:
        """
        Insert a row built from ``obj_in`` and return it refreshed.

        Args:
            obj_in: Column values for the new row
            commit: Commit the transaction, or only flush when False
        """
        try:
            db_obj = self.model(**obj_in)
            self.db.add(db_obj)
            await self._finish(commit)
            await self.db.refresh(db_obj)
        except Exception as e:
            await self._failed("create", e, rollback=commit)
            raise

        logger.debug(f"Created {self._name} {db_obj.id}")
        return db_obj

    async def get_by_id(self, id: uuid.UUID) -> Optional[ModelType]:
        try:
            result = await self.db.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except Exception as e:
            await self._failed(f"load {id} of", e)
            raise

    async def get_multi(
        self,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None
    ) -> List[ModelType]:
        """
        Page through rows matching ``filters``.

        Args:
            skip: Rows to skip
            limit: Maximum rows to return
            filters: Column equality filters (see ``_apply_filters``)
            order_by: Column name, prefixed with '-' for descending; newest first when omitted
        """
        query = self._apply_filters(select(self.model), filters)

        column = getattr(self.model, order_by.lstrip('-'), None) if order_by else None
        if column is None:
            query = query.order_by(self.model.created_at.desc())
        else:
            query = query.order_by(column.desc() if order_by.startswith('-') else column)

        try:
            result = await self.db.execute(query.offset(skip).limit(limit))
        except Exception as e:
            await self._failed("list", e)
            raise
        return list(result.scalars().all())

    async def update(self, id: uuid.UUID, obj_in: Dict[str, Any], commit: bool = True) -> Optional[ModelType]:
        """
        Set the given columns on one row. None values are skipped.

        Returns:
            The refreshed row, or None when no row has this id
        """
        values = {k: v for k, v in obj_in.items() if v is not None}
        if not values:
            logger.warning(f"Nothing to update on {self._name} {id}")
            return await self.get_by_id(id)

        try:
            result = await self.db.execute(update(self.model).where(self.model.id == id).values(**values))
            if result.rowcount == 0:
                return None
            await self._finish(commit)

            updated = await self.get_by_id(id)
            if updated is not None:
                await self.db.refresh(updated)
        except Exception as e:
            await self._failed(f"update {id} of", e, rollback=commit)
            raise

        logger.debug(f"Updated {self._name} {id}: {sorted(values)}")
        return updated

    async def delete(self, id: uuid.UUID, commit: bool = True) -> bool:
        """Delete one row. Returns False when no row has this id."""
        try:
            result = await self.db.execute(delete(self.model).where(self.model.id == id))
            await self._finish(commit)
        except Exception as e:
            await self._failed(f"delete {id} of", e, rollback=commit)
            raise

        logger.debug(f"Deleted {self._name} {id}: {result.rowcount > 0}")
        return result.rowcount > 0

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        try:
            result = await self.db.execute(self._apply_filters(select(func.count(self.model.id)), filters))
            return result.scalar() or 0
        except Exception as e:
            await self._failed("count", e)
            raise

    async def exists(self, id: uuid.UUID) -> bool:
        return await self.count({"id": id}) > 0

    async def bulk_delete(self, ids: List[uuid.UUID], commit: bool = True) -> int:
        """Delete every row whose id is in ``ids``; returns how many went."""
        if not ids:
            return 0
        try:
            result = await self.db.execute(delete(self.model).where(self.model.id.in_(ids)))
            await self._finish(commit)
        except Exception as e:
            await self._failed("bulk delete", e, rollback=commit)
            raise

        logger.debug(f"Bulk deleted {result.rowcount} {self._name} rows")
        return result.rowcount
