"""
Booking repository with role-scoped queries and conditional status updates.

Listing never loads rows the requester may not see: the scope becomes part
of the SQL statement. Status changes are issued as a single
``UPDATE ... WHERE status IN (...)`` so a concurrent writer cannot slip a
forbidden transition in between a read and a write.
"""

from dataclasses import dataclass
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, desc, or_
from rentals.repositories.base import BaseRepository
from rentals.models.booking import Booking, BookingStatus
from rentals.models.property import Property
from typing import Optional, List, Dict, Any, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingScope:
    """
    Rows a requester may see.

    ``owner_id`` matches bookings on properties that user owns now,
    ``user_id`` bookings that user requested. With both set a booking
    matching either is in scope.
    """

    all_bookings: bool = False
    owner_id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None

    @classmethod
    def everything(cls) -> "BookingScope":
        return cls(all_bookings=True)

    @classmethod
    def for_owner(cls, owner_id: uuid.UUID) -> "BookingScope":
        return cls(owner_id=owner_id)

    @classmethod
    def for_guest(cls, user_id: uuid.UUID) -> "BookingScope":
        return cls(user_id=user_id)

    @classmethod
    def for_participant(cls, user_id: uuid.UUID) -> "BookingScope":
        """Bookings the user requested or hosts."""
        return cls(owner_id=user_id, user_id=user_id)

    def apply(self, query):
        """Restrict a select over Booking to this scope."""
        if self.all_bookings:
            return query
        if self.owner_id is not None:
            # The property's current owner, not the copy taken at booking time
            hosted = Property.owner_id == self.owner_id
            query = query.join(Property, Booking.property_id == Property.id)
            if self.user_id is not None:
                return query.where(or_(hosted, Booking.user_id == self.user_id))
            return query.where(hosted)
        if self.user_id is not None:
            return query.where(Booking.user_id == self.user_id)
        # An empty scope matches nothing
        return query.where(Booking.id.is_(None))


class BookingRepository(BaseRepository[Booking]):
    """
    Repository for bookings.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Booking, db)

    async def reload(self, booking_id: uuid.UUID) -> Optional[Booking]:
        """Fetch a booking, overwriting any stale copy held by the session."""
        try:
            query = (
                select(Booking)
                .where(Booking.id == booking_id)
                .execution_options(populate_existing=True)
            )
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to reload booking {booking_id}: {e}")
            raise

    async def list_scoped(
        self,
        scope: BookingScope,
        status: Optional[BookingStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Booking], int]:
        """
        List bookings within a scope, newest first.

        Returns:
            Tuple of (bookings list, total count)
        """
        try:
            query = scope.apply(select(Booking))
            count_query = scope.apply(select(func.count(Booking.id)))

            if status is not None:
                query = query.where(Booking.status == status)
                count_query = count_query.where(Booking.status == status)

            total_count = (await self.db.execute(count_query)).scalar() or 0

            query = query.order_by(desc(Booking.created_at)).offset(skip).limit(limit)
            result = await self.db.execute(query)
            bookings = list(result.scalars().all())

            logger.debug(f"Retrieved {len(bookings)} of {total_count} bookings for {scope}")
            return bookings, total_count
        except Exception as e:
            logger.error(f"Failed to list bookings for {scope}: {e}")
            raise

    async def get_scoped(self, booking_id: uuid.UUID, scope: BookingScope) -> Optional[Booking]:
        """Get a booking only if it falls inside the scope."""
        try:
            query = scope.apply(select(Booking)).where(Booking.id == booking_id)
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get booking {booking_id} for {scope}: {e}")
            raise

    async def count_scoped(self, scope: BookingScope) -> int:
        try:
            result = await self.db.execute(scope.apply(select(func.count(Booking.id))))
            return result.scalar() or 0
        except Exception as e:
            logger.error(f"Failed to count bookings for {scope}: {e}")
            raise

    async def upcoming(self, scope: BookingScope, today: date, limit: int = 3) -> List[Booking]:
        """Bookings in scope that start today or later, soonest first."""
        try:
            query = (
                scope.apply(select(Booking))
                .where(Booking.check_in >= today)
                .order_by(Booking.check_in.asc())
                .limit(limit)
            )
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get upcoming bookings for {scope}: {e}")
            raise

    async def find_overlapping(
        self,
        property_id: uuid.UUID,
        check_in: date,
        check_out: date
    ) -> List[Booking]:
        """Non-cancelled bookings of a property whose stay intersects [check_in, check_out)."""
        try:
            query = select(Booking).where(
                Booking.property_id == property_id,
                Booking.status != BookingStatus.CANCELLED,
                Booking.check_in < check_out,
                Booking.check_out > check_in,
            )
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to query overlapping bookings for property {property_id}: {e}")
            raise

    async def transition_status(
        self,
        booking_id: uuid.UUID,
        target: BookingStatus,
        values: Optional[Dict[str, Any]] = None,
        commit: bool = True
    ) -> int:
        """
        Move a booking to ``target`` if its current status allows it.

        Args:
            booking_id: Booking to update
            target: Desired status
            values: Extra columns to set together with the status
            commit: Commit the transaction, or only flush when False

        Returns:
            Number of rows changed (0 when the booking is missing or in a
            status from which ``target`` is not reachable)
        """
        sources = BookingStatus.sources_for(target)
        if not sources:
            return 0

        try:
            stmt = (
                update(Booking)
                .where(Booking.id == booking_id, Booking.status.in_(sources))
                .values(status=target, **(values or {}))
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            await self._finish(commit)

            logger.debug(f"Booking {booking_id} -> {target.value}: {result.rowcount} row(s)")
            return result.rowcount
        except Exception as e:
            if commit:
                await self.db.rollback()
            logger.error(f"Failed to move booking {booking_id} to {target.value}: {e}")
            raise
