"""
Payment repository for booking payment attempts.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from rentals.repositories.base import BaseRepository
from rentals.models.payment import Payment, PaymentStatus
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    """Repository for payments."""

    def __init__(self, db: AsyncSession):
        super().__init__(Payment, db)

    async def _first(self, query) -> Optional[Payment]:
        result = await self.db.execute(query.limit(1))
        return result.scalars().first()

    async def get_latest_pending(self, booking_id: uuid.UUID) -> Optional[Payment]:
        """Most recent pending payment for a booking."""
        try:
            return await self._first(
                select(Payment)
                .where(
                    Payment.booking_id == booking_id,
                    Payment.payment_status == PaymentStatus.PENDING
                )
                .order_by(desc(Payment.created_at))
            )
        except Exception as e:
            logger.error(f"Failed to get pending payment for booking {booking_id}: {e}")
            raise

    async def get_by_gateway_payment_id(self, razorpay_payment_id: str) -> Optional[Payment]:
        try:
            return await self._first(
                select(Payment).where(Payment.razorpay_payment_id == razorpay_payment_id)
            )
        except Exception as e:
            logger.error(f"Failed to get payment {razorpay_payment_id}: {e}")
            raise

    async def get_successful(self, booking_id: uuid.UUID) -> Optional[Payment]:
        """Earliest successful payment for a booking."""
        try:
            return await self._first(
                select(Payment)
                .where(
                    Payment.booking_id == booking_id,
                    Payment.payment_status == PaymentStatus.SUCCESS
                )
                .order_by(Payment.created_at.asc())
            )
        except Exception as e:
            logger.error(f"Failed to get successful payment for booking {booking_id}: {e}")
            raise

    async def list_for_booking(self, booking_id: uuid.UUID) -> List[Payment]:
        try:
            result = await self.db.execute(
                select(Payment)
                .where(Payment.booking_id == booking_id)
                .order_by(desc(Payment.created_at))
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to list payments for booking {booking_id}: {e}")
            raise
