"""
Dashboard summary per role.
"""

from datetime import date
from typing import Any, Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from rentals.models.user import User
from rentals.repositories.booking import BookingRepository
from rentals.repositories.property import PropertyRepository
from rentals.services.policy import Action, AuthorizationPolicy, policy as default_policy
from rentals.utils.exceptions import persistence_error
import logging

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 3


class DashboardService:

    def __init__(self, db_session: AsyncSession, policy: Optional[AuthorizationPolicy] = None):
        self.property_repo = PropertyRepository(db_session)
        self.booking_repo = BookingRepository(db_session)
        self.policy = policy or default_policy

    async def get_summary(self, current_user: User, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Counts and the next few bookings for the requester.

        Owners and admins get the properties they own and the bookings in
        their listing scope. Other users get zero properties and their own
        bookings.
        """
        today = today or date.today()
        scope = self.policy.booking_scope(current_user)

        try:
            if self.policy.can(current_user, Action.PROPERTY_CREATE):
                stats = await self.property_repo.get_owner_statistics(current_user.id)
            else:
                stats = {"total_properties": 0, "available_properties": 0}
            total_bookings = await self.booking_repo.count_scoped(scope)
            upcoming = await self.booking_repo.upcoming(scope, today, limit=UPCOMING_LIMIT)
        except SQLAlchemyError as e:
            raise persistence_error(e, "load dashboard")

        logger.debug(f"Dashboard for {current_user.email}: {stats['total_properties']} properties, {total_bookings} bookings")
        return {
            "role": current_user.role,
            "total_properties": stats["total_properties"],
            "available_properties": stats["available_properties"],
            "total_bookings": total_bookings,
            "upcoming_count": len(upcoming),
            "upcoming_bookings": upcoming,
        }
