"""
Booking service: request, view, list and cancel bookings.

Confirmation is not done here; a booking becomes confirmed only through a
verified payment (see ``rentals.services.payment``).
"""

from datetime import date, datetime, timezone
from typing import Optional, List, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from rentals.config import settings
from rentals.models.booking import Booking, BookingStatus
from rentals.models.user import User
from rentals.repositories.booking import BookingRepository, BookingScope
from rentals.repositories.property import PropertyRepository
from rentals.services.policy import Action, AuthorizationPolicy, policy as default_policy
from rentals.utils.exceptions import (
    AuthError,
    BookingStateError,
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
    persistence_error
)
import uuid
import logging

logger = logging.getLogger(__name__)


def validate_stay(check_in: Optional[date], check_out: Optional[date]) -> None:
    """
    Raises:
        ValidationError: If a date is missing or check-in is not before check-out
    """
    missing = [
        {"field": name, "message": "Field required"}
        for name, value in (("check_in", check_in), ("check_out", check_out))
        if value is None
    ]
    if missing:
        raise ValidationError("Both check-in and check-out dates are required", field_errors=missing)
    if check_in >= check_out:
        raise ValidationError(
            "check_in must be before check_out",
            field_errors=[{"field": "check_out", "message": "Must be after check_in"}]
        )


class BookingService:
    """
    Booking lifecycle operations.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        policy: Optional[AuthorizationPolicy] = None,
        reject_overlapping: Optional[bool] = None
    ):
        self.db = db_session
        self.booking_repo = BookingRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.policy = policy or default_policy
        self.reject_overlapping = (
            settings.reject_overlapping_bookings if reject_overlapping is None else reject_overlapping
        )

    async def create_booking(
        self,
        property_id: uuid.UUID,
        check_in: Optional[date],
        check_out: Optional[date],
        current_user: Optional[User]
    ) -> Booking:
        """
        Request a stay. The new booking is pending until paid.

        Raises:
            AuthError: If there is no current user
            ValidationError: If dates are missing or reversed, or the property is not bookable
            NotFoundError: If the property doesn't exist
            ConflictError: If overlap rejection is enabled and the dates are taken
            PersistenceError: If the store rejects the write
        """
        if current_user is None:
            raise AuthError("You must be logged in to book a property")
        self.policy.require(current_user, Action.BOOKING_CREATE)
        validate_stay(check_in, check_out)

        try:
            property_obj = await self.property_repo.get_by_id(property_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "load property")

        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        if not property_obj.is_bookable:
            raise ValidationError(f"Property is not available for booking (status: {property_obj.status})")

        try:
            if self.reject_overlapping:
                clashes = await self.booking_repo.find_overlapping(property_id, check_in, check_out)
                if clashes:
                    raise ConflictError("The property is already booked for some of these dates")

            booking = await self.booking_repo.create({
                "property_id": property_id,
                "user_id": current_user.id,
                "owner_id": property_obj.owner_id,
                "check_in": check_in,
                "check_out": check_out,
                "status": BookingStatus.PENDING,
            })
            booking = await self.booking_repo.reload(booking.id)
        except SQLAlchemyError as e:
            logger.error(f"Booking for property {property_id} by {current_user.email} failed: {e}")
            raise persistence_error(e, "create booking")

        logger.info(
            f"Booking {booking.id} requested by {current_user.email} for property {property_id} "
            f"({check_in} -> {check_out})"
        )
        return booking

    async def get_booking(self, booking_id: uuid.UUID, current_user: User) -> Booking:
        """
        Booking visible to the requester.

        Raises:
            NotFoundError: If the booking doesn't exist or is outside the requester's scope
        """
        scope = self.policy.booking_access_scope(current_user)
        try:
            booking = await self.booking_repo.get_scoped(booking_id, scope)
        except SQLAlchemyError as e:
            raise persistence_error(e, "load booking")
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def list_bookings(
        self,
        current_user: User,
        status: Optional[BookingStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Booking], int]:
        """
        Bookings the requester may see, newest first.

        Admins see all bookings, owners the bookings on the properties they
        own, other users the bookings they made.
        """
        return await self._list(self.policy.booking_scope(current_user), status, skip, limit)

    async def list_bookings_for_owned_properties(
        self,
        current_user: User,
        status: Optional[BookingStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Booking], int]:
        """Bookings on properties the requester owns, for owners and admins alike."""
        return await self._list(self.policy.owned_properties_scope(current_user), status, skip, limit)

    async def cancel_booking(self, booking_id: uuid.UUID, current_user: User) -> Booking:
        """
        Cancel a pending or confirmed booking.

        Cancelling an already cancelled booking succeeds without changes.
        No refund is started.

        Raises:
            NotFoundError: If the booking doesn't exist
            InsufficientPermissionsError: If the requester may not cancel it
            PersistenceError: If the store rejects the write
        """
        try:
            booking = await self.booking_repo.get_by_id(booking_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "load booking")

        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        if not self.policy.can_cancel_booking(current_user, booking):
            raise InsufficientPermissionsError("cancel this booking")

        if booking.status == BookingStatus.CANCELLED:
            logger.debug(f"Booking {booking_id} already cancelled")
            return booking

        try:
            changed = await self.booking_repo.transition_status(
                booking_id,
                BookingStatus.CANCELLED,
                values={
                    "cancelled_at": datetime.now(timezone.utc),
                    "cancelled_by": current_user.id,
                }
            )
            booking = await self.booking_repo.reload(booking_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "cancel booking")

        if not changed and booking.status != BookingStatus.CANCELLED:
            raise BookingStateError(booking.status.value, BookingStatus.CANCELLED.value)

        logger.info(f"Booking {booking_id} cancelled by {current_user.email}")
        return booking

    async def _list(
        self,
        scope: BookingScope,
        status: Optional[BookingStatus],
        skip: int,
        limit: int
    ) -> Tuple[List[Booking], int]:
        try:
            return await self.booking_repo.list_scoped(scope, status=status, skip=skip, limit=limit)
        except SQLAlchemyError as e:
            raise persistence_error(e, "list bookings")
