"""
Authorization policy.

One table maps each role to the actions it may perform. Ownership rules
(who may manage a property, who may cancel or view a booking) and the
booking listing scope are answered here so routers and services never
compare roles themselves.
"""

import enum
from typing import Dict, FrozenSet, Optional

from rentals.models.booking import Booking
from rentals.models.property import Property
from rentals.models.user import User, UserRole
from rentals.repositories.booking import BookingScope
from rentals.utils.exceptions import AuthError, InsufficientPermissionsError


class Action(str, enum.Enum):
    PROPERTY_VIEW = "property.view"
    PROPERTY_CREATE = "property.create"
    PROPERTY_MANAGE_OWN = "property.manage_own"
    PROPERTY_MANAGE_ANY = "property.manage_any"
    BOOKING_CREATE = "booking.create"
    BOOKING_VIEW_OWN = "booking.view_own"
    BOOKING_VIEW_FOR_OWNED_PROPERTIES = "booking.view_for_owned_properties"
    BOOKING_VIEW_ALL = "booking.view_all"
    BOOKING_CANCEL = "booking.cancel"
    PAYMENT_INITIATE = "payment.initiate"
    PAYMENT_RECONCILE = "payment.reconcile"
    USER_LIST = "user.list"
    USER_CREATE = "user.create"


_GUEST_ACTIONS = frozenset({
    Action.PROPERTY_VIEW,
    Action.BOOKING_CREATE,
    Action.BOOKING_VIEW_OWN,
    Action.BOOKING_CANCEL,
    Action.PAYMENT_INITIATE,
})

_OWNER_ACTIONS = _GUEST_ACTIONS | frozenset({
    Action.PROPERTY_CREATE,
    Action.PROPERTY_MANAGE_OWN,
    Action.BOOKING_VIEW_FOR_OWNED_PROPERTIES,
})

_ADMIN_ACTIONS = frozenset(Action)

ROLE_ACTIONS: Dict[UserRole, FrozenSet[Action]] = {
    UserRole.USER: _GUEST_ACTIONS,
    UserRole.OWNER: _OWNER_ACTIONS,
    UserRole.ADMIN: _ADMIN_ACTIONS,
}


class AuthorizationPolicy:
    """Role and ownership checks for every protected operation."""

    def __init__(self, role_actions: Optional[Dict[UserRole, FrozenSet[Action]]] = None):
        self.role_actions = role_actions or ROLE_ACTIONS

    def allowed_actions(self, user: Optional[User]) -> FrozenSet[Action]:
        if user is None or not user.is_active:
            return frozenset()
        return self.role_actions.get(user.role, frozenset())

    def can(self, user: Optional[User], action: Action) -> bool:
        return action in self.allowed_actions(user)

    def require(self, user: Optional[User], action: Action) -> None:
        """
        Raise unless the user may perform the action.

        Raises:
            AuthError: If there is no user
            InsufficientPermissionsError: If the role lacks the action
        """
        if user is None:
            raise AuthError()
        if not self.can(user, action):
            raise InsufficientPermissionsError(f"perform {action.value}")

    def can_manage_property(self, user: Optional[User], property_obj: Property) -> bool:
        if self.can(user, Action.PROPERTY_MANAGE_ANY):
            return True
        return self.can(user, Action.PROPERTY_MANAGE_OWN) and property_obj.owner_id == user.id

    def can_cancel_booking(self, user: Optional[User], booking: Booking) -> bool:
        if not self.can(user, Action.BOOKING_CANCEL):
            return False
        if self.can(user, Action.BOOKING_VIEW_ALL):
            return True
        if booking.user_id == user.id:
            return True
        return self._owns_booked_property(user, booking)

    def can_view_booking(self, user: Optional[User], booking: Booking) -> bool:
        if self.can(user, Action.BOOKING_VIEW_ALL):
            return True
        if self.can(user, Action.BOOKING_VIEW_OWN) and booking.user_id == user.id:
            return True
        return (
            self.can(user, Action.BOOKING_VIEW_FOR_OWNED_PROPERTIES)
            and self._owns_booked_property(user, booking)
        )

    def booking_scope(self, user: Optional[User]) -> BookingScope:
        """
        Rows the user's booking list covers.

        Admins see every booking, owners the bookings on properties they own
        now, and everyone else the bookings they requested.
        """
        if user is None:
            raise AuthError()
        if self.can(user, Action.BOOKING_VIEW_ALL):
            return BookingScope.everything()
        if self.can(user, Action.BOOKING_VIEW_FOR_OWNED_PROPERTIES):
            return BookingScope.for_owner(user.id)
        if self.can(user, Action.BOOKING_VIEW_OWN):
            return BookingScope.for_guest(user.id)
        return BookingScope()

    def booking_access_scope(self, user: Optional[User]) -> BookingScope:
        """
        Bookings the user may open one at a time.

        Wider than ``booking_scope`` for owners: besides bookings on their
        properties they reach the stays they booked themselves, so they can
        pay for and follow them.
        """
        if user is None:
            raise AuthError()
        if self.can(user, Action.BOOKING_VIEW_ALL):
            return BookingScope.everything()
        hosts = self.can(user, Action.BOOKING_VIEW_FOR_OWNED_PROPERTIES)
        guests = self.can(user, Action.BOOKING_VIEW_OWN)
        if hosts and guests:
            return BookingScope.for_participant(user.id)
        if hosts:
            return BookingScope.for_owner(user.id)
        if guests:
            return BookingScope.for_guest(user.id)
        return BookingScope()

    def owned_properties_scope(self, user: Optional[User]) -> BookingScope:
        """Bookings on properties the user owns, whatever other rights the role has."""
        self.require(user, Action.BOOKING_VIEW_FOR_OWNED_PROPERTIES)
        return BookingScope.for_owner(user.id)

    @staticmethod
    def _owns_booked_property(user: User, booking: Booking) -> bool:
        property_obj = booking.property_rel
        if property_obj is not None:
            return property_obj.owner_id == user.id
        return booking.owner_id == user.id


policy = AuthorizationPolicy()
