"""
Tests for the role and ownership policy.
"""

import uuid
import pytest

from rentals.models.booking import Booking
from rentals.models.property import Property
from rentals.models.user import User, UserRole
from rentals.repositories.booking import BookingScope
from rentals.services.policy import Action, AuthorizationPolicy
from rentals.utils.exceptions import AuthError, InsufficientPermissionsError


def _user(role: UserRole, is_active: bool = True) -> User:
    return User(id=uuid.uuid4(), email=f"{role.value}@example.com", first_name="T", last_name="", role=role, is_active=is_active)


@pytest.fixture
def policy() -> AuthorizationPolicy:
    return AuthorizationPolicy()


class TestRoleActions:

    @pytest.mark.parametrize("role,action,allowed", [
        (UserRole.USER, Action.BOOKING_CREATE, True),
        (UserRole.USER, Action.PROPERTY_CREATE, False),
        (UserRole.USER, Action.BOOKING_VIEW_ALL, False),
        (UserRole.USER, Action.PAYMENT_RECONCILE, False),
        (UserRole.OWNER, Action.PROPERTY_CREATE, True),
        (UserRole.OWNER, Action.BOOKING_VIEW_FOR_OWNED_PROPERTIES, True),
        (UserRole.OWNER, Action.BOOKING_CREATE, True),
        (UserRole.OWNER, Action.PROPERTY_MANAGE_ANY, False),
        (UserRole.OWNER, Action.USER_LIST, False),
        (UserRole.ADMIN, Action.PROPERTY_MANAGE_ANY, True),
        (UserRole.ADMIN, Action.PAYMENT_RECONCILE, True),
        (UserRole.ADMIN, Action.USER_CREATE, True),
    ])
    def test_role_table(self, policy, role, action, allowed):
        assert policy.can(_user(role), action) is allowed

    def test_inactive_user_has_no_actions(self, policy):
        assert policy.allowed_actions(_user(UserRole.ADMIN, is_active=False)) == frozenset()

    def test_require_without_user_is_auth_error(self, policy):
        with pytest.raises(AuthError):
            policy.require(None, Action.BOOKING_CREATE)

    def test_require_without_permission_is_forbidden(self, policy):
        with pytest.raises(InsufficientPermissionsError):
            policy.require(_user(UserRole.USER), Action.PROPERTY_CREATE)


class TestOwnershipRules:

    def test_manage_property(self, policy):
        owner = _user(UserRole.OWNER)
        other_owner = _user(UserRole.OWNER)
        admin = _user(UserRole.ADMIN)
        property_obj = Property(id=uuid.uuid4(), owner_id=owner.id)

        assert policy.can_manage_property(owner, property_obj)
        assert policy.can_manage_property(admin, property_obj)
        assert not policy.can_manage_property(other_owner, property_obj)
        assert not policy.can_manage_property(_user(UserRole.USER), property_obj)

    def test_cancel_booking(self, policy):
        guest = _user(UserRole.USER)
        owner = _user(UserRole.OWNER)
        property_obj = Property(id=uuid.uuid4(), owner_id=owner.id)
        booking = Booking(id=uuid.uuid4(), user_id=guest.id, owner_id=owner.id, property_rel=property_obj)

        assert policy.can_cancel_booking(guest, booking)
        assert policy.can_cancel_booking(owner, booking)
        assert policy.can_cancel_booking(_user(UserRole.ADMIN), booking)
        assert not policy.can_cancel_booking(_user(UserRole.USER), booking)
        assert not policy.can_cancel_booking(_user(UserRole.OWNER), booking)

    def test_ownership_follows_current_property_owner(self, policy):
        old_owner = _user(UserRole.OWNER)
        new_owner = _user(UserRole.OWNER)
        property_obj = Property(id=uuid.uuid4(), owner_id=new_owner.id)
        booking = Booking(id=uuid.uuid4(), user_id=uuid.uuid4(), owner_id=old_owner.id, property_rel=property_obj)

        assert policy.can_view_booking(new_owner, booking)
        assert not policy.can_view_booking(old_owner, booking)


class TestBookingScope:

    def test_scope_per_role(self, policy):
        guest = _user(UserRole.USER)
        owner = _user(UserRole.OWNER)

        assert policy.booking_scope(_user(UserRole.ADMIN)) == BookingScope.everything()
        assert policy.booking_scope(owner) == BookingScope.for_owner(owner.id)
        assert policy.booking_scope(guest) == BookingScope.for_guest(guest.id)

    def test_access_scope_adds_owners_own_stays(self, policy):
        guest = _user(UserRole.USER)
        owner = _user(UserRole.OWNER)

        assert policy.booking_access_scope(owner) == BookingScope.for_participant(owner.id)
        assert policy.booking_access_scope(guest) == BookingScope.for_guest(guest.id)
        assert policy.booking_access_scope(_user(UserRole.ADMIN)) == BookingScope.everything()

        with pytest.raises(AuthError):
            policy.booking_access_scope(None)

    def test_scope_requires_user(self, policy):
        with pytest.raises(AuthError):
            policy.booking_scope(None)

    def test_owned_properties_scope_rejects_guests(self, policy):
        with pytest.raises(InsufficientPermissionsError):
            policy.owned_properties_scope(_user(UserRole.USER))
