"""
Tests for booking creation, visibility and cancellation.
"""

import uuid
import pytest
from datetime import date, timedelta

from rentals.models.booking import BookingStatus
from rentals.services.booking import BookingService, validate_stay
from rentals.utils.exceptions import (
    AuthError,
    BookingStateError,
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError
)
from tests.conftest import BookingFactory, PropertyFactory


def _stay(offset: int = 10, nights: int = 3):
    check_in = date.today() + timedelta(days=offset)
    return check_in, check_in + timedelta(days=nights)


class TestValidateStay:

    def test_valid_range(self):
        validate_stay(date(2026, 12, 20), date(2026, 12, 21))

    @pytest.mark.parametrize("check_in,check_out", [
        (None, date(2026, 12, 21)),
        (date(2026, 12, 20), None),
        (None, None),
    ])
    def test_missing_dates(self, check_in, check_out):
        with pytest.raises(ValidationError) as exc_info:
            validate_stay(check_in, check_out)
        assert exc_info.value.field_errors

    @pytest.mark.parametrize("check_out", [date(2026, 12, 20), date(2026, 12, 19)])
    def test_check_out_must_follow_check_in(self, check_out):
        with pytest.raises(ValidationError):
            validate_stay(date(2026, 12, 20), check_out)


class TestCreateBooking:

    @pytest.mark.asyncio
    async def test_creates_pending_booking_with_owner_copied(
        self, booking_service: BookingService, listed_property, guest, owner
    ):
        check_in, check_out = _stay()

        booking = await booking_service.create_booking(listed_property.id, check_in, check_out, guest)

        assert booking.status == BookingStatus.PENDING
        assert booking.user_id == guest.id
        assert booking.owner_id == owner.id
        assert booking.nights == 3
        assert booking.property_rel.id == listed_property.id

    @pytest.mark.asyncio
    async def test_requires_user(self, booking_service: BookingService, listed_property):
        check_in, check_out = _stay()
        with pytest.raises(AuthError):
            await booking_service.create_booking(listed_property.id, check_in, check_out, None)

    @pytest.mark.asyncio
    async def test_reversed_dates(self, booking_service: BookingService, listed_property, guest):
        check_in, check_out = _stay()
        with pytest.raises(ValidationError):
            await booking_service.create_booking(listed_property.id, check_out, check_in, guest)

    @pytest.mark.asyncio
    async def test_unknown_property(self, booking_service: BookingService, guest):
        check_in, check_out = _stay()
        with pytest.raises(NotFoundError):
            await booking_service.create_booking(uuid.uuid4(), check_in, check_out, guest)

    @pytest.mark.asyncio
    async def test_unavailable_property(self, booking_service: BookingService, property_repository, owner, guest):
        hidden = await PropertyFactory.create_property(property_repository, owner.id, status="unavailable")
        check_in, check_out = _stay()

        with pytest.raises(ValidationError, match="not available"):
            await booking_service.create_booking(hidden.id, check_in, check_out, guest)

    @pytest.mark.asyncio
    async def test_overlaps_allowed_by_default(self, booking_service: BookingService, listed_property, guest, other_guest):
        check_in, check_out = _stay()

        first = await booking_service.create_booking(listed_property.id, check_in, check_out, guest)
        second = await booking_service.create_booking(listed_property.id, check_in, check_out, other_guest)

        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_overlap_rejection_when_enabled(self, db_session, listed_property, guest, other_guest):
        service = BookingService(db_session, reject_overlapping=True)
        check_in, check_out = _stay()
        await service.create_booking(listed_property.id, check_in, check_out, guest)

        with pytest.raises(ConflictError):
            await service.create_booking(
                listed_property.id, check_in + timedelta(days=1), check_out + timedelta(days=1), other_guest
            )
        # Starting on the previous check-out day is fine
        await service.create_booking(listed_property.id, check_out, check_out + timedelta(days=2), other_guest)


class TestVisibility:

    @pytest.mark.asyncio
    async def test_guest_cannot_see_other_guests_booking(
        self, booking_service: BookingService, pending_booking, other_guest
    ):
        with pytest.raises(NotFoundError):
            await booking_service.get_booking(pending_booking.id, other_guest)

    @pytest.mark.asyncio
    async def test_owner_and_admin_see_booking(self, booking_service: BookingService, pending_booking, owner, admin):
        assert (await booking_service.get_booking(pending_booking.id, owner)).id == pending_booking.id
        assert (await booking_service.get_booking(pending_booking.id, admin)).id == pending_booking.id

    @pytest.mark.asyncio
    async def test_other_owner_sees_nothing(self, booking_service: BookingService, pending_booking, other_owner):
        bookings, total = await booking_service.list_bookings(other_owner)
        assert bookings == [] and total == 0

    @pytest.mark.asyncio
    async def test_owner_opens_own_stay_elsewhere(
        self, booking_service: BookingService, property_repository, owner, other_owner
    ):
        elsewhere = await PropertyFactory.create_property(property_repository, other_owner.id, title="Beach Hut")
        check_in = date.today() + timedelta(days=20)
        booking = await booking_service.create_booking(elsewhere.id, check_in, check_in + timedelta(days=2), owner)

        assert (await booking_service.get_booking(booking.id, owner)).id == booking.id
        assert (await booking_service.get_booking(booking.id, other_owner)).id == booking.id

        # The general list stays limited to bookings on the owner's properties
        _, total = await booking_service.list_bookings(owner)
        assert total == 0

    @pytest.mark.asyncio
    async def test_guest_cannot_list_owned_property_bookings(self, booking_service: BookingService, guest):
        with pytest.raises(InsufficientPermissionsError):
            await booking_service.list_bookings_for_owned_properties(guest)

    @pytest.mark.asyncio
    async def test_admin_owned_properties_scope_is_own_properties(
        self, booking_service: BookingService, pending_booking, admin
    ):
        # Admins see all bookings in the general list, but only their own properties here
        _, total_all = await booking_service.list_bookings(admin)
        _, total_owned = await booking_service.list_bookings_for_owned_properties(admin)

        assert total_all == 1
        assert total_owned == 0


class TestCancelBooking:

    @pytest.mark.asyncio
    async def test_guest_cancels_pending(self, booking_service: BookingService, pending_booking, guest):
        booking = await booking_service.cancel_booking(pending_booking.id, guest)

        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancelled_at is not None
        assert booking.cancelled_by == guest.id

    @pytest.mark.asyncio
    async def test_owner_cancels_confirmed(
        self, booking_service: BookingService, booking_repository, pending_booking, owner
    ):
        await booking_repository.transition_status(pending_booking.id, BookingStatus.CONFIRMED)

        booking = await booking_service.cancel_booking(pending_booking.id, owner)

        assert booking.status == BookingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_twice_is_noop(self, booking_service: BookingService, pending_booking, guest):
        first = await booking_service.cancel_booking(pending_booking.id, guest)
        second = await booking_service.cancel_booking(pending_booking.id, guest)

        assert second.status == BookingStatus.CANCELLED
        assert second.cancelled_at == first.cancelled_at

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel(self, booking_service: BookingService, pending_booking, other_guest, other_owner):
        with pytest.raises(InsufficientPermissionsError):
            await booking_service.cancel_booking(pending_booking.id, other_guest)
        with pytest.raises(InsufficientPermissionsError):
            await booking_service.cancel_booking(pending_booking.id, other_owner)

    @pytest.mark.asyncio
    async def test_cancel_unknown_booking(self, booking_service: BookingService, guest):
        with pytest.raises(NotFoundError):
            await booking_service.cancel_booking(uuid.uuid4(), guest)

    @pytest.mark.asyncio
    async def test_lost_race_reports_state_error(
        self, booking_service: BookingService, booking_repository, pending_booking, guest, monkeypatch
    ):
        async def no_rows(*args, **kwargs):
            return 0

        monkeypatch.setattr(booking_repository.__class__, "transition_status", no_rows)

        with pytest.raises(BookingStateError):
            await booking_service.cancel_booking(pending_booking.id, guest)


class TestDashboard:

    @pytest.mark.asyncio
    async def test_guest_summary(self, dashboard_service, booking_repository, listed_property, guest):
        today = date.today()
        for offset in (2, 5, 9, 14):
            await BookingFactory.create_booking(
                booking_repository, listed_property, guest, check_in=today + timedelta(days=offset)
            )

        summary = await dashboard_service.get_summary(guest, today=today)

        assert summary["total_properties"] == 0
        assert summary["total_bookings"] == 4
        assert summary["upcoming_count"] == 3
        assert [b.check_in for b in summary["upcoming_bookings"]] == [
            today + timedelta(days=2), today + timedelta(days=5), today + timedelta(days=9)
        ]

    @pytest.mark.asyncio
    async def test_owner_summary(self, dashboard_service, pending_booking, owner):
        summary = await dashboard_service.get_summary(owner)

        assert summary["total_properties"] == 1
        assert summary["available_properties"] == 1
        assert summary["total_bookings"] == 1
