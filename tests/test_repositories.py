"""
Repository tests against an in-memory database.
Tests scoped booking queries, conditional status updates and cascades.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select

from rentals.models.booking import Booking, BookingStatus
from rentals.models.payment import Payment, PaymentStatus
from rentals.models.user import UserRole
from rentals.repositories.booking import BookingRepository, BookingScope
from rentals.repositories.payment import PaymentRepository
from rentals.repositories.property import PropertyFilters, PropertyRepository
from rentals.repositories.user import UserRepository
from tests.conftest import BookingFactory, PropertyFactory, UserFactory


class TestUserRepository:

    @pytest.mark.asyncio
    async def test_create_user_hashes_password_and_defaults_role(self, user_repository: UserRepository):
        user = await user_repository.create_user({
            "email": "New.Person@Example.com",
            "password": "Password123",
            "first_name": "New",
            "last_name": "Person",
        })

        assert user.email == "new.person@example.com"
        assert user.role == UserRole.USER
        assert user.hashed_password != "Password123"
        assert user.verify_password("Password123")

    @pytest.mark.asyncio
    async def test_create_user_duplicate_email(self, user_repository: UserRepository, guest):
        with pytest.raises(ValueError, match="already exists"):
            await user_repository.create_user({
                "email": guest.email,
                "password": "Password123",
                "first_name": "Dup",
            })

    @pytest.mark.asyncio
    async def test_list_users_by_role(self, user_repository: UserRepository, guest, owner, admin):
        owners, total = await user_repository.list_users(role=UserRole.OWNER)

        assert total == 1
        assert [u.id for u in owners] == [owner.id]

    @pytest.mark.asyncio
    async def test_list_users_pages_newest_first(self, user_repository: UserRepository, guest, owner, admin):
        users, total = await user_repository.list_users(skip=0, limit=2)

        assert total == 3
        assert len(users) == 2
        assert users[0].created_at >= users[1].created_at


class TestPropertyRepository:

    @pytest.mark.asyncio
    async def test_filters_exclude_own_and_unavailable(
        self, property_repository: PropertyRepository, owner, other_owner
    ):
        mine = await PropertyFactory.create_property(property_repository, owner.id, title="Mine")
        theirs = await PropertyFactory.create_property(property_repository, other_owner.id, title="Theirs")
        await PropertyFactory.create_property(
            property_repository, other_owner.id, title="Hidden", status="unavailable"
        )

        properties, total = await property_repository.list_properties(
            PropertyFilters(status="available", exclude_owner_id=owner.id)
        )

        assert total == 1
        assert [p.id for p in properties] == [theirs.id]
        assert mine.id not in [p.id for p in properties]

    @pytest.mark.asyncio
    async def test_search_text_and_location(self, property_repository: PropertyRepository, owner):
        await PropertyFactory.create_property(property_repository, owner.id, title="Hill cabin", location="Manali")
        await PropertyFactory.create_property(property_repository, owner.id, title="Beach hut", location="Goa")

        by_text, _ = await property_repository.list_properties(PropertyFilters(search_text="cabin"))
        by_location, _ = await property_repository.list_properties(PropertyFilters(location="goa"))

        assert [p.title for p in by_text] == ["Hill cabin"]
        assert [p.title for p in by_location] == ["Beach hut"]

    @pytest.mark.asyncio
    async def test_create_property_rejects_bad_price(self, property_repository: PropertyRepository, owner):
        with pytest.raises(ValueError):
            await PropertyFactory.create_property(property_repository, owner.id, price=Decimal("0"))

    @pytest.mark.asyncio
    async def test_owner_statistics(self, property_repository: PropertyRepository, owner, other_owner):
        await PropertyFactory.create_property(property_repository, owner.id)
        await PropertyFactory.create_property(property_repository, owner.id, status="unavailable")
        await PropertyFactory.create_property(property_repository, other_owner.id)

        stats = await property_repository.get_owner_statistics(owner.id)
        everyone = await property_repository.get_owner_statistics()

        assert stats["total_properties"] == 2
        assert stats["available_properties"] == 1
        assert stats["properties_by_status"] == {"available": 1, "unavailable": 1}
        assert everyone["total_properties"] == 3

    @pytest.mark.asyncio
    async def test_exists_and_bulk_delete(self, property_repository: PropertyRepository, owner):
        first = await PropertyFactory.create_property(property_repository, owner.id)
        second = await PropertyFactory.create_property(property_repository, owner.id)

        assert await property_repository.exists(first.id)
        assert await property_repository.bulk_delete([first.id, second.id]) == 2
        assert not await property_repository.exists(first.id)
        assert await property_repository.bulk_delete([]) == 0

    @pytest.mark.asyncio
    async def test_delete_property_cascades_to_bookings_and_payments(
        self, db_session, property_repository, booking_repository, payment_repository, listed_property, guest
    ):
        booking = await BookingFactory.create_booking(booking_repository, listed_property, guest)
        await payment_repository.create({
            "booking_id": booking.id,
            "amount": Decimal("1500.00"),
            "amount_subunits": 150000,
            "currency": "INR",
            "payment_status": PaymentStatus.PENDING,
        })

        assert await property_repository.delete(listed_property.id)

        bookings = (await db_session.execute(select(Booking))).scalars().all()
        payments = (await db_session.execute(select(Payment))).scalars().all()
        assert bookings == []
        assert payments == []


class TestBookingScopes:

    @pytest.fixture
    async def bookings(self, booking_repository, property_repository, owner, other_owner, guest, other_guest):
        first = await PropertyFactory.create_property(property_repository, owner.id, title="First")
        second = await PropertyFactory.create_property(property_repository, other_owner.id, title="Second")
        return {
            "guest_first": await BookingFactory.create_booking(booking_repository, first, guest),
            "guest_second": await BookingFactory.create_booking(booking_repository, second, guest),
            "other_first": await BookingFactory.create_booking(booking_repository, first, other_guest),
        }

    @pytest.mark.asyncio
    async def test_guest_scope(self, booking_repository: BookingRepository, bookings, guest):
        rows, total = await booking_repository.list_scoped(BookingScope.for_guest(guest.id))

        assert total == 2
        assert {b.id for b in rows} == {bookings["guest_first"].id, bookings["guest_second"].id}

    @pytest.mark.asyncio
    async def test_owner_scope(self, booking_repository: BookingRepository, bookings, owner):
        rows, total = await booking_repository.list_scoped(BookingScope.for_owner(owner.id))

        assert total == 2
        assert {b.id for b in rows} == {bookings["guest_first"].id, bookings["other_first"].id}

    @pytest.mark.asyncio
    async def test_participant_scope(
        self, booking_repository: BookingRepository, property_repository, bookings, owner, other_owner
    ):
        third = await PropertyFactory.create_property(property_repository, other_owner.id, title="Third")
        own_stay = await BookingFactory.create_booking(booking_repository, third, owner)

        rows, total = await booking_repository.list_scoped(BookingScope.for_participant(owner.id))

        assert total == 3
        assert {b.id for b in rows} == {
            bookings["guest_first"].id, bookings["other_first"].id, own_stay.id
        }
        assert await booking_repository.get_scoped(
            bookings["guest_second"].id, BookingScope.for_participant(owner.id)
        ) is None

    @pytest.mark.asyncio
    async def test_everything_and_empty_scope(self, booking_repository: BookingRepository, bookings):
        _, total_all = await booking_repository.list_scoped(BookingScope.everything())
        rows_none, total_none = await booking_repository.list_scoped(BookingScope())

        assert total_all == 3
        assert rows_none == [] and total_none == 0

    @pytest.mark.asyncio
    async def test_get_scoped_hides_other_rows(self, booking_repository: BookingRepository, bookings, other_guest):
        hidden = await booking_repository.get_scoped(
            bookings["guest_first"].id, BookingScope.for_guest(other_guest.id)
        )
        visible = await booking_repository.get_scoped(
            bookings["other_first"].id, BookingScope.for_guest(other_guest.id)
        )

        assert hidden is None
        assert visible is not None

    @pytest.mark.asyncio
    async def test_owner_scope_follows_property_transfer(
        self, booking_repository, property_repository, bookings, owner, other_owner
    ):
        first_property_id = bookings["guest_first"].property_id
        await property_repository.update(first_property_id, {"owner_id": other_owner.id})

        _, total_old = await booking_repository.list_scoped(BookingScope.for_owner(owner.id))
        _, total_new = await booking_repository.list_scoped(BookingScope.for_owner(other_owner.id))

        assert total_old == 0
        assert total_new == 3

    @pytest.mark.asyncio
    async def test_status_filter(self, booking_repository: BookingRepository, bookings):
        await booking_repository.transition_status(bookings["guest_first"].id, BookingStatus.CONFIRMED)

        rows, total = await booking_repository.list_scoped(BookingScope.everything(), status=BookingStatus.CONFIRMED)

        assert total == 1
        assert rows[0].id == bookings["guest_first"].id


class TestBookingRepository:

    @pytest.mark.asyncio
    async def test_transition_status_only_from_allowed_sources(
        self, booking_repository: BookingRepository, pending_booking
    ):
        assert await booking_repository.transition_status(pending_booking.id, BookingStatus.CONFIRMED) == 1
        # A confirmed booking cannot be confirmed again
        assert await booking_repository.transition_status(pending_booking.id, BookingStatus.CONFIRMED) == 0
        assert await booking_repository.transition_status(pending_booking.id, BookingStatus.CANCELLED) == 1
        # Cancelled is final
        assert await booking_repository.transition_status(pending_booking.id, BookingStatus.CONFIRMED) == 0
        assert await booking_repository.transition_status(pending_booking.id, BookingStatus.PENDING) == 0

        reloaded = await booking_repository.reload(pending_booking.id)
        assert reloaded.status == BookingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_find_overlapping_ignores_cancelled_and_adjacent(
        self, booking_repository: BookingRepository, listed_property, guest
    ):
        start = date.today() + timedelta(days=30)
        active = await BookingFactory.create_booking(booking_repository, listed_property, guest, check_in=start)
        await BookingFactory.create_booking(
            booking_repository, listed_property, guest,
            check_in=start + timedelta(days=1), status=BookingStatus.CANCELLED
        )

        clashes = await booking_repository.find_overlapping(
            listed_property.id, start + timedelta(days=2), start + timedelta(days=5)
        )
        adjacent = await booking_repository.find_overlapping(
            listed_property.id, start + timedelta(days=3), start + timedelta(days=6)
        )

        assert [b.id for b in clashes] == [active.id]
        assert adjacent == []

    @pytest.mark.asyncio
    async def test_upcoming_orders_by_check_in_and_limits(
        self, booking_repository: BookingRepository, listed_property, guest
    ):
        today = date.today()
        await BookingFactory.create_booking(booking_repository, listed_property, guest, check_in=today - timedelta(days=5))
        later = await BookingFactory.create_booking(booking_repository, listed_property, guest, check_in=today + timedelta(days=40))
        soon = await BookingFactory.create_booking(booking_repository, listed_property, guest, check_in=today + timedelta(days=2))
        mid = await BookingFactory.create_booking(booking_repository, listed_property, guest, check_in=today + timedelta(days=20))
        await BookingFactory.create_booking(booking_repository, listed_property, guest, check_in=today + timedelta(days=60))

        upcoming = await booking_repository.upcoming(BookingScope.for_guest(guest.id), today, limit=3)

        assert [b.id for b in upcoming] == [soon.id, mid.id, later.id]


class TestPaymentRepository:

    @pytest.mark.asyncio
    async def test_gateway_payment_id_is_unique(
        self, db_session, payment_repository: PaymentRepository, pending_booking
    ):
        from sqlalchemy.exc import IntegrityError

        values = {
            "booking_id": pending_booking.id,
            "amount": Decimal("1500.00"),
            "amount_subunits": 150000,
            "currency": "INR",
            "payment_status": PaymentStatus.SUCCESS,
            "razorpay_payment_id": "pay_dup",
        }
        await payment_repository.create(values)

        with pytest.raises(IntegrityError):
            await payment_repository.create(values)

    @pytest.mark.asyncio
    async def test_latest_pending(self, payment_repository: PaymentRepository, pending_booking):
        for order_id in ("order_a", "order_b"):
            await payment_repository.create({
                "booking_id": pending_booking.id,
                "amount": Decimal("1500.00"),
                "amount_subunits": 150000,
                "currency": "INR",
                "payment_status": PaymentStatus.PENDING,
                "razorpay_order_id": order_id,
            })

        latest = await payment_repository.get_latest_pending(pending_booking.id)
        assert latest is not None
        assert latest.payment_status == PaymentStatus.PENDING
