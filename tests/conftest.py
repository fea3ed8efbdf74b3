"""
Test configuration and fixtures for the rental bookings API.
Provides database fixtures, test data factories, a fake payment gateway and an API client.
"""

import os
import tempfile

_UPLOAD_DIR = tempfile.mkdtemp(prefix="rentals-test-uploads-")
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_DIR"] = _UPLOAD_DIR
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"

import asyncio
import io
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rentals.database import Base, enable_sqlite_foreign_keys, get_db
from rentals.main import app
from rentals.models.booking import Booking, BookingStatus
from rentals.models.property import Property
from rentals.models.user import User, UserRole
from rentals.repositories.booking import BookingRepository
from rentals.repositories.image import ImageRepository
from rentals.repositories.payment import PaymentRepository
from rentals.repositories.property import PropertyRepository
from rentals.repositories.user import UserRepository
from rentals.services.auth import AuthService
from rentals.services.booking import BookingService
from rentals.services.dashboard import DashboardService
from rentals.services.gateway import RazorpayGateway
from rentals.services.image import ImageService
from rentals.services.payment import BookingLocks, PaymentService
from rentals.services.property import PropertyService
from rentals.utils.auth import create_access_token
from rentals.utils.dependencies import get_object_storage, get_payment_gateway
from rentals.utils.exceptions import ExternalServiceError
from rentals.utils.file_utils import LocalObjectStorage


TEST_PASSWORD = "Password123"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


class FakeGateway(RazorpayGateway):
    """
    Gateway double that creates orders locally.
    Signature checks are the real HMAC ones, computed with the test secret.
    """

    def __init__(self, fail_with: Optional[str] = None):
        super().__init__(key_id="rzp_test_key", key_secret="rzp_test_secret")
        self.fail_with = fail_with
        self.orders: List[Dict[str, Any]] = []

    async def create_order(self, amount_subunits, currency, receipt, notes=None):
        # Suspend like a network round trip
        await asyncio.sleep(0)
        if self.fail_with:
            raise ExternalServiceError("Razorpay", self.fail_with)
        order = {
            "id": f"order_{uuid.uuid4().hex[:14]}",
            "amount": amount_subunits,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
            "status": "created",
        }
        self.orders.append(order)
        return order

    def sign(self, order_id: str, payment_id: str) -> str:
        return self.expected_signature(order_id, payment_id)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(base_dir=tmp_path / "uploads", public_url="/media")


# Repository fixtures
@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


@pytest.fixture
def image_repository(db_session: AsyncSession) -> ImageRepository:
    return ImageRepository(db_session)


@pytest.fixture
def booking_repository(db_session: AsyncSession) -> BookingRepository:
    return BookingRepository(db_session)


@pytest.fixture
def payment_repository(db_session: AsyncSession) -> PaymentRepository:
    return PaymentRepository(db_session)


# Service fixtures
@pytest.fixture
def auth_service(db_session: AsyncSession) -> AuthService:
    return AuthService(db_session)


@pytest.fixture
def property_service(db_session: AsyncSession, storage: LocalObjectStorage) -> PropertyService:
    return PropertyService(db_session, storage=storage)


@pytest.fixture
def image_service(db_session: AsyncSession, storage: LocalObjectStorage) -> ImageService:
    return ImageService(db_session, storage=storage)


@pytest.fixture
def booking_service(db_session: AsyncSession) -> BookingService:
    return BookingService(db_session, reject_overlapping=False)


@pytest.fixture
def payment_service(db_session: AsyncSession, gateway: FakeGateway) -> PaymentService:
    return PaymentService(db_session, gateway=gateway, locks=BookingLocks(), operation_timeout=5)


@pytest.fixture
def dashboard_service(db_session: AsyncSession) -> DashboardService:
    return DashboardService(db_session)


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    async def create_user(
        user_repo: UserRepository,
        email: Optional[str] = None,
        password: str = TEST_PASSWORD,
        first_name: str = "Test",
        last_name: str = "User",
        role: UserRole = UserRole.USER,
        is_active: bool = True
    ) -> User:
        return await user_repo.create_user({
            "email": email or f"user{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
            "role": role,
            "is_active": is_active,
        })


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def create_property_data(
        owner_id: uuid.UUID,
        title: str = "Sea View Apartment",
        description: str = "Two bedrooms near the beach",
        property_type: str = "apartment",
        price: Decimal = Decimal("1500.00"),
        location: str = "Goa",
        status: str = "available"
    ) -> dict:
        return {
            "title": title,
            "description": description,
            "property_type": property_type,
            "price": price,
            "location": location,
            "status": status,
            "owner_id": owner_id,
        }

    @staticmethod
    async def create_property(property_repo: PropertyRepository, owner_id: uuid.UUID, **overrides) -> Property:
        data = PropertyFactory.create_property_data(owner_id, **overrides)
        return await property_repo.create_property(data)


class BookingFactory:
    """Factory for creating bookings directly in the store."""

    @staticmethod
    async def create_booking(
        booking_repo: BookingRepository,
        property_obj: Property,
        guest: User,
        check_in: Optional[date] = None,
        nights: int = 3,
        status: BookingStatus = BookingStatus.PENDING
    ) -> Booking:
        check_in = check_in or date.today() + timedelta(days=10)
        booking = await booking_repo.create({
            "property_id": property_obj.id,
            "user_id": guest.id,
            "owner_id": property_obj.owner_id,
            "check_in": check_in,
            "check_out": check_in + timedelta(days=nights),
            "status": status,
        })
        return await booking_repo.reload(booking.id)


def make_image_bytes(fmt: str = "JPEG", size=(120, 90)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 120, 40)).save(buffer, format=fmt)
    return buffer.getvalue()


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


# Common test fixtures
@pytest.fixture
async def guest(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="guest@test.com", first_name="Gita", last_name="Guest"
    )


@pytest.fixture
async def other_guest(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="other@test.com", first_name="Omar", last_name="Other"
    )


@pytest.fixture
async def owner(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="owner@test.com", first_name="Olu", last_name="Owner", role=UserRole.OWNER
    )


@pytest.fixture
async def other_owner(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="owner2@test.com", first_name="Priya", last_name="Second", role=UserRole.OWNER
    )


@pytest.fixture
async def admin(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="admin@test.com", first_name="Ada", last_name="Admin", role=UserRole.ADMIN
    )


@pytest.fixture
async def inactive_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(user_repository, email="inactive@test.com", is_active=False)


@pytest.fixture
async def listed_property(property_repository: PropertyRepository, owner: User) -> Property:
    return await PropertyFactory.create_property(property_repository, owner.id)


@pytest.fixture
async def pending_booking(booking_repository: BookingRepository, listed_property: Property, guest: User) -> Booking:
    return await BookingFactory.create_booking(booking_repository, listed_property, guest)


@pytest.fixture
async def async_client(
    db_session: AsyncSession,
    gateway: FakeGateway,
    storage: LocalObjectStorage
) -> AsyncGenerator[AsyncClient, None]:
    """Async API client sharing the test session, gateway and storage."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_object_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
