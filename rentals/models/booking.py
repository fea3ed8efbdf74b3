"""
Booking model and lifecycle rules.

A booking moves along pending -> confirmed and may be cancelled from either
of those states. Cancelled is terminal. The transition table lives on
BookingStatus so services and repositories share one definition.
"""

from sqlalchemy import Date, DateTime, Enum as SQLEnum, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from rentals.database import Base
from datetime import date, datetime
import enum
import uuid
from typing import FrozenSet, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from rentals.models.property import Property
    from rentals.models.user import User
    from rentals.models.payment import Payment


class BookingStatus(str, enum.Enum):
    """Booking lifecycle status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @property
    def allowed_transitions(self) -> FrozenSet["BookingStatus"]:
        return _TRANSITIONS[self]

    def can_transition_to(self, target: "BookingStatus") -> bool:
        return target in _TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]

    @classmethod
    def sources_for(cls, target: "BookingStatus") -> List["BookingStatus"]:
        """States from which ``target`` may be reached."""
        return [status for status in cls if target in _TRANSITIONS[status]]


_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


class Booking(Base):
    """
    Reservation of a property for a date range by a user.
    The owner reference is copied from the property when the booking is made.
    """

    __tablename__ = "bookings"

    property_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="User who requested the booking"
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Property owner at booking time"
    )

    check_in: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    check_out: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True
    )

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    cancelled_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        PostgresUUID(as_uuid=True),
        nullable=True
    )

    property_rel: Mapped["Property"] = relationship("Property", lazy="selectin")

    user: Mapped["User"] = relationship("User", foreign_keys=[user_id], lazy="selectin")

    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("check_in < check_out", name="ck_bookings_date_range"),
        Index("idx_bookings_property_dates", "property_id", "check_in", "check_out"),
        Index("idx_bookings_user_created", "user_id", "created_at"),
        Index("idx_bookings_owner_created", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, property_id={self.property_id}, status={self.status})>"

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def overlaps(self, check_in: date, check_out: date) -> bool:
        """Half-open range overlap: a stay may start on another's check-out day."""
        return self.check_in < check_out and check_in < self.check_out

    def to_dict(self) -> dict:
        result = {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "user_id": str(self.user_id),
            "owner_id": str(self.owner_id),
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "status": self.status.value,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if self.property_rel is not None:
            result["property"] = {
                "id": str(self.property_rel.id),
                "title": self.property_rel.title,
                "location": self.property_rel.location,
                "price": self.property_rel.price,
                "image_url": self.property_rel.primary_image_url,
            }
        if self.user is not None:
            result["guest"] = {
                "id": str(self.user.id),
                "full_name": self.user.full_name,
                "email": self.user.email,
            }
        return result
