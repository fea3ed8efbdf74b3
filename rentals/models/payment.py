"""
Payment model for booking payment attempts.
Records the amount charged and the identifiers returned by the payment gateway.
"""

from sqlalchemy import String, Integer, Numeric, Enum as SQLEnum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from rentals.database import Base
from decimal import Decimal
import enum
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from rentals.models.booking import Booking


class PaymentStatus(str, enum.Enum):
    """Payment attempt status."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Payment(Base):
    """
    Payment attempt for a booking.
    A gateway payment id is recorded at most once across all rows.
    """

    __tablename__ = "payments"

    booking_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Amount in major currency units"
    )

    amount_subunits: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Amount in the smallest currency unit sent to the gateway"
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")

    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True
    )

    payment_method: Mapped[str] = mapped_column(String(50), nullable=False, default="razorpay")

    razorpay_payment_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        unique=True,
        comment="Gateway payment id; unique so a callback cannot be recorded twice"
    )

    razorpay_order_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    razorpay_signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    failure_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    booking: Mapped["Booking"] = relationship(
        "Booking",
        back_populates="payments",
        lazy="noload"
    )

    __table_args__ = (
        Index("idx_payments_booking_status", "booking_id", "payment_status"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, booking_id={self.booking_id}, status={self.payment_status})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "booking_id": str(self.booking_id),
            "amount": self.amount,
            "amount_subunits": self.amount_subunits,
            "currency": self.currency,
            "payment_status": self.payment_status.value,
            "payment_method": self.payment_method,
            "razorpay_payment_id": self.razorpay_payment_id,
            "razorpay_order_id": self.razorpay_order_id,
            "failure_reason": self.failure_reason,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
