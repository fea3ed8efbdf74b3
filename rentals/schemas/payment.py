"""
Pydantic schemas for payment initiation, confirmation and reconciliation.
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Any, Dict, Optional, List
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from rentals.models.booking import BookingStatus
from rentals.models.payment import PaymentStatus


class CheckoutResponse(BaseModel):
    """
    Everything the client-side checkout widget needs to collect a payment.
    """

    booking_id: str
    payment_id: Optional[str] = Field(
        None,
        description="Local pending payment row, or null when it could not be recorded"
    )
    key: str = Field(..., description="Gateway publishable key id")
    order_id: str = Field(..., description="Gateway order id")
    amount: int = Field(..., description="Amount in the currency's smallest unit", examples=[150000])
    currency: str = Field(..., examples=["INR"])
    name: str
    description: str
    notes: Dict[str, Any] = Field(default_factory=dict)
    prefill: Dict[str, str] = Field(default_factory=dict)


class PaymentConfirmRequest(BaseModel):
    """Success callback returned by the checkout widget."""

    razorpay_payment_id: Optional[str] = Field(None, max_length=100)
    razorpay_order_id: Optional[str] = Field(None, max_length=100)
    razorpay_signature: Optional[str] = Field(None, max_length=255)
    payment_id: Optional[UUID] = Field(None, description="Local payment row returned at initiation")


class PaymentFailureRequest(BaseModel):
    """Failure callback returned by the checkout widget."""

    razorpay_order_id: Optional[str] = Field(None, max_length=100)
    razorpay_payment_id: Optional[str] = Field(None, max_length=100)
    reason: Optional[str] = Field(None, max_length=500, description="Gateway error description")
    payment_id: Optional[UUID] = None


class PaymentResponse(BaseModel):
    id: str
    booking_id: str
    amount: Decimal
    amount_subunits: int
    currency: str
    payment_status: PaymentStatus
    payment_method: str
    razorpay_payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer('amount')
    def serialize_amount(self, v: Decimal):
        return float(v)


class PaymentConfirmResponse(BaseModel):
    """Outcome of a confirmation; ``already_confirmed`` marks an idempotent replay."""

    booking_id: str
    booking_status: BookingStatus
    payment: PaymentResponse
    already_confirmed: bool = False


class ReconciliationResponse(BaseModel):
    booking_id: str
    booking_status: BookingStatus
    payment_status: Optional[PaymentStatus] = None
    changed: bool


class PaymentListResponse(BaseModel):
    payments: List[PaymentResponse]
    total: int
