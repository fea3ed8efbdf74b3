"""
Pydantic schemas for booking requests and responses.
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from rentals.models.booking import BookingStatus


class BookingCreate(BaseModel):
    """
    Booking request.

    Dates are optional at the schema level so that a missing date is
    reported by the booking rules with the same error as a reversed range.
    """

    property_id: UUID = Field(..., description="Property to book")
    check_in: Optional[date] = Field(None, description="First night of the stay", examples=["2026-12-20"])
    check_out: Optional[date] = Field(None, description="Departure day (exclusive)", examples=["2026-12-23"])


class BookingPropertySummary(BaseModel):
    id: str
    title: str
    location: str
    price: Decimal
    image_url: Optional[str] = None

    @field_serializer('price')
    def serialize_price(self, v: Decimal):
        return float(v)


class BookingGuest(BaseModel):
    id: str
    full_name: str
    email: str


class BookingResponse(BaseModel):
    """Booking with a summary of the booked property and the guest."""

    id: str
    property_id: str
    user_id: str
    owner_id: str
    check_in: date
    check_out: date
    nights: int
    status: BookingStatus
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    property: Optional[BookingPropertySummary] = None
    guest: Optional[BookingGuest] = None


class BookingListResponse(BaseModel):
    """Schema for paginated booking list response."""

    bookings: List[BookingResponse]
    total: int
    page: int
    page_size: int
