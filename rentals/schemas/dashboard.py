"""
Dashboard summary schema.
"""

from pydantic import BaseModel, Field
from typing import List
from rentals.models.user import UserRole
from rentals.schemas.booking import BookingResponse


class DashboardResponse(BaseModel):
    role: UserRole
    total_properties: int = Field(..., description="Properties owned by the requester")
    available_properties: int = Field(0, description="Owned properties currently open for booking")
    total_bookings: int = Field(..., description="Bookings visible to the requester")
    upcoming_count: int
    upcoming_bookings: List[BookingResponse] = Field(
        default_factory=list,
        description="Next bookings by check-in date, at most three"
    )
