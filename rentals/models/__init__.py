"""
Database models for the Rental Bookings API.
Includes User, Property, PropertyImage, Booking and Payment models.
"""

from rentals.models.user import User, UserRole
from rentals.models.property import Property, STATUS_AVAILABLE
from rentals.models.image import PropertyImage
from rentals.models.booking import Booking, BookingStatus
from rentals.models.payment import Payment, PaymentStatus

__all__ = [
    "User",
    "UserRole",
    "Property",
    "STATUS_AVAILABLE",
    "PropertyImage",
    "Booking",
    "BookingStatus",
    "Payment",
    "PaymentStatus",
]
