"""
Repository layer for data access operations.
"""

from rentals.repositories.base import BaseRepository
from rentals.repositories.user import UserRepository
from rentals.repositories.property import PropertyRepository, PropertyFilters
from rentals.repositories.image import ImageRepository
from rentals.repositories.booking import BookingRepository, BookingScope
from rentals.repositories.payment import PaymentRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PropertyRepository",
    "PropertyFilters",
    "ImageRepository",
    "BookingRepository",
    "BookingScope",
    "PaymentRepository",
]
