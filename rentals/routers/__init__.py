"""
API route handlers for the Rental Bookings API.
"""

from .auth import router as auth_router
from .users import router as users_router
from .properties import router as properties_router
from .images import router as images_router
from .bookings import router as bookings_router
from .payments import router as payments_router
from .dashboard import router as dashboard_router

__all__ = [
    "auth_router",
    "users_router",
    "properties_router",
    "images_router",
    "bookings_router",
    "payments_router",
    "dashboard_router",
]
