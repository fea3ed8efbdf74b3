"""
HTTP middleware for the Rental Bookings API.
"""

from .request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
