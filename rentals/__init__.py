"""
Rental Bookings API.
Property listings, bookings and payment confirmation for a rental marketplace.
"""

__version__ = "1.0.0"
