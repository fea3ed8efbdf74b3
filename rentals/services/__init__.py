"""
Business logic services.
"""

from rentals.services.policy import Action, AuthorizationPolicy, policy
from rentals.services.auth import AuthService
from rentals.services.property import PropertyService
from rentals.services.image import ImageService
from rentals.services.booking import BookingService
from rentals.services.gateway import RazorpayGateway
from rentals.services.payment import PaymentService, to_subunits
from rentals.services.dashboard import DashboardService
from rentals.services.error_handler import ErrorHandlerService

__all__ = [
    "Action",
    "AuthorizationPolicy",
    "policy",
    "AuthService",
    "PropertyService",
    "ImageService",
    "BookingService",
    "RazorpayGateway",
    "PaymentService",
    "to_subunits",
    "DashboardService",
    "ErrorHandlerService",
]
