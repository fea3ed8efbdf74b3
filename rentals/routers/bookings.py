"""
Booking endpoints: request a stay, list visible bookings, cancel.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from rentals.models.booking import BookingStatus
from rentals.models.user import User
from rentals.schemas.booking import BookingCreate, BookingListResponse, BookingResponse
from rentals.schemas.error import error_responses, get_common_error_responses
from rentals.services.booking import BookingService
from rentals.utils.dependencies import get_booking_service, get_current_active_user

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _page(bookings, total: int, page: int, page_size: int) -> BookingListResponse:
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(booking.to_dict()) for booking in bookings],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a booking",
    description="Create a pending booking for an available property. Payment confirms it.",
    responses=error_responses(401, 403, 404, 409, 422)
)
async def create_booking(
    booking_data: BookingCreate,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> BookingResponse:
    """
    Create a booking in ``pending`` status.

    Raises:
        ValidationError: If dates are missing or check-out is not after check-in,
            or the property is not available
        NotFoundError: If the property doesn't exist
        ConflictError: If overlap rejection is enabled and the dates are taken
    """
    booking = await booking_service.create_booking(
        booking_data.property_id,
        booking_data.check_in,
        booking_data.check_out,
        current_user
    )
    return BookingResponse.model_validate(booking.to_dict())


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List bookings",
    description=(
        "Admins see all bookings, owners the bookings on their properties, "
        "guests their own bookings. Newest first."
    ),
    responses=get_common_error_responses()
)
async def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> BookingListResponse:
    bookings, total = await booking_service.list_bookings(
        current_user, status=booking_status, skip=(page - 1) * page_size, limit=page_size
    )
    return _page(bookings, total, page, page_size)


@router.get(
    "/owner",
    response_model=BookingListResponse,
    summary="Bookings on my properties",
    description="Bookings made on properties the current user owns. Owners and admins.",
    responses=get_common_error_responses()
)
async def list_owner_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> BookingListResponse:
    bookings, total = await booking_service.list_bookings_for_owned_properties(
        current_user, status=booking_status, skip=(page - 1) * page_size, limit=page_size
    )
    return _page(bookings, total, page, page_size)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get booking",
    responses=error_responses(401, 404)
)
async def get_booking(
    booking_id: UUID = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> BookingResponse:
    """Bookings outside the requester's scope are reported as not found."""
    booking = await booking_service.get_booking(booking_id, current_user)
    return BookingResponse.model_validate(booking.to_dict())


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel booking",
    description="Cancel a pending or confirmed booking. No refund is started.",
    responses=error_responses(401, 403, 404, 409)
)
async def cancel_booking(
    booking_id: UUID = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> BookingResponse:
    """
    Cancel a booking as its guest, the property owner or an admin.

    Raises:
        NotFoundError: If the booking doesn't exist
        InsufficientPermissionsError: If the requester may not cancel it
        BookingStateError: If the booking changed to a status that cannot be cancelled
    """
    booking = await booking_service.cancel_booking(booking_id, current_user)
    return BookingResponse.model_validate(booking.to_dict())
