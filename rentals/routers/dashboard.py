"""
Dashboard endpoint.
"""

from fastapi import APIRouter, Depends

from rentals.models.user import User
from rentals.schemas.booking import BookingResponse
from rentals.schemas.dashboard import DashboardResponse
from rentals.schemas.error import get_common_error_responses
from rentals.services.dashboard import DashboardService
from rentals.utils.dependencies import get_current_active_user, get_dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "",
    response_model=DashboardResponse,
    summary="Dashboard summary",
    description="Property and booking counts for the current user, with the next three bookings by check-in.",
    responses=get_common_error_responses()
)
async def get_dashboard(
    current_user: User = Depends(get_current_active_user),
    dashboard_service: DashboardService = Depends(get_dashboard_service)
) -> DashboardResponse:
    summary = await dashboard_service.get_summary(current_user)
    return DashboardResponse(
        role=summary["role"],
        total_properties=summary["total_properties"],
        available_properties=summary["available_properties"],
        total_bookings=summary["total_bookings"],
        upcoming_count=summary["upcoming_count"],
        upcoming_bookings=[
            BookingResponse.model_validate(booking.to_dict()) for booking in summary["upcoming_bookings"]
        ]
    )
