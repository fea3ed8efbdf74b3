"""
Payment endpoints for a booking: start checkout, report the outcome, reconcile.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, status

from rentals.models.user import User
from rentals.schemas.error import error_responses
from rentals.schemas.payment import (
    CheckoutResponse,
    PaymentConfirmRequest,
    PaymentConfirmResponse,
    PaymentFailureRequest,
    PaymentListResponse,
    PaymentResponse,
    ReconciliationResponse
)
from rentals.services.payment import PaymentService
from rentals.utils.dependencies import get_current_active_user, get_payment_service

router = APIRouter(prefix="/bookings/{booking_id}/payments", tags=["Payments"])


@router.post(
    "",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start checkout",
    description="Create a gateway order for a pending booking and return the checkout widget options.",
    responses=error_responses(401, 404, 409, 422, 502)
)
async def initiate_payment(
    booking_id: UUID = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> CheckoutResponse:
    """
    Start paying for a booking.

    The amount is the property price in the currency's smallest unit.

    Raises:
        NotFoundError: If the booking doesn't exist or isn't visible
        BookingStateError: If the booking is not pending
        ValidationError: If the property price is invalid
        ExternalServiceError: If the gateway order cannot be created
    """
    checkout = await payment_service.initiate_payment(booking_id, current_user)
    return CheckoutResponse.model_validate(checkout)


@router.post(
    "/confirm",
    response_model=PaymentConfirmResponse,
    summary="Confirm payment",
    description=(
        "Verify the checkout signature, record the payment and confirm the booking. "
        "Repeating a confirmation returns the first result."
    ),
    responses=error_responses(400, 401, 404, 409, 422, 500)
)
async def confirm_payment(
    payload: PaymentConfirmRequest,
    booking_id: UUID = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentConfirmResponse:
    """
    Record a successful checkout.

    Raises:
        ValidationError: If callback fields are missing
        PaymentVerificationError: If the signature does not match
        BookingStateError: If the booking was cancelled
        ReconciliationError: If the verified payment could not be recorded
    """
    result = await payment_service.confirm_payment(booking_id, payload, current_user)
    return PaymentConfirmResponse(
        booking_id=str(result.booking.id),
        booking_status=result.booking.status,
        payment=PaymentResponse.model_validate(result.payment.to_dict()),
        already_confirmed=result.already_confirmed
    )


@router.post(
    "/failure",
    response_model=PaymentResponse,
    summary="Report failed payment",
    description="Record a checkout the gateway reported as failed. The booking stays pending.",
    responses=error_responses(401, 404, 500)
)
async def report_payment_failure(
    payload: PaymentFailureRequest,
    booking_id: UUID = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentResponse:
    payment = await payment_service.record_failure(booking_id, payload, current_user)
    return PaymentResponse.model_validate(payment.to_dict())


@router.get(
    "",
    response_model=PaymentListResponse,
    summary="List payments",
    description="Payment attempts for a visible booking, newest first.",
    responses=error_responses(401, 404)
)
async def list_payments(
    booking_id: UUID = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentListResponse:
    payments = await payment_service.list_payments(booking_id, current_user)
    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(payment.to_dict()) for payment in payments],
        total=len(payments)
    )


@router.post(
    "/reconcile",
    response_model=ReconciliationResponse,
    summary="Reconcile booking",
    description="Confirm a pending booking that already has a successful payment. Admin only.",
    responses=error_responses(401, 403, 404, 500)
)
async def reconcile_booking(
    booking_id: UUID = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> ReconciliationResponse:
    result = await payment_service.reconcile_booking(booking_id, current_user)
    return ReconciliationResponse(
        booking_id=str(result.booking_id),
        booking_status=result.booking_status,
        payment_status=result.payment_status,
        changed=result.changed
    )
