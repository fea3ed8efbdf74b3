"""
Payment service: start a checkout, confirm or fail it, and reconcile bookings.

Confirmation rules:

* the gateway signature is checked server-side before anything is written;
* the payment row and the booking status change are committed together,
  so no reader ever sees a successful payment on a pending booking (or the
  reverse) because of this service;
* a gateway payment id is recorded once; repeating a confirmation returns
  the first result;
* checkouts and confirmations for one booking run one at a time within a
  process and are bounded by ``operation_timeout_seconds``;
* a verified payment that cannot be recorded raises ReconciliationError.
"""

import asyncio
import logging
import uuid
import weakref
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.config import get_settings
from rentals.models.booking import Booking, BookingStatus
from rentals.models.payment import Payment, PaymentStatus
from rentals.models.user import User
from rentals.repositories.booking import BookingRepository
from rentals.repositories.payment import PaymentRepository
from rentals.schemas.payment import PaymentConfirmRequest, PaymentFailureRequest
from rentals.services.gateway import RazorpayGateway
from rentals.services.policy import Action, AuthorizationPolicy, policy as default_policy
from rentals.utils.exceptions import (
    BookingStateError,
    ConflictError,
    NotFoundError,
    PaymentVerificationError,
    PersistenceError,
    ReconciliationError,
    ValidationError,
    persistence_error
)

logger = logging.getLogger(__name__)


def to_subunits(price: Optional[Decimal], subunit: int) -> int:
    """
    Convert a price in major units to the integer amount the gateway expects.

    >>> to_subunits(Decimal("1500"), 100)
    150000

    Raises:
        ValidationError: If the price is missing or not positive
    """
    if price is None:
        raise ValidationError("Property price is missing")
    amount = Decimal(str(price))
    if amount <= 0:
        raise ValidationError("Property price is invalid")
    return int((amount * subunit).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class BookingLocks:
    """
    One asyncio.Lock per booking id.

    Locks are held weakly and disappear once no coroutine is using them.
    This serialises work inside one process only; the conditional status
    update and the unique gateway payment id cover concurrent processes.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def for_booking(self, booking_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(booking_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[booking_id] = lock
        return lock


booking_locks = BookingLocks()


@dataclass
class ConfirmationResult:
    booking: Booking
    payment: Payment
    already_confirmed: bool = False


@dataclass
class ReconciliationResult:
    booking_id: uuid.UUID
    booking_status: BookingStatus
    payment_status: Optional[PaymentStatus]
    changed: bool


class PaymentService:
    """
    Payment flows for bookings.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        gateway: Optional[RazorpayGateway] = None,
        policy: Optional[AuthorizationPolicy] = None,
        locks: Optional[BookingLocks] = None,
        operation_timeout: Optional[float] = None
    ):
        settings = get_settings()
        self.db = db_session
        self.gateway = gateway or RazorpayGateway()
        self.policy = policy or default_policy
        self.locks = locks or booking_locks
        self.booking_repo = BookingRepository(db_session)
        self.payment_repo = PaymentRepository(db_session)
        self.currency = settings.payment_currency
        self.subunit = settings.currency_subunit
        self.payment_method = settings.payment_method
        self.operation_timeout = (
            settings.operation_timeout_seconds if operation_timeout is None else operation_timeout
        )

    async def initiate_payment(self, booking_id: uuid.UUID, current_user: User) -> Dict[str, Any]:
        """
        Create a gateway order for a pending booking and return the checkout payload.

        A pending payment row is reused when one exists. Recording the row is
        best effort: if it fails the checkout still proceeds with
        ``payment_id`` set to None and the row is created at confirmation.
        Checkouts for one booking run one at a time, so repeated clicks
        share a single pending row.

        Raises:
            NotFoundError: If the booking doesn't exist or isn't visible
            BookingStateError: If the booking is not pending
            ValidationError: If the property price is missing or invalid
            ExternalServiceError: If the gateway order cannot be created
            PersistenceError: If the operation times out
        """
        self.policy.require(current_user, Action.PAYMENT_INITIATE)
        return await self._bounded(
            booking_id, lambda: self._initiate_locked(booking_id, current_user), "start checkout"
        )

    async def confirm_payment(
        self,
        booking_id: uuid.UUID,
        payload: PaymentConfirmRequest,
        current_user: User
    ) -> ConfirmationResult:
        """
        Record a successful checkout and confirm the booking in one commit.

        Raises:
            ValidationError: If callback fields are missing
            NotFoundError: If the booking doesn't exist or isn't visible
            PaymentVerificationError: If the signature does not match
            BookingStateError: If the booking is cancelled
            PersistenceError: If the operation times out
            ReconciliationError: If the verified payment cannot be recorded
        """
        missing = [
            {"field": name, "message": "Field required"}
            for name in ("razorpay_payment_id", "razorpay_order_id", "razorpay_signature")
            if not getattr(payload, name)
        ]
        if missing:
            raise ValidationError("Incomplete payment callback", field_errors=missing)

        return await self._bounded(
            booking_id, lambda: self._confirm_locked(booking_id, payload, current_user), "confirm payment"
        )

    async def record_failure(
        self,
        booking_id: uuid.UUID,
        payload: PaymentFailureRequest,
        current_user: User
    ) -> Payment:
        """
        Record a checkout the gateway reported as failed. The booking stays pending.

        Raises:
            NotFoundError: If the booking doesn't exist or isn't visible
            ConflictError: If the gateway payment id belongs to another booking
            PersistenceError: If the store rejects the write
        """
        return await self._bounded(
            booking_id, lambda: self._fail_locked(booking_id, payload, current_user), "record payment failure"
        )

    async def reconcile_booking(self, booking_id: uuid.UUID, current_user: User) -> ReconciliationResult:
        """
        Confirm a pending booking that already has a successful payment.

        Safe to run repeatedly; returns ``changed=False`` when there is nothing to repair.

        Raises:
            InsufficientPermissionsError: If the requester is not an admin
            NotFoundError: If the booking doesn't exist
        """
        self.policy.require(current_user, Action.PAYMENT_RECONCILE)
        return await self._bounded(booking_id, lambda: self._reconcile_locked(booking_id), "reconcile booking")

    async def list_payments(self, booking_id: uuid.UUID, current_user: User) -> List[Payment]:
        await self._visible_booking(booking_id, current_user)
        try:
            return await self.payment_repo.list_for_booking(booking_id)
        except SQLAlchemyError as e:
            raise persistence_error(e, "list payments")

    async def _bounded(self, booking_id: uuid.UUID, operation: Callable[[], Awaitable[Any]], action: str):
        """Run ``operation()`` under the booking's lock within the operation timeout."""

        async def locked():
            async with self.locks.for_booking(booking_id):
                return await operation()

        try:
            return await asyncio.wait_for(locked(), timeout=self.operation_timeout)
        except asyncio.TimeoutError:
            await self.db.rollback()
            logger.error(f"Timed out after {self.operation_timeout}s trying to {action} for booking {booking_id}")
            raise PersistenceError(f"Timed out trying to {action}")

    async def _initiate_locked(self, booking_id: uuid.UUID, current_user: User) -> Dict[str, Any]:
        booking = await self._visible_booking(booking_id, current_user)

        if booking.status != BookingStatus.PENDING:
            raise BookingStateError(
                booking.status.value,
                BookingStatus.CONFIRMED.value,
                detail=f"Only pending bookings can be paid; this booking is '{booking.status.value}'"
            )

        price = booking.property_rel.price if booking.property_rel else None
        amount_subunits = to_subunits(price, self.subunit)
        notes = {"booking_id": str(booking.id)}

        order = await self.gateway.create_order(
            amount_subunits,
            self.currency,
            receipt=f"booking_{booking.id.hex}",
            notes=notes
        )

        payment_id = await self._record_pending(booking, Decimal(str(price)), amount_subunits, order["id"])

        checkout = self.gateway.checkout_options(
            order,
            description=f"Payment for booking #{booking.id}",
            notes=notes,
            prefill={"name": current_user.full_name, "email": current_user.email}
        )
        checkout["booking_id"] = str(booking.id)
        checkout["payment_id"] = str(payment_id) if payment_id else None

        logger.info(
            f"Checkout started for booking {booking.id}: order {order['id']}, "
            f"{amount_subunits} {self.currency}, payment row {payment_id}"
        )
        return checkout

    async def _confirm_locked(
        self,
        booking_id: uuid.UUID,
        payload: PaymentConfirmRequest,
        current_user: User
    ) -> ConfirmationResult:
        transaction_id = payload.razorpay_payment_id
        await self._visible_booking(booking_id, current_user)

        if not self.gateway.verify_signature(
            payload.razorpay_order_id, transaction_id, payload.razorpay_signature
        ):
            logger.warning(
                f"Rejected payment callback for booking {booking_id}: bad signature (payment {transaction_id})"
            )
            raise PaymentVerificationError()

        try:
            booking = await self.booking_repo.reload(booking_id)
            if booking is None:
                raise NotFoundError("Booking", str(booking_id))

            replay = await self._already_recorded(booking, transaction_id)
            if replay is not None:
                return replay

            if booking.status == BookingStatus.CANCELLED:
                logger.warning(
                    f"Verified payment {transaction_id} arrived for cancelled booking {booking_id}"
                )
                raise BookingStateError(booking.status.value, BookingStatus.CONFIRMED.value)

            payment = await self._target_payment(booking, payload)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not read state to confirm booking {booking_id} (payment {transaction_id}): {e}")
            raise ReconciliationError(str(booking_id), transaction_id)

        success_values = {
            "payment_status": PaymentStatus.SUCCESS,
            "razorpay_payment_id": transaction_id,
            "razorpay_order_id": payload.razorpay_order_id,
            "razorpay_signature": payload.razorpay_signature,
        }

        try:
            if payment is not None:
                payment = await self.payment_repo.update(payment.id, success_values, commit=False)
            else:
                price = booking.property_rel.price
                payment = await self.payment_repo.create({
                    "booking_id": booking_id,
                    "amount": price,
                    "amount_subunits": to_subunits(price, self.subunit),
                    "currency": self.currency,
                    "payment_method": self.payment_method,
                    **success_values,
                }, commit=False)

            changed = 0
            if booking.status == BookingStatus.PENDING:
                changed = await self.booking_repo.transition_status(
                    booking_id, BookingStatus.CONFIRMED, commit=False
                )
                if not changed:
                    # Another writer moved the booking between our read and this update
                    await self.db.rollback()
                    return await self._after_race(booking_id, transaction_id)

            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            replay = await self._replay_after_conflict(booking_id, transaction_id)
            if replay is not None:
                return replay
            logger.error(f"Payment {transaction_id} for booking {booking_id} conflicts with stored data: {e}")
            raise ReconciliationError(str(booking_id), transaction_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Payment {transaction_id} verified but not recorded for booking {booking_id}: {e}"
            )
            raise ReconciliationError(str(booking_id), transaction_id)

        booking = await self.booking_repo.reload(booking_id)
        logger.info(f"Booking {booking_id} confirmed by payment {transaction_id}")
        return ConfirmationResult(booking=booking, payment=payment)

    async def _already_recorded(self, booking: Booking, transaction_id: str) -> Optional[ConfirmationResult]:
        """Result of an earlier confirmation, if this callback repeats one."""
        existing = await self.payment_repo.get_by_gateway_payment_id(transaction_id)
        if existing is not None and existing.booking_id != booking.id:
            raise ConflictError(f"Payment {transaction_id} is already recorded for another booking")

        if booking.status != BookingStatus.CONFIRMED:
            return None

        if existing is not None and existing.payment_status == PaymentStatus.SUCCESS:
            logger.info(f"Payment {transaction_id} already confirmed booking {booking.id}")
            return ConfirmationResult(booking=booking, payment=existing, already_confirmed=True)

        successful = await self.payment_repo.get_successful(booking.id)
        if successful is not None:
            logger.warning(
                f"Booking {booking.id} was already confirmed by payment {successful.razorpay_payment_id}; "
                f"ignoring payment {transaction_id}"
            )
            return ConfirmationResult(booking=booking, payment=successful, already_confirmed=True)
        return None

    async def _target_payment(self, booking: Booking, payload: PaymentConfirmRequest) -> Optional[Payment]:
        """Row to mark successful: same gateway id, the row from initiation, or the latest pending one."""
        existing = await self.payment_repo.get_by_gateway_payment_id(payload.razorpay_payment_id)
        if existing is not None:
            return existing

        if payload.payment_id:
            row = await self.payment_repo.get_by_id(payload.payment_id)
            if row is not None and row.booking_id == booking.id and row.payment_status == PaymentStatus.PENDING:
                return row

        return await self.payment_repo.get_latest_pending(booking.id)

    async def _after_race(self, booking_id: uuid.UUID, transaction_id: str) -> ConfirmationResult:
        booking = await self.booking_repo.reload(booking_id)
        replay = await self._already_recorded(booking, transaction_id)
        if replay is not None:
            return replay
        raise BookingStateError(booking.status.value, BookingStatus.CONFIRMED.value)

    async def _replay_after_conflict(self, booking_id: uuid.UUID, transaction_id: str) -> Optional[ConfirmationResult]:
        try:
            booking = await self.booking_repo.reload(booking_id)
            return await self._already_recorded(booking, transaction_id)
        except SQLAlchemyError:
            return None

    async def _fail_locked(
        self,
        booking_id: uuid.UUID,
        payload: PaymentFailureRequest,
        current_user: User
    ) -> Payment:
        booking = await self._visible_booking(booking_id, current_user)
        reason = payload.reason or "Payment was not completed"
        try:
            payment = None
            if payload.razorpay_payment_id:
                payment = await self.payment_repo.get_by_gateway_payment_id(payload.razorpay_payment_id)
                if payment is not None and payment.booking_id != booking.id:
                    logger.warning(
                        f"Failure report for booking {booking.id} names payment "
                        f"{payload.razorpay_payment_id} of booking {payment.booking_id}"
                    )
                    raise ConflictError(
                        f"Payment {payload.razorpay_payment_id} is already recorded for another booking"
                    )
            if payment is None and payload.payment_id:
                row = await self.payment_repo.get_by_id(payload.payment_id)
                if row is not None and row.booking_id == booking.id:
                    payment = row
            if payment is None:
                payment = await self.payment_repo.get_latest_pending(booking.id)

            if payment is not None and payment.payment_status == PaymentStatus.SUCCESS:
                logger.warning(
                    f"Ignoring failure report for booking {booking.id}: payment {payment.id} already succeeded"
                )
                return payment

            failure_values = {
                "payment_status": PaymentStatus.FAILED,
                "failure_reason": reason,
                "razorpay_payment_id": payload.razorpay_payment_id,
                "razorpay_order_id": payload.razorpay_order_id,
            }
            if payment is not None:
                payment = await self.payment_repo.update(payment.id, failure_values)
            else:
                price = booking.property_rel.price
                payment = await self.payment_repo.create({
                    "booking_id": booking.id,
                    "amount": price,
                    "amount_subunits": to_subunits(price, self.subunit),
                    "currency": self.currency,
                    "payment_method": self.payment_method,
                    **failure_values,
                })
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise persistence_error(e, "record payment failure")

        logger.warning(f"Payment failed for booking {booking.id}: {reason}")
        return payment

    async def _reconcile_locked(self, booking_id: uuid.UUID) -> ReconciliationResult:
        try:
            booking = await self.booking_repo.reload(booking_id)
            if booking is None:
                raise NotFoundError("Booking", str(booking_id))

            successful = await self.payment_repo.get_successful(booking_id)
            if successful is None:
                latest = await self.payment_repo.list_for_booking(booking_id)
                return ReconciliationResult(
                    booking_id=booking_id,
                    booking_status=booking.status,
                    payment_status=latest[0].payment_status if latest else None,
                    changed=False
                )

            if booking.status != BookingStatus.PENDING:
                if booking.status == BookingStatus.CANCELLED:
                    logger.warning(
                        f"Booking {booking_id} is cancelled but payment {successful.razorpay_payment_id} succeeded"
                    )
                return ReconciliationResult(booking_id, booking.status, successful.payment_status, False)

            changed = await self.booking_repo.transition_status(booking_id, BookingStatus.CONFIRMED)
            booking = await self.booking_repo.reload(booking_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise persistence_error(e, "reconcile booking")

        if changed:
            logger.info(f"Reconciled booking {booking_id}: confirmed from payment {successful.razorpay_payment_id}")
        return ReconciliationResult(booking_id, booking.status, successful.payment_status, bool(changed))

    async def _visible_booking(self, booking_id: uuid.UUID, current_user: User) -> Booking:
        scope = self.policy.booking_access_scope(current_user)
        try:
            booking = await self.booking_repo.get_scoped(booking_id, scope)
        except SQLAlchemyError as e:
            raise persistence_error(e, "load booking")
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def _record_pending(
        self,
        booking: Booking,
        amount: Decimal,
        amount_subunits: int,
        order_id: str
    ) -> Optional[uuid.UUID]:
        values = {
            "amount": amount,
            "amount_subunits": amount_subunits,
            "currency": self.currency,
            "razorpay_order_id": order_id,
        }
        try:
            pending = await self.payment_repo.get_latest_pending(booking.id)
            if pending is not None:
                await self.payment_repo.update(pending.id, values)
                return pending.id

            created = await self.payment_repo.create({
                "booking_id": booking.id,
                "payment_status": PaymentStatus.PENDING,
                "payment_method": self.payment_method,
                **values,
            })
            return created.id
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Could not record pending payment for booking {booking.id}; continuing: {e}")
            return None
