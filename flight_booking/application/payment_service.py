import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from flight_booking.domain.codes import generate_pix_code
from flight_booking.domain.exceptions import (
    AmountMismatchError,
    InvalidStateError,
    InvalidStateTransitionError,
    NotFoundError,
)
from flight_booking.domain.state_machine import BookingStatus, PaymentMethod, PaymentStatus
from flight_booking.infrastructure.db.models import Payment
from flight_booking.infrastructure.db.session import unit_of_work
from flight_booking.infrastructure.pix.brcode import PixMerchant, build_payload, merchant_from_env
from flight_booking.infrastructure.repositories.booking_repository import BookingRepository
from flight_booking.infrastructure.repositories.payment_repository import PaymentRepository

logger = logging.getLogger(__name__)

PIX_EXPIRATION = timedelta(minutes=30)
APPROVED_OUTCOME = "approved"

PAYMENT_METHODS = [
    {"id": PaymentMethod.PIX.value, "name": "PIX", "enabled": True},
    {"id": PaymentMethod.CREDIT_CARD.value, "name": "Credit card", "enabled": False},
    {"id": PaymentMethod.DEBIT_CARD.value, "name": "Debit card", "enabled": False},
    {"id": PaymentMethod.BANK_TRANSFER.value, "name": "Bank transfer", "enabled": False},
]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(payment: Payment, now: datetime | None = None) -> bool:
    if payment.status != PaymentStatus.PENDING or payment.pix_expires_at is None:
        return False
    return as_utc(payment.pix_expires_at) <= (now or _utc_now())


@dataclass(frozen=True)
class PixPaymentIntent:
    payment_id: str
    booking_id: str
    pix_code: str
    qr_code_payload: str
    amount: Decimal
    expires_at: datetime
    status: PaymentStatus


@dataclass(frozen=True)
class ReconciliationResult:
    payment_id: str
    payment_status: PaymentStatus
    booking_id: str
    booking_status: BookingStatus


class PaymentService:
    """
    Creates PIX charges and applies payment-network outcomes.
    Touches booking status only, never seat inventory.
    """

    def __init__(self, db: Session, merchant: PixMerchant | None = None):
        self.db = db
        self.merchant = merchant or merchant_from_env()
        self.booking_repository = BookingRepository(db)
        self.payment_repository = PaymentRepository(db)

    def create_pix_payment(
        self,
        booking_id: str,
        amount: Decimal,
        user_id: str,
    ) -> PixPaymentIntent:
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))

        with unit_of_work(self.db):
            booking = self.booking_repository.get_owned(booking_id, user_id, for_update=True)
            if not booking:
                raise NotFoundError("Booking not found or access denied")

            if booking.status != BookingStatus.PENDING:
                raise InvalidStateError("Booking is not available for payment")

            if amount != booking.total_price:
                raise AmountMismatchError("Payment amount does not match booking total")

            superseded = self.payment_repository.cancel_pending_for_booking(booking.id)

            now = _utc_now()
            pix_code = generate_pix_code()
            payment = self.payment_repository.create_pix_payment(
                booking_id=booking.id,
                amount=booking.total_price,
                pix_code=pix_code,
                created_at=now,
                expires_at=now + PIX_EXPIRATION,
            )

        logger.info(
            "PIX payment created. payment_id=%s booking_id=%s amount=%s superseded=%s",
            payment.id,
            booking.id,
            booking.total_price,
            superseded,
        )
        return PixPaymentIntent(
            payment_id=payment.id,
            booking_id=booking.id,
            pix_code=pix_code,
            qr_code_payload=build_payload(self.merchant, booking.total_price, pix_code),
            amount=booking.total_price,
            expires_at=now + PIX_EXPIRATION,
            status=PaymentStatus.PENDING,
        )

    def reconcile(
        self,
        pix_code: str,
        outcome: str,
        transaction_id: str,
    ) -> ReconciliationResult:
        approved = outcome.strip().lower() == APPROVED_OUTCOME

        with unit_of_work(self.db):
            payment = self.payment_repository.get_by_pix_code(pix_code)
            if not payment:
                raise NotFoundError("Payment not found")

            if payment.status != PaymentStatus.PENDING:
                raise InvalidStateError(f"Payment is already {payment.status.value}")

            # Booking row first, then its payments: the same lock order as
            # cancellation and payment creation.
            booking = self.booking_repository.get_by_id(payment.booking_id, for_update=True)

            if approved:
                new_status = PaymentStatus.COMPLETED
                values = {"transaction_id": transaction_id, "paid_at": _utc_now()}
            else:
                new_status = PaymentStatus.FAILED
                values = {"transaction_id": transaction_id}

            if not self.payment_repository.transition_if_pending(payment, new_status, **values):
                raise InvalidStateError("Payment was already reconciled")

            if approved and not self.booking_repository.transition(
                booking,
                (BookingStatus.PENDING,),
                BookingStatus.CONFIRMED,
            ):
                raise InvalidStateTransitionError(
                    from_state=booking.status.value,
                    to_state=BookingStatus.CONFIRMED.value,
                )

            result = ReconciliationResult(
                payment_id=payment.id,
                payment_status=payment.status,
                booking_id=booking.id,
                booking_status=booking.status,
            )

        logger.info(
            "PIX payment reconciled. payment_id=%s outcome=%s transaction_id=%s booking_status=%s",
            result.payment_id,
            outcome,
            transaction_id,
            result.booking_status.value,
        )
        return result

    def simulate_pix_payment(self, pix_code: str, approve: bool = True) -> ReconciliationResult:
        outcome = APPROVED_OUTCOME if approve else "rejected"
        transaction_id = f"SIM-{secrets.token_hex(6).upper()}"
        return self.reconcile(pix_code, outcome, transaction_id)

    def get_payment_by_booking(self, booking_id: str, user_id: str) -> Payment:
        booking = self.booking_repository.get_owned(booking_id, user_id)
        if not booking:
            raise NotFoundError("Payment not found")

        payment = self.payment_repository.latest_for_booking(booking.id)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def check_payment_status(self, payment_id: str, user_id: str) -> Payment:
        payment = self.payment_repository.get_owned(payment_id, user_id)
        if not payment:
            raise NotFoundError("Payment not found or access denied")
        return payment

    def payment_methods(self) -> list[dict]:
        return [dict(method) for method in PAYMENT_METHODS]

    def expire_stale_payments(self, now: datetime | None = None) -> int:
        """
        Marks pending PIX charges past their expiry as failed.
        Bookings stay pending so the customer can pay again or cancel.
        """
        now = now or _utc_now()
        expired = 0

        with unit_of_work(self.db):
            for payment in self.payment_repository.list_expired_pending(now):
                if self.payment_repository.transition_if_pending(payment, PaymentStatus.FAILED):
                    expired += 1

        if expired:
            logger.info("Expired stale PIX payments. count=%s", expired)
        return expired
