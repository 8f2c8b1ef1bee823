# flight_booking/infrastructure/repositories/payment_repository.py

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from flight_booking.infrastructure.db.models import Booking, Payment
from flight_booking.domain.state_machine import PaymentMethod, PaymentStatus


class PaymentRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_pix_code(self, pix_code: str) -> Payment | None:
        stmt = select(Payment).where(Payment.pix_code == pix_code)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_owned(self, payment_id: str, user_id: str) -> Payment | None:
        stmt = (
            select(Payment)
            .join(Booking, Payment.booking_id == Booking.id)
            .where(Payment.id == payment_id)
            .where(Booking.user_id == user_id)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def latest_for_booking(self, booking_id: str) -> Payment | None:
        stmt = (
            select(Payment)
            .where(Payment.booking_id == booking_id)
            .order_by(Payment.created_at.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalars().first()

    def list_expired_pending(self, now: datetime) -> list[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.status == PaymentStatus.PENDING)
            .where(Payment.pix_expires_at.is_not(None))
            .where(Payment.pix_expires_at < now)
            .order_by(Payment.pix_expires_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def create_pix_payment(
        self,
        booking_id: str,
        amount: Decimal,
        pix_code: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> Payment:
        payment = Payment(
            booking_id=booking_id,
            amount=amount,
            method=PaymentMethod.PIX,
            status=PaymentStatus.PENDING,
            pix_code=pix_code,
            pix_expires_at=expires_at,
            created_at=created_at,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def cancel_pending_for_booking(self, booking_id: str) -> int:
        stmt = (
            update(Payment)
            .where(Payment.booking_id == booking_id)
            .where(Payment.status == PaymentStatus.PENDING)
            .values(status=PaymentStatus.CANCELLED)
            .execution_options(synchronize_session="evaluate")
        )
        return self.db.execute(stmt).rowcount

    def transition_if_pending(
        self,
        payment: Payment,
        new_status: PaymentStatus,
        **values,
    ) -> bool:
        """
        One-shot transition out of pending. A replayed notification
        matches zero rows and leaves the payment untouched.
        """
        stmt = (
            update(Payment)
            .where(Payment.id == payment.id)
            .where(Payment.status == PaymentStatus.PENDING)
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        updated = self.db.execute(stmt).rowcount == 1
        self.db.expire(payment)
        return updated
