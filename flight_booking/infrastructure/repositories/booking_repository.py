# flight_booking/infrastructure/repositories/booking_repository.py

from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, select, update

from flight_booking.infrastructure.db.models import Booking, Passenger
from flight_booking.domain.state_machine import BookingStatus


class BookingRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        booking_id: str,
        for_update: bool = False,
    ) -> Booking | None:

        stmt = select(Booking).where(Booking.id == booking_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_owned(
        self,
        booking_id: str,
        user_id: str,
        for_update: bool = False,
    ) -> Booking | None:

        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .where(Booking.user_id == user_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_with_details(
        self,
        booking_id: str,
        user_id: str | None = None,
    ) -> Booking | None:
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .options(selectinload(Booking.passengers), selectinload(Booking.flight))
            .execution_options(populate_existing=True)
        )
        if user_id is not None:
            stmt = stmt.where(Booking.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_user(
        self,
        user_id: str,
        offset: int,
        limit: int,
    ) -> list[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .options(selectinload(Booking.flight))
            .order_by(Booking.booking_date.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def count_for_user(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(Booking).where(Booking.user_id == user_id)
        return self.db.execute(stmt).scalar_one()

    def taken_seat_labels(self, flight_id: str) -> set[str]:
        stmt = (
            select(Passenger.seat_number)
            .join(Booking, Passenger.booking_id == Booking.id)
            .where(Booking.flight_id == flight_id)
            .where(Booking.status != BookingStatus.CANCELLED)
            .where(Passenger.seat_number.is_not(None))
        )
        return set(self.db.execute(stmt).scalars().all())

    def create_booking(
        self,
        user_id: str,
        flight_id: str,
        booking_reference: str,
        passengers: Iterable[Passenger],
        total_price: Decimal,
    ) -> Booking:
        """
        Inserts inside a SAVEPOINT so a reference collision only
        discards this insert, not the caller's seat reservation.
        """
        passenger_rows = list(passengers)
        booking = Booking(
            user_id=user_id,
            flight_id=flight_id,
            booking_reference=booking_reference,
            passengers_count=len(passenger_rows),
            total_price=total_price,
            status=BookingStatus.PENDING,
            passengers=passenger_rows,
        )

        with self.db.begin_nested():
            self.db.add(booking)
            self.db.flush()

        return booking

    def transition(
        self,
        booking: Booking,
        allowed_from: Iterable[BookingStatus],
        new_status: BookingStatus,
    ) -> bool:
        """
        Compare-and-set on status. Returns False when another request
        moved the booking first.
        """
        stmt = (
            update(Booking)
            .where(Booking.id == booking.id)
            .where(Booking.status.in_(list(allowed_from)))
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        updated = self.db.execute(stmt).rowcount == 1
        self.db.expire(booking, ["status", "updated_at"])
        return updated
