import logging
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flight_booking.domain.codes import assign_seat_labels, generate_booking_reference
from flight_booking.domain.exceptions import (
    AlreadyCancelledError,
    InsufficientInventoryError,
    InvalidStateError,
    InvalidStateTransitionError,
    NotFoundError,
)
from flight_booking.domain.state_machine import BookingStateMachine, BookingStatus
from flight_booking.infrastructure.db.models import Booking, Flight, Passenger
from flight_booking.infrastructure.db.session import unit_of_work
from flight_booking.infrastructure.repositories.booking_repository import BookingRepository
from flight_booking.infrastructure.repositories.inventory_repository import FlightInventoryRepository
from flight_booking.infrastructure.repositories.payment_repository import PaymentRepository

logger = logging.getLogger(__name__)

REFERENCE_MAX_ATTEMPTS = 5
DEFAULT_NATIONALITY = "Brasileira"


@dataclass(frozen=True)
class PassengerDetails:
    full_name: str
    document: str
    birth_date: date
    nationality: str | None = None


class BookingService:
    """Application service coordinating booking workflow and seat inventory."""

    def __init__(self, db: Session):
        self.db = db
        self.booking_repository = BookingRepository(db)
        self.inventory_repository = FlightInventoryRepository(db)
        self.payment_repository = PaymentRepository(db)

    def create_booking(
        self,
        user_id: str,
        flight_id: str,
        passengers: Sequence[PassengerDetails],
    ) -> Booking:
        if not passengers:
            raise ValueError("At least one passenger is required")

        passengers_count = len(passengers)

        with unit_of_work(self.db):
            flight = self.inventory_repository.get_by_id(flight_id)
            if not flight:
                raise NotFoundError("Flight not found")

            # The reserve UPDATE holds the flight row lock until commit,
            # so seat labels below are read under the same lock.
            self.inventory_repository.reserve(flight_id, passengers_count)

            taken = self.booking_repository.taken_seat_labels(flight_id)
            try:
                seat_labels = assign_seat_labels(flight.total_seats, taken, passengers_count)
            except ValueError as exc:
                raise InsufficientInventoryError(str(exc)) from exc

            booking = self._insert_booking(user_id, flight, passengers, seat_labels)

        logger.info(
            "Booking created. booking_id=%s reference=%s user_id=%s flight_id=%s passengers=%s",
            booking.id,
            booking.booking_reference,
            user_id,
            flight_id,
            passengers_count,
        )
        return booking

    def cancel_booking(self, booking_id: str, user_id: str) -> Booking:
        with unit_of_work(self.db):
            booking = self.booking_repository.get_owned(booking_id, user_id, for_update=True)
            if not booking:
                raise NotFoundError("Booking not found")

            if booking.status == BookingStatus.CANCELLED:
                raise AlreadyCancelledError("Booking is already cancelled")

            BookingStateMachine.validate_transition(booking.status, BookingStatus.CANCELLED)

            cancellable = BookingStatus.PENDING, BookingStatus.CONFIRMED
            if not self.booking_repository.transition(booking, cancellable, BookingStatus.CANCELLED):
                if booking.status == BookingStatus.CANCELLED:
                    raise AlreadyCancelledError("Booking is already cancelled")
                raise InvalidStateTransitionError(
                    from_state=booking.status.value,
                    to_state=BookingStatus.CANCELLED.value,
                )

            self.inventory_repository.release(booking.flight_id, booking.passengers_count)
            voided = self.payment_repository.cancel_pending_for_booking(booking.id)

        logger.info(
            "Booking cancelled. booking_id=%s user_id=%s seats_released=%s pending_payments_voided=%s",
            booking.id,
            user_id,
            booking.passengers_count,
            voided,
        )
        return booking

    def update_status(
        self,
        booking_id: str,
        new_status: BookingStatus,
        user_id: str | None = None,
    ) -> Booking:
        """
        Administrative transition. Inventory is never touched here, so the
        transitions that must move seats or follow a payment are refused.
        """
        if new_status == BookingStatus.CANCELLED:
            raise InvalidStateError("Use booking cancellation to cancel a booking")
        if new_status == BookingStatus.CONFIRMED:
            raise InvalidStateError("Bookings are confirmed by payment reconciliation only")

        with unit_of_work(self.db):
            if user_id is None:
                booking = self.booking_repository.get_by_id(booking_id, for_update=True)
            else:
                booking = self.booking_repository.get_owned(booking_id, user_id, for_update=True)
            if not booking:
                raise NotFoundError("Booking not found or access denied")

            current = booking.status
            BookingStateMachine.validate_transition(current, new_status)
            if not self.booking_repository.transition(booking, (current,), new_status):
                raise InvalidStateTransitionError(
                    from_state=booking.status.value,
                    to_state=new_status.value,
                )

        logger.info("Booking status updated. booking_id=%s status=%s", booking.id, new_status.value)
        return booking

    def _insert_booking(
        self,
        user_id: str,
        flight: Flight,
        passengers: Sequence[PassengerDetails],
        seat_labels: Sequence[str],
    ) -> Booking:
        total_price = flight.price * len(passengers)

        attempt = 1
        while True:
            reference = generate_booking_reference()
            try:
                return self.booking_repository.create_booking(
                    user_id=user_id,
                    flight_id=flight.id,
                    booking_reference=reference,
                    passengers=self._passenger_rows(passengers, seat_labels),
                    total_price=total_price,
                )
            except IntegrityError:
                if attempt == REFERENCE_MAX_ATTEMPTS:
                    raise
                logger.warning(
                    "Booking reference collision, retrying. reference=%s attempt=%s/%s",
                    reference,
                    attempt,
                    REFERENCE_MAX_ATTEMPTS,
                )
                attempt += 1

    @staticmethod
    def _passenger_rows(
        passengers: Sequence[PassengerDetails],
        seat_labels: Sequence[str],
    ) -> list[Passenger]:
        return [
            Passenger(
                full_name=passenger.full_name,
                document=passenger.document,
                birth_date=passenger.birth_date,
                nationality=passenger.nationality or DEFAULT_NATIONALITY,
                seat_number=seat_label,
            )
            for passenger, seat_label in zip(passengers, seat_labels)
        ]
