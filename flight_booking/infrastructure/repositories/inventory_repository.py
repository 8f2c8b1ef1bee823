# flight_booking/infrastructure/repositories/inventory_repository.py

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from flight_booking.infrastructure.db.models import Flight
from flight_booking.domain.exceptions import InsufficientInventoryError, NotFoundError

logger = logging.getLogger(__name__)


class FlightInventoryRepository:
    """
    Seat ledger over flights.available_seats.

    Every mutation is a single conditional UPDATE, so the seat check and
    the write happen in one statement and concurrent callers are
    serialized by the row lock the UPDATE takes.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, flight_id: str) -> Flight | None:
        stmt = select(Flight).where(Flight.id == flight_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def reserve(self, flight_id: str, seat_count: int) -> None:
        if seat_count < 1:
            raise ValueError("seat_count must be positive")

        stmt = (
            update(Flight)
            .where(Flight.id == flight_id)
            .where(Flight.available_seats >= seat_count)
            .values(available_seats=Flight.available_seats - seat_count)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)

        if result.rowcount == 0:
            if not self._exists(flight_id):
                raise NotFoundError("Flight not found")
            raise InsufficientInventoryError("Not enough seats available")

        self._expire_cached(flight_id)

    def release(self, flight_id: str, seat_count: int) -> None:
        if seat_count < 1:
            raise ValueError("seat_count must be positive")

        stmt = (
            update(Flight)
            .where(Flight.id == flight_id)
            .where(Flight.available_seats + seat_count <= Flight.total_seats)
            .values(available_seats=Flight.available_seats + seat_count)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)

        if result.rowcount == 0:
            self._release_clamped(flight_id, seat_count)

        self._expire_cached(flight_id)

    def _release_clamped(self, flight_id: str, seat_count: int) -> None:
        # Returning more seats than were taken means a booking was credited twice.
        logger.error(
            "Seat release would exceed capacity, clamping to total_seats. flight_id=%s seat_count=%s",
            flight_id,
            seat_count,
        )
        stmt = (
            update(Flight)
            .where(Flight.id == flight_id)
            .values(available_seats=Flight.total_seats)
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount == 0:
            raise NotFoundError("Flight not found")

    def _exists(self, flight_id: str) -> bool:
        stmt = select(Flight.id).where(Flight.id == flight_id)
        return self.db.execute(stmt).first() is not None

    def _expire_cached(self, flight_id: str) -> None:
        key = self.db.identity_key(Flight, flight_id)
        flight = self.db.identity_map.get(key)
        if flight is not None:
            self.db.expire(flight, ["available_seats"])
