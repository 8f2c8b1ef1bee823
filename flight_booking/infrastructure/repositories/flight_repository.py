# flight_booking/infrastructure/repositories/flight_repository.py

from sqlalchemy import select
from sqlalchemy.orm import Session

from flight_booking.infrastructure.db.models import Flight
from flight_booking.domain.state_machine import FlightStatus


class FlightRepository:
    """Flight schedule data. Seat counters belong to FlightInventoryRepository."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        flight_id: str,
        for_update: bool = False,
    ) -> Flight | None:

        stmt = select(Flight).where(Flight.id == flight_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def update_status(
        self,
        flight: Flight,
        new_status: FlightStatus,
    ) -> None:

        flight.status = new_status
        self.db.flush()
