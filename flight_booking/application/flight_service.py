import logging

from sqlalchemy.orm import Session

from flight_booking.domain.exceptions import NotFoundError
from flight_booking.domain.state_machine import FlightStatus
from flight_booking.infrastructure.db.models import Flight
from flight_booking.infrastructure.db.session import unit_of_work
from flight_booking.infrastructure.repositories.flight_repository import FlightRepository

logger = logging.getLogger(__name__)


class FlightService:
    """
    Operational flight updates. A status change does not touch seats or
    bookings; a non-scheduled flight simply drops out of search.
    """

    def __init__(self, db: Session):
        self.db = db
        self.flight_repository = FlightRepository(db)

    def update_status(self, flight_id: str, new_status: FlightStatus) -> Flight:
        with unit_of_work(self.db):
            flight = self.flight_repository.get_by_id(flight_id, for_update=True)
            if not flight:
                raise NotFoundError("Flight not found")

            previous = flight.status
            self.flight_repository.update_status(flight, new_status)

        logger.info(
            "Flight status updated. flight_id=%s from=%s to=%s",
            flight.id,
            previous.value,
            new_status.value,
        )
        return flight
