from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, aliased, selectinload

from flight_booking.domain.exceptions import NotFoundError
from flight_booking.domain.pagination import PageMeta, page_meta, page_offset
from flight_booking.domain.state_machine import BookingStatus, FlightStatus
from flight_booking.infrastructure.db.models import Airline, Airport, Booking, Flight, Payment
from flight_booking.infrastructure.repositories.booking_repository import BookingRepository
from flight_booking.infrastructure.repositories.payment_repository import PaymentRepository


@dataclass(frozen=True)
class BookingDetails:
    booking: Booking
    payment: Payment | None


@dataclass(frozen=True)
class BookingPage:
    bookings: list[Booking]
    meta: PageMeta


@dataclass(frozen=True)
class FlightPage:
    flights: list[Flight]
    meta: PageMeta


@dataclass(frozen=True)
class PopularRoute:
    origin_code: str
    origin_city: str
    destination_code: str
    destination_city: str
    booking_count: int
    min_price: Decimal


@dataclass(frozen=True)
class SeatAvailability:
    flight_id: str
    requested_seats: int
    available_seats: int
    available: bool


@dataclass(frozen=True)
class UserStatistics:
    confirmed_bookings: int
    completed_trips: int
    cancelled_bookings: int
    total_spent: Decimal
    cities_visited: int


PAID_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
CENTS = Decimal("0.01")


def _flight_options():
    return (
        selectinload(Flight.airline),
        selectinload(Flight.origin_airport),
        selectinload(Flight.destination_airport),
    )


class BookingQueryService:
    """Read-only assembly of booking views."""

    def __init__(self, db: Session):
        self.db = db
        self.booking_repository = BookingRepository(db)
        self.payment_repository = PaymentRepository(db)

    def get_booking(self, booking_id: str, user_id: str | None = None) -> BookingDetails:
        booking = self.booking_repository.get_with_details(booking_id, user_id)
        if not booking:
            raise NotFoundError("Booking not found")

        return BookingDetails(
            booking=booking,
            payment=self.payment_repository.latest_for_booking(booking.id),
        )

    def list_user_bookings(self, user_id: str, page: int = 1, limit: int = 10) -> BookingPage:
        offset = page_offset(page, limit)
        bookings = self.booking_repository.list_for_user(user_id, offset, limit)
        total = self.booking_repository.count_for_user(user_id)
        return BookingPage(bookings=bookings, meta=page_meta(total, page, limit))

    def user_statistics(self, user_id: str) -> UserStatistics:
        """
        Trip counters for one user. Spending and visited cities only count
        confirmed and completed bookings.
        """
        paid = Booking.status.in_(PAID_STATUSES)

        def count_status(status: BookingStatus):
            return func.count(case((Booking.status == status, 1)))

        stmt = (
            select(
                count_status(BookingStatus.CONFIRMED),
                count_status(BookingStatus.COMPLETED),
                count_status(BookingStatus.CANCELLED),
                func.coalesce(func.sum(case((paid, Booking.total_price), else_=0)), 0),
                func.count(func.distinct(case((paid, Flight.destination_airport_id)))),
            )
            .select_from(Booking)
            .join(Flight, Booking.flight_id == Flight.id)
            .where(Booking.user_id == user_id)
        )
        confirmed, completed, cancelled, spent, cities = self.db.execute(stmt).one()

        return UserStatistics(
            confirmed_bookings=confirmed,
            completed_trips=completed,
            cancelled_bookings=cancelled,
            total_spent=Decimal(str(spent)).quantize(CENTS),
            cities_visited=cities,
        )


class FlightQueryService:

    def __init__(self, db: Session):
        self.db = db

    def get_flight(self, flight_id: str) -> Flight:
        stmt = select(Flight).where(Flight.id == flight_id).options(*_flight_options())
        flight = self.db.execute(stmt).scalar_one_or_none()
        if not flight:
            raise NotFoundError("Flight not found")
        return flight

    def search_flights(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        passengers: int = 1,
        page: int = 1,
        limit: int = 10,
    ) -> FlightPage:
        origin_airport = aliased(Airport)
        destination_airport = aliased(Airport)
        day_start = datetime.combine(departure_date, time.min, tzinfo=timezone.utc)
        day_end = day_start + timedelta(days=1)

        criteria = (
            origin_airport.code == origin.upper(),
            destination_airport.code == destination.upper(),
            Flight.departure_time >= day_start,
            Flight.departure_time < day_end,
            Flight.available_seats >= passengers,
            Flight.status == FlightStatus.SCHEDULED,
        )

        stmt = (
            select(Flight)
            .join(origin_airport, Flight.origin_airport_id == origin_airport.id)
            .join(destination_airport, Flight.destination_airport_id == destination_airport.id)
            .where(*criteria)
            .options(*_flight_options())
            .order_by(Flight.departure_time)
            .offset(page_offset(page, limit))
            .limit(limit)
        )
        count_stmt = (
            select(func.count())
            .select_from(Flight)
            .join(origin_airport, Flight.origin_airport_id == origin_airport.id)
            .join(destination_airport, Flight.destination_airport_id == destination_airport.id)
            .where(*criteria)
        )

        flights = list(self.db.execute(stmt).scalars().all())
        total = self.db.execute(count_stmt).scalar_one()
        return FlightPage(flights=flights, meta=page_meta(total, page, limit))

    def check_seat_availability(self, flight_id: str, seats: int = 1) -> SeatAvailability:
        if seats < 1:
            raise ValueError("seats must be positive")

        stmt = select(Flight.available_seats).where(Flight.id == flight_id)
        available_seats = self.db.execute(stmt).scalar_one_or_none()
        if available_seats is None:
            raise NotFoundError("Flight not found")

        return SeatAvailability(
            flight_id=flight_id,
            requested_seats=seats,
            available_seats=available_seats,
            available=available_seats >= seats,
        )

    def popular_routes(self, limit: int = 10) -> list[PopularRoute]:
        """Routes ranked by confirmed and completed bookings."""
        origin_airport = aliased(Airport)
        destination_airport = aliased(Airport)
        booking_count = func.count(Booking.id)

        stmt = (
            select(
                origin_airport.code,
                origin_airport.city,
                destination_airport.code,
                destination_airport.city,
                booking_count,
                func.min(Flight.price),
            )
            .select_from(Booking)
            .join(Flight, Booking.flight_id == Flight.id)
            .join(origin_airport, Flight.origin_airport_id == origin_airport.id)
            .join(destination_airport, Flight.destination_airport_id == destination_airport.id)
            .where(Booking.status.in_(PAID_STATUSES))
            .group_by(
                origin_airport.code,
                origin_airport.city,
                destination_airport.code,
                destination_airport.city,
            )
            .order_by(booking_count.desc(), origin_airport.code, destination_airport.code)
            .limit(limit)
        )

        return [
            PopularRoute(
                origin_code=origin_code,
                origin_city=origin_city,
                destination_code=destination_code,
                destination_city=destination_city,
                booking_count=count,
                min_price=Decimal(str(min_price)).quantize(CENTS),
            )
            for origin_code, origin_city, destination_code, destination_city, count, min_price
            in self.db.execute(stmt).all()
        ]

    def list_airports(self) -> list[Airport]:
        stmt = select(Airport).order_by(Airport.city)
        return list(self.db.execute(stmt).scalars().all())

    def list_airlines(self) -> list[Airline]:
        stmt = select(Airline).order_by(Airline.name)
        return list(self.db.execute(stmt).scalars().all())
