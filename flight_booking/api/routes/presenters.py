from flight_booking.api.schemas.schemas import (
    AirlineResponse,
    AirportResponse,
    BookingResponse,
    FlightResponse,
    PageMetaResponse,
    PassengerResponse,
    PaymentResponse,
)
from flight_booking.application.payment_service import is_expired
from flight_booking.domain.pagination import PageMeta
from flight_booking.infrastructure.db.models import Airline, Airport, Booking, Flight, Payment


def airport_response(airport: Airport) -> AirportResponse:
    return AirportResponse(
        id=airport.id,
        name=airport.name,
        code=airport.code,
        city=airport.city,
        country=airport.country,
        timezone=airport.timezone,
    )


def airline_response(airline: Airline) -> AirlineResponse:
    return AirlineResponse(
        id=airline.id,
        name=airline.name,
        code=airline.code,
        logo_url=airline.logo_url,
    )


def flight_response(flight: Flight) -> FlightResponse:
    duration = flight.arrival_time - flight.departure_time
    return FlightResponse(
        id=flight.id,
        flight_number=flight.flight_number,
        departure_time=flight.departure_time,
        arrival_time=flight.arrival_time,
        duration_minutes=round(duration.total_seconds() / 60),
        aircraft_type=flight.aircraft_type,
        price=flight.price,
        total_seats=flight.total_seats,
        available_seats=flight.available_seats,
        status=flight.status,
        airline=airline_response(flight.airline),
        origin=airport_response(flight.origin_airport),
        destination=airport_response(flight.destination_airport),
    )


def payment_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        booking_id=payment.booking_id,
        amount=payment.amount,
        method=payment.method,
        status=payment.status,
        pix_code=payment.pix_code,
        pix_expires_at=payment.pix_expires_at,
        paid_at=payment.paid_at,
        transaction_id=payment.transaction_id,
        created_at=payment.created_at,
        expired=is_expired(payment),
    )


def booking_response(
    booking: Booking,
    payment: Payment | None = None,
    include_passengers: bool = True,
) -> BookingResponse:
    passengers = []
    if include_passengers:
        passengers = [
            PassengerResponse(
                full_name=passenger.full_name,
                document=passenger.document,
                birth_date=passenger.birth_date,
                nationality=passenger.nationality,
                seat_number=passenger.seat_number,
            )
            for passenger in booking.passengers
        ]

    return BookingResponse(
        id=booking.id,
        booking_reference=booking.booking_reference,
        status=booking.status,
        total_price=booking.total_price,
        passengers_count=booking.passengers_count,
        booking_date=booking.booking_date,
        flight=flight_response(booking.flight),
        passengers=passengers,
        payment=payment_response(payment) if payment else None,
    )


def page_meta_response(meta: PageMeta) -> PageMetaResponse:
    return PageMetaResponse(
        total=meta.total,
        page=meta.page,
        limit=meta.limit,
        total_pages=meta.total_pages,
        has_next=meta.has_next,
        has_prev=meta.has_prev,
    )
