from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from flight_booking.api.routes.dependencies import get_db, http_error, require_admin
from flight_booking.api.routes.presenters import (
    airline_response,
    airport_response,
    flight_response,
    page_meta_response,
)
from flight_booking.api.schemas.schemas import (
    AirlineResponse,
    AirportResponse,
    FlightResponse,
    FlightSearchResponse,
    FlightStatusResponse,
    FlightStatusUpdateRequest,
    PopularRouteResponse,
    SeatAvailabilityResponse,
)
from flight_booking.application.flight_service import FlightService
from flight_booking.application.query_service import FlightQueryService
from flight_booking.domain.exceptions import FlightBookingError

router = APIRouter(prefix="/flights", tags=["flights"])


@router.get("/search", response_model=FlightSearchResponse)
def search_flights(
    origin: str = Query(min_length=3, max_length=3),
    destination: str = Query(min_length=3, max_length=3),
    departure_date: date = Query(),
    passengers: int = Query(default=1, ge=1, le=9),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    result = FlightQueryService(db).search_flights(
        origin=origin,
        destination=destination,
        departure_date=departure_date,
        passengers=passengers,
        page=page,
        limit=limit,
    )
    return FlightSearchResponse(
        flights=[flight_response(flight) for flight in result.flights],
        meta=page_meta_response(result.meta),
    )


@router.get("/airports", response_model=list[AirportResponse])
def list_airports(db: Session = Depends(get_db)):
    return [airport_response(airport) for airport in FlightQueryService(db).list_airports()]


@router.get("/airlines", response_model=list[AirlineResponse])
def list_airlines(db: Session = Depends(get_db)):
    return [airline_response(airline) for airline in FlightQueryService(db).list_airlines()]


@router.get("/popular-routes", response_model=list[PopularRouteResponse])
def popular_routes(
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    return [
        PopularRouteResponse(
            origin_code=route.origin_code,
            origin_city=route.origin_city,
            destination_code=route.destination_code,
            destination_city=route.destination_city,
            booking_count=route.booking_count,
            min_price=route.min_price,
        )
        for route in FlightQueryService(db).popular_routes(limit=limit)
    ]


@router.get("/{flight_id}", response_model=FlightResponse)
def get_flight(flight_id: str, db: Session = Depends(get_db)):
    try:
        flight = FlightQueryService(db).get_flight(flight_id)
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return flight_response(flight)


@router.get("/{flight_id}/availability", response_model=SeatAvailabilityResponse)
def check_seat_availability(
    flight_id: str,
    seats: int = Query(default=1, ge=1, le=9),
    db: Session = Depends(get_db),
):
    try:
        result = FlightQueryService(db).check_seat_availability(flight_id, seats)
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return SeatAvailabilityResponse(
        flight_id=result.flight_id,
        requested_seats=result.requested_seats,
        available_seats=result.available_seats,
        available=result.available,
    )


@router.put(
    "/{flight_id}/status",
    response_model=FlightStatusResponse,
    dependencies=[Depends(require_admin)],
)
def update_flight_status(
    flight_id: str,
    request: FlightStatusUpdateRequest,
    db: Session = Depends(get_db),
):
    try:
        flight = FlightService(db).update_status(flight_id, request.status)
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return FlightStatusResponse(
        flight_id=flight.id,
        flight_number=flight.flight_number,
        status=flight.status,
        message="Flight status updated successfully",
    )
