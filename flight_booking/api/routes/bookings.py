from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from flight_booking.api.routes.dependencies import get_current_user_id, get_db, http_error
from flight_booking.api.routes.presenters import booking_response, page_meta_response
from flight_booking.api.schemas.schemas import (
    BookingListResponse,
    BookingRequest,
    BookingResponse,
    BookingStatusResponse,
    BookingStatusUpdateRequest,
)
from flight_booking.application.booking_service import BookingService, PassengerDetails
from flight_booking.application.query_service import BookingQueryService
from flight_booking.domain.exceptions import FlightBookingError

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    passengers = [
        PassengerDetails(
            full_name=passenger.full_name,
            document=passenger.document,
            birth_date=passenger.birth_date,
            nationality=passenger.nationality,
        )
        for passenger in request.passengers
    ]

    try:
        booking = BookingService(db).create_booking(
            user_id=user_id,
            flight_id=request.flight_id,
            passengers=passengers,
        )
        details = BookingQueryService(db).get_booking(booking.id, user_id)
    except FlightBookingError as exc:
        raise http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    return booking_response(details.booking, details.payment)


@router.get("", response_model=BookingListResponse)
def list_bookings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    result = BookingQueryService(db).list_user_bookings(user_id, page=page, limit=limit)
    return BookingListResponse(
        bookings=[
            booking_response(booking, include_passengers=False)
            for booking in result.bookings
        ],
        meta=page_meta_response(result.meta),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        details = BookingQueryService(db).get_booking(booking_id, user_id)
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return booking_response(details.booking, details.payment)


@router.put("/{booking_id}/status", response_model=BookingStatusResponse)
def update_booking_status(
    booking_id: str,
    request: BookingStatusUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        booking = BookingService(db).update_status(
            booking_id=booking_id,
            new_status=request.status,
            user_id=user_id,
        )
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return BookingStatusResponse(
        booking_id=booking.id,
        booking_reference=booking.booking_reference,
        status=booking.status,
        message="Booking status updated successfully",
    )


@router.delete("/{booking_id}", response_model=BookingStatusResponse)
def cancel_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        booking = BookingService(db).cancel_booking(booking_id=booking_id, user_id=user_id)
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return BookingStatusResponse(
        booking_id=booking.id,
        booking_reference=booking.booking_reference,
        status=booking.status,
        message="Booking cancelled successfully",
    )
