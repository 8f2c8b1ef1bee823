from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from flight_booking.domain.state_machine import (
    BookingStatus,
    FlightStatus,
    PaymentMethod,
    PaymentStatus,
)


class PassengerRequest(BaseModel):
    full_name: str = Field(min_length=2)
    document: str = Field(min_length=11, max_length=11)
    birth_date: date
    nationality: str | None = Field(default=None, min_length=2)


class BookingRequest(BaseModel):
    flight_id: str
    passengers: list[PassengerRequest] = Field(min_length=1)


class BookingStatusUpdateRequest(BaseModel):
    status: BookingStatus


class PixPaymentRequest(BaseModel):
    booking_id: str
    amount: Decimal = Field(gt=0)
    method: PaymentMethod = PaymentMethod.PIX


class PixWebhookRequest(BaseModel):
    pix_code: str
    outcome: str
    transaction_id: str


class PixSimulateRequest(BaseModel):
    pix_code: str
    approve: bool = True


class PageMetaResponse(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class AirportResponse(BaseModel):
    id: str
    name: str
    code: str
    city: str
    country: str
    timezone: str


class AirlineResponse(BaseModel):
    id: str
    name: str
    code: str
    logo_url: str | None = None


class FlightResponse(BaseModel):
    id: str
    flight_number: str
    departure_time: datetime
    arrival_time: datetime
    duration_minutes: int
    aircraft_type: str | None = None
    price: Decimal
    total_seats: int
    available_seats: int
    status: FlightStatus
    airline: AirlineResponse
    origin: AirportResponse
    destination: AirportResponse


class FlightSearchResponse(BaseModel):
    flights: list[FlightResponse]
    meta: PageMetaResponse


class PassengerResponse(BaseModel):
    full_name: str
    document: str
    birth_date: date
    nationality: str | None = None
    seat_number: str | None = None


class PaymentResponse(BaseModel):
    id: str
    booking_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    pix_code: str | None = None
    pix_expires_at: datetime | None = None
    paid_at: datetime | None = None
    transaction_id: str | None = None
    created_at: datetime
    expired: bool = False


class BookingResponse(BaseModel):
    id: str
    booking_reference: str
    status: BookingStatus
    total_price: Decimal
    passengers_count: int
    booking_date: datetime
    flight: FlightResponse
    passengers: list[PassengerResponse] = []
    payment: PaymentResponse | None = None


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    meta: PageMetaResponse


class BookingStatusResponse(BaseModel):
    booking_id: str
    booking_reference: str
    status: BookingStatus
    message: str | None = None


class PixPaymentResponse(BaseModel):
    payment_id: str
    booking_id: str
    pix_code: str
    qr_code_payload: str
    amount: Decimal
    expires_at: datetime
    status: PaymentStatus


class ReconciliationResponse(BaseModel):
    payment_id: str
    payment_status: PaymentStatus
    booking_id: str
    booking_status: BookingStatus


class PaymentMethodResponse(BaseModel):
    id: str
    name: str
    enabled: bool


class FlightStatusUpdateRequest(BaseModel):
    status: FlightStatus


class FlightStatusResponse(BaseModel):
    flight_id: str
    flight_number: str
    status: FlightStatus
    message: str | None = None


class SeatAvailabilityResponse(BaseModel):
    flight_id: str
    requested_seats: int
    available_seats: int
    available: bool


class PopularRouteResponse(BaseModel):
    origin_code: str
    origin_city: str
    destination_code: str
    destination_city: str
    booking_count: int
    min_price: Decimal


class UserStatisticsResponse(BaseModel):
    confirmed_bookings: int
    completed_trips: int
    cancelled_bookings: int
    total_spent: Decimal
    cities_visited: int
