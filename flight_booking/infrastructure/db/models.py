# flight_booking/infrastructure/db/models.py

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    Date,
    DateTime,
    Enum,
    UniqueConstraint,
    CheckConstraint,
    ForeignKey,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from flight_booking.infrastructure.db.session import Base
from flight_booking.domain.state_machine import (
    BookingStatus,
    FlightStatus,
    PaymentMethod,
    PaymentStatus,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _pg_enum(enum_cls, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class Airline(Base):
    __tablename__ = "airlines"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    code: Mapped[str] = mapped_column(String(8), nullable=False, unique=True)
    logo_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class Airport(Base):
    __tablename__ = "airports"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    code: Mapped[str] = mapped_column(String(3), nullable=False, unique=True)
    city: Mapped[str] = mapped_column(String(128), nullable=False)
    country: Mapped[str] = mapped_column(String(64), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class Flight(Base):
    """
    Seat counters live here. Only the inventory ledger
    writes available_seats.
    """

    __tablename__ = "flights"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    flight_number: Mapped[str] = mapped_column(String(16), nullable=False)
    airline_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("airlines.id"),
        nullable=False,
    )
    origin_airport_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("airports.id"),
        nullable=False,
    )
    destination_airport_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("airports.id"),
        nullable=False,
    )
    departure_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    arrival_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    aircraft_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[FlightStatus] = mapped_column(
        _pg_enum(FlightStatus, "flight_status"),
        nullable=False,
        default=FlightStatus.SCHEDULED,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    airline: Mapped[Airline] = relationship()
    origin_airport: Mapped[Airport] = relationship(foreign_keys=[origin_airport_id])
    destination_airport: Mapped[Airport] = relationship(foreign_keys=[destination_airport_id])

    __table_args__ = (
        CheckConstraint("total_seats >= 0", name="ck_total_seats_nonnegative"),
        CheckConstraint("available_seats >= 0", name="ck_available_seats_nonnegative"),
        CheckConstraint("available_seats <= total_seats", name="ck_available_lte_total"),
        CheckConstraint("price >= 0", name="ck_flight_price_nonnegative"),
    )


class Booking(Base):
    """
    Booking table reflecting domain state.
    Domain controls transitions.
    DB stores current state safely.
    """

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    flight_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("flights.id"),
        nullable=False,
    )
    booking_reference: Mapped[str] = mapped_column(String(6), nullable=False)
    passengers_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        _pg_enum(BookingStatus, "booking_status"),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    booking_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    flight: Mapped[Flight] = relationship()
    passengers: Mapped[list["Passenger"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Passenger.full_name",
    )
    payments: Mapped[list["Payment"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint(
            "booking_reference",
            name="uq_booking_reference",
        ),
        CheckConstraint(
            "passengers_count > 0",
            name="ck_passengers_count_positive",
        ),
    )


class Passenger(Base):
    __tablename__ = "passengers"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(String(128), nullable=False)
    document: Mapped[str] = mapped_column(String(32), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    nationality: Mapped[str | None] = mapped_column(String(64), nullable=True)
    seat_number: Mapped[str | None] = mapped_column(String(8), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    booking: Mapped[Booking] = relationship(back_populates="passengers")


class Payment(Base):
    """
    Retries create new rows, so a booking may own many payments.
    At most one of them is pending at a time.
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        _pg_enum(PaymentMethod, "payment_method"),
        nullable=False,
    )
    status: Mapped[PaymentStatus] = mapped_column(
        _pg_enum(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    pix_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    pix_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    # Python-side default keeps sub-second ordering on every backend.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    booking: Mapped[Booking] = relationship(back_populates="payments")

    __table_args__ = (
        UniqueConstraint("pix_code", name="uq_payment_pix_code"),
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
    )
