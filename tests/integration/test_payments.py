from datetime import date, timedelta
from decimal import Decimal

import pytest

from flight_booking.application.booking_service import BookingService, PassengerDetails
from flight_booking.application.payment_service import (
    PIX_EXPIRATION,
    PaymentService,
    as_utc,
    is_expired,
)
from flight_booking.domain.exceptions import (
    AmountMismatchError,
    InsufficientInventoryError,
    InvalidStateError,
    NotFoundError,
)
from flight_booking.domain.state_machine import BookingStatus, PaymentStatus
from flight_booking.infrastructure.pix.brcode import crc16
from flight_booking.infrastructure.repositories.booking_repository import BookingRepository
from flight_booking.infrastructure.repositories.payment_repository import PaymentRepository


def _book(db, flight, seats: int = 1, user_id: str = "user-1"):
    passengers = [
        PassengerDetails(
            full_name=f"Passenger {index}",
            document=f"{index:011d}",
            birth_date=date(1990, 6, 1),
        )
        for index in range(seats)
    ]
    return BookingService(db).create_booking(user_id, flight.id, passengers)


def test_two_seat_booking_scenario(db, make_flight):
    flight = make_flight(total_seats=2)
    booking = _book(db, flight, seats=2)
    db.refresh(flight)
    assert flight.available_seats == 0

    with pytest.raises(InsufficientInventoryError):
        _book(db, flight, seats=1, user_id="user-2")

    BookingService(db).cancel_booking(booking.id, "user-1")
    db.refresh(flight)
    assert flight.available_seats == 2


def test_amount_must_match_booking_total(db, make_flight):
    booking = _book(db, make_flight(price="450.00"))
    service = PaymentService(db)

    with pytest.raises(AmountMismatchError):
        service.create_pix_payment(booking.id, Decimal("449.99"), "user-1")

    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")

    assert intent.status == PaymentStatus.PENDING
    assert intent.amount == Decimal("450.00")
    payment = service.check_payment_status(intent.payment_id, "user-1")
    assert as_utc(payment.pix_expires_at) - as_utc(payment.created_at) == PIX_EXPIRATION


def test_intent_carries_a_valid_brcode(db, make_flight):
    booking = _book(db, make_flight(price="450.00"))

    intent = PaymentService(db).create_pix_payment(booking.id, Decimal("450.00"), "user-1")

    payload = intent.qr_code_payload
    assert intent.pix_code in payload
    assert "5406450.00" in payload
    assert payload[-4:] == crc16(payload[:-4])


def test_payment_for_another_users_booking(db, make_flight):
    booking = _book(db, make_flight())

    with pytest.raises(NotFoundError):
        PaymentService(db).create_pix_payment(booking.id, Decimal("450.00"), "user-2")


def test_approval_confirms_booking_and_is_one_shot(db, make_flight):
    booking = _book(db, make_flight())
    service = PaymentService(db)
    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")

    result = service.reconcile(intent.pix_code, "approved", "TXN1")

    assert result.payment_status == PaymentStatus.COMPLETED
    assert result.booking_status == BookingStatus.CONFIRMED

    with pytest.raises(InvalidStateError):
        service.reconcile(intent.pix_code, "rejected", "TXN2")

    payment = service.get_payment_by_booking(booking.id, "user-1")
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.transaction_id == "TXN1"
    assert payment.paid_at is not None
    db.refresh(booking)
    assert booking.status == BookingStatus.CONFIRMED


def test_rejection_leaves_booking_pending(db, make_flight):
    booking = _book(db, make_flight())
    service = PaymentService(db)
    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")

    result = service.reconcile(intent.pix_code, "rejected", "TXN1")

    assert result.payment_status == PaymentStatus.FAILED
    assert result.booking_status == BookingStatus.PENDING

    # The customer can try again with a fresh charge.
    retry = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")
    assert retry.pix_code != intent.pix_code


def test_unknown_pix_code(db):
    with pytest.raises(NotFoundError):
        PaymentService(db).reconcile("NOPE", "approved", "TXN1")


def test_confirmed_booking_cannot_be_charged_again(db, make_flight):
    booking = _book(db, make_flight())
    service = PaymentService(db)
    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")
    service.reconcile(intent.pix_code, "approved", "TXN1")

    with pytest.raises(InvalidStateError):
        service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")


def test_new_intent_supersedes_pending_one(db, make_flight):
    booking = _book(db, make_flight())
    service = PaymentService(db)
    first = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")
    second = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")

    assert service.check_payment_status(first.payment_id, "user-1").status == PaymentStatus.CANCELLED
    assert service.get_payment_by_booking(booking.id, "user-1").id == second.payment_id

    with pytest.raises(InvalidStateError):
        service.reconcile(first.pix_code, "approved", "TXN1")


def test_cancelling_booking_voids_pending_payment(db, make_flight):
    flight = make_flight(total_seats=10)
    booking = _book(db, flight)
    service = PaymentService(db)
    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")

    BookingService(db).cancel_booking(booking.id, "user-1")

    with pytest.raises(InvalidStateError):
        service.reconcile(intent.pix_code, "approved", "TXN1")

    db.refresh(booking)
    db.refresh(flight)
    assert booking.status == BookingStatus.CANCELLED
    assert flight.available_seats == 10


def test_simulated_payment_confirms_booking(db, make_flight):
    booking = _book(db, make_flight())
    service = PaymentService(db)
    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")

    result = service.simulate_pix_payment(intent.pix_code)

    assert result.booking_status == BookingStatus.CONFIRMED
    payment = service.check_payment_status(intent.payment_id, "user-1")
    assert payment.transaction_id.startswith("SIM-")


def test_expired_payments_are_swept(db, make_flight):
    booking = _book(db, make_flight())
    service = PaymentService(db)
    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")
    later = as_utc(intent.expires_at) + timedelta(minutes=1)

    payment = service.check_payment_status(intent.payment_id, "user-1")
    assert not is_expired(payment)
    assert is_expired(payment, now=later)

    assert service.expire_stale_payments(now=later) == 1
    assert service.expire_stale_payments(now=later) == 0

    payment = service.check_payment_status(intent.payment_id, "user-1")
    assert payment.status == PaymentStatus.FAILED
    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING


def test_only_pix_is_enabled(db):
    methods = PaymentService(db).payment_methods()

    enabled = [method["id"] for method in methods if method["enabled"]]
    assert enabled == ["pix"]


def test_failed_confirmation_rolls_back_the_payment(db, make_flight, monkeypatch):
    booking = _book(db, make_flight())
    service = PaymentService(db)
    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")

    # The booking left pending between the payment check and the update.
    monkeypatch.setattr(BookingRepository, "transition", lambda self, *args: False)

    with pytest.raises(InvalidStateError):
        service.reconcile(intent.pix_code, "approved", "TXN1")

    payment = service.check_payment_status(intent.payment_id, "user-1")
    assert payment.status == PaymentStatus.PENDING
    assert payment.paid_at is None
    assert payment.transaction_id is None
    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING


def test_reconcile_locks_booking_before_payment(db, make_flight, monkeypatch):
    booking = _book(db, make_flight())
    service = PaymentService(db)
    intent = service.create_pix_payment(booking.id, Decimal("450.00"), "user-1")
    calls = []

    original_get = BookingRepository.get_by_id
    original_transition = PaymentRepository.transition_if_pending

    def recording_get(self, booking_id, for_update=False):
        calls.append(("booking", for_update))
        return original_get(self, booking_id, for_update=for_update)

    def recording_transition(self, payment, new_status, **values):
        calls.append(("payment", True))
        return original_transition(self, payment, new_status, **values)

    monkeypatch.setattr(BookingRepository, "get_by_id", recording_get)
    monkeypatch.setattr(PaymentRepository, "transition_if_pending", recording_transition)

    service.reconcile(intent.pix_code, "approved", "TXN1")

    assert calls == [("booking", True), ("payment", True)]
