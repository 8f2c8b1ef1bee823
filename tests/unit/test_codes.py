import re

import pytest

from flight_booking.domain.codes import (
    PIX_CODE_LENGTH,
    assign_seat_labels,
    generate_booking_reference,
    generate_pix_code,
    seat_map,
)


def test_booking_reference_format():
    for _ in range(50):
        assert re.fullmatch(r"[A-Z]{2}\d{4}", generate_booking_reference())


def test_pix_code_is_uppercase_alphanumeric():
    code = generate_pix_code()

    assert len(code) == PIX_CODE_LENGTH
    assert re.fullmatch(r"[A-Z0-9]+", code)


def test_pix_codes_are_not_repeated():
    codes = {generate_pix_code() for _ in range(200)}
    assert len(codes) == 200


def test_seat_map_fills_rows_six_abreast():
    labels = seat_map(12)

    assert labels[:6] == ["1A", "1B", "1C", "1D", "1E", "1F"]
    assert labels[-1] == "2F"
    assert len(labels) == 12


def test_seat_map_stops_at_cabin_size():
    labels = seat_map(8)

    assert len(labels) == 8
    assert labels[-2:] == ["2A", "2B"]


def test_assign_seat_labels_never_exceeds_cabin():
    labels = assign_seat_labels(7, set(), 7)

    assert sorted(labels) == ["1A", "1B", "1C", "1D", "1E", "1F", "2A"]

    with pytest.raises(ValueError):
        assign_seat_labels(7, set(labels), 1)


def test_assign_seat_labels_skips_taken():
    taken = {"1A", "1B", "1C", "1D", "1E"}

    labels = assign_seat_labels(6, taken, 1)

    assert labels == ["1F"]


def test_assign_seat_labels_returns_distinct_labels():
    labels = assign_seat_labels(30, set(), 10)

    assert len(labels) == 10
    assert len(set(labels)) == 10
    assert set(labels) <= set(seat_map(30))


def test_assign_seat_labels_raises_when_cabin_is_full():
    with pytest.raises(ValueError):
        assign_seat_labels(6, set(seat_map(6)), 1)
