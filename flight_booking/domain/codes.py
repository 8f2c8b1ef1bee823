# flight_booking/domain/codes.py

import math
import random
import secrets
import string
from typing import Iterable

SEAT_COLUMNS = "ABCDEF"
PIX_CODE_LENGTH = 25


def generate_booking_reference() -> str:
    """
    Two uppercase letters followed by four digits, e.g. ``KQ4821``.
    Not guaranteed unique; the unique constraint on bookings decides.
    """
    letters = "".join(random.choices(string.ascii_uppercase, k=2))
    digits = "".join(random.choices(string.digits, k=4))
    return f"{letters}{digits}"


def generate_pix_code(length: int = PIX_CODE_LENGTH) -> str:
    """Opaque charge id; 25 characters fits the BR Code txid field."""
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def seat_map(total_seats: int) -> list[str]:
    """
    All seat labels for a cabin of ``total_seats``, six abreast.
    A partial last row only has its first columns.
    """
    rows = math.ceil(total_seats / len(SEAT_COLUMNS))
    labels = [
        f"{row}{column}"
        for row in range(1, rows + 1)
        for column in SEAT_COLUMNS
    ]
    return labels[:total_seats]


def assign_seat_labels(
    total_seats: int,
    taken: Iterable[str],
    count: int,
) -> list[str]:
    """
    Picks ``count`` random labels that are not in ``taken``.
    Raises ValueError when the cabin has fewer free labels than requested.
    """
    taken_labels = set(taken)
    free = [label for label in seat_map(total_seats) if label not in taken_labels]

    if len(free) < count:
        raise ValueError(
            f"Only {len(free)} seat labels left, {count} requested"
        )

    return random.sample(free, count)
