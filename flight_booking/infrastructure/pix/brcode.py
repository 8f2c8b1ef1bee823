# flight_booking/infrastructure/pix/brcode.py

"""
PIX "copy and paste" payloads (EMV BR Code).

Only the static, single-charge layout is produced: merchant key,
amount and the txid that later correlates the payment notification.
"""

import binascii
import os
import unicodedata
from dataclasses import dataclass
from decimal import Decimal

PIX_GUI = "br.gov.bcb.pix"
CURRENCY_BRL = "986"
COUNTRY_CODE = "BR"
MAX_TXID_LENGTH = 25


@dataclass(frozen=True)
class PixMerchant:
    key: str
    name: str
    city: str


def merchant_from_env() -> PixMerchant:
    return PixMerchant(
        key=os.getenv("PIX_KEY", "pagamentos@flightbooking.example"),
        name=os.getenv("PIX_MERCHANT_NAME", "FLIGHT BOOKING"),
        city=os.getenv("PIX_MERCHANT_CITY", "SAO PAULO"),
    )


def _field(tag: str, value: str) -> str:
    if len(value) > 99:
        raise ValueError(f"BR Code field {tag} longer than 99 characters")
    return f"{tag}{len(value):02d}{value}"


def _ascii(value: str, limit: int) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return normalized.encode("ascii", "ignore").decode("ascii").upper()[:limit]


def crc16(payload: str) -> str:
    """CRC-16/CCITT-FALSE as four uppercase hex digits."""
    return f"{binascii.crc_hqx(payload.encode('utf-8'), 0xFFFF):04X}"


def build_payload(merchant: PixMerchant, amount: Decimal, txid: str) -> str:
    if len(txid) > MAX_TXID_LENGTH:
        raise ValueError(f"txid longer than {MAX_TXID_LENGTH} characters")

    account = _field("00", PIX_GUI) + _field("01", merchant.key)
    payload = "".join(
        [
            _field("00", "01"),
            _field("26", account),
            _field("52", "0000"),
            _field("53", CURRENCY_BRL),
            _field("54", f"{amount:.2f}"),
            _field("58", COUNTRY_CODE),
            _field("59", _ascii(merchant.name, 25)),
            _field("60", _ascii(merchant.city, 15)),
            _field("62", _field("05", txid)),
            "6304",
        ]
    )
    return payload + crc16(payload)
