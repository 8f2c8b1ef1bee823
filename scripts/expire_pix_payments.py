"""
Scheduled sweep for PIX charges that were never paid.

Run from cron or a scheduler; reconciliation itself never expires payments.
"""

import logging

from flight_booking.application.payment_service import PaymentService
from flight_booking.infrastructure.db.session import SessionLocal

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    db = SessionLocal()
    try:
        expired = PaymentService(db).expire_stale_payments()
        logger.info("PIX expiration sweep finished. expired=%s", expired)
    finally:
        db.close()


if __name__ == "__main__":
    main()
