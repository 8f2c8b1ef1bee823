from fastapi import APIRouter

from flight_booking.api.routes import bookings, flights, payments, users

router = APIRouter()

router.include_router(flights.router)
router.include_router(bookings.router)
router.include_router(payments.router)
router.include_router(users.router)


@router.get("/health")
def health():
    return {"message": "Flight booking engine is running"}
