from fastapi import Depends, Header, HTTPException, status

from flight_booking.domain.exceptions import (
    AlreadyCancelledError,
    AmountMismatchError,
    FlightBookingError,
    InsufficientInventoryError,
    InvalidStateError,
    NotFoundError,
)
from flight_booking.infrastructure.db.session import SessionLocal

ADMIN_ROLE = "admin"

_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientInventoryError, status.HTTP_409_CONFLICT),
    (AlreadyCancelledError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (AmountMismatchError, status.HTTP_400_BAD_REQUEST),
)


def get_db():
    # Services commit their own unit of work; this only guarantees cleanup.
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    The identity provider sits in front of the API and forwards the
    authenticated user id; it is trusted as given.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id


def require_admin(
    user_id: str = Depends(get_current_user_id),
    x_user_role: str | None = Header(default=None),
) -> str:
    # The role travels with the identity and is trusted the same way.
    if (x_user_role or "").strip().lower() != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user_id


def http_error(exc: FlightBookingError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
