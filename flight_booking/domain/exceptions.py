

class FlightBookingError(Exception):
    """
    Base exception for all domain-level errors
    inside the flight booking engine.
    """


class NotFoundError(FlightBookingError):
    """
    Raised when an entity is absent or belongs to another user.
    Both cases share one error so callers cannot discover other users' data.
    """


class InsufficientInventoryError(FlightBookingError):
    """Raised when a flight has fewer available seats than requested."""


class InvalidStateError(FlightBookingError):
    """Raised when an operation is attempted against an entity in a state that forbids it."""


class InvalidStateTransitionError(InvalidStateError):
    """
    Raised when an illegal booking state transition is attempted.
    """

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message)


class AmountMismatchError(FlightBookingError):
    """Raised when the client-asserted payment amount differs from the booking total."""


class AlreadyCancelledError(FlightBookingError):
    """Raised when cancelling a booking that is already cancelled."""
