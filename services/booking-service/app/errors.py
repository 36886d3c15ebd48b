class BookingError(Exception):
    """
    Base class for every rejection raised by the booking core.

    Each subclass carries the HTTP status it maps to and a short machine
    readable reason. Raising one of these always happens before the
    surrounding transaction is committed, so the booking is left untouched.
    """

    status_code = 400
    reason = "booking_error"

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.message = message
        if reason:
            self.reason = reason


class AuthenticationFailure(BookingError):
    status_code = 401
    reason = "not_authenticated"


class AuthorizationFailure(BookingError):
    status_code = 403
    reason = "not_authorized"


class ValidationFailure(BookingError):
    status_code = 400
    reason = "invalid_request"


class StateConflict(BookingError):
    status_code = 409
    reason = "state_conflict"


class NotFound(BookingError):
    status_code = 404
    reason = "not_found"
