class BookingError(Exception):
    status_code = 400
    public_detail = "Booking error"

    def __init__(self, message: str | None = None, public_detail: str | None = None):
        super().__init__(message or self.public_detail)
        self.message = message or self.public_detail
        if public_detail:
            self.public_detail = public_detail


class InvalidTransition(BookingError):
    status_code = 409
    public_detail = "Action not allowed for this booking"


class Forbidden(BookingError):
    # Rendered exactly like InvalidTransition so callers learn nothing about why.
    status_code = 409
    public_detail = "Action not allowed for this booking"


class NotFound(BookingError):
    status_code = 404
    public_detail = "Not found"


class Conflict(BookingError):
    status_code = 409
    public_detail = "Booking was modified by someone else, reload and retry"


class QueryFailure(BookingError):
    status_code = 503
    public_detail = "Unable to load bookings"


class ValidationFailed(BookingError):
    status_code = 422
    public_detail = "Invalid request"

    def __init__(self, message: str):
        # validation messages are safe to show as-is
        super().__init__(message, public_detail=message)
