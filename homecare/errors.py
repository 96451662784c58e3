# homecare/errors.py

"""Error taxonomy for the booking core.

Every error carries the HTTP status it maps to at the request boundary.
``main.py`` registers one handler for the whole family.
"""

from typing import Optional


class BookingError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(BookingError):
    status_code = 400
    default_message = "Invalid request data"


class InvalidIdentifierError(BookingError):
    status_code = 400
    default_message = "The RUT provided is not valid"


class NotFoundError(BookingError):
    status_code = 404
    default_message = "Not found"


class ConflictError(BookingError):
    status_code = 409
    default_message = "This time slot is no longer available. Please choose another one."


class PolicyError(BookingError):
    status_code = 400
    default_message = "This action is not allowed by the booking policy"


class InvalidStateError(BookingError):
    status_code = 400
    default_message = "This appointment cannot be cancelled"


class InvalidTransitionError(BookingError):
    status_code = 409
    default_message = "Invalid status transition"


class AuthorizationError(BookingError):
    status_code = 403
    default_message = "Forbidden"
