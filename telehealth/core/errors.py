"""
Domain exception hierarchy for appointment booking.

Every error carries a stable ``kind`` string so callers can map it to a
response without matching on class names, and a ``retryable`` flag telling
the UI whether "please try again" makes sense.
"""


class BookingError(Exception):
    """Base class for booking and availability failures."""

    kind = "booking_error"
    retryable = False
    default_message = "The booking could not be completed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AvailabilityNotFound(BookingError):
    """The doctor has published no availability for the requested date."""

    kind = "availability_not_found"
    default_message = "Doctor's availability not found."


class SlotUnavailable(BookingError):
    """The requested slot is not open, either never published or already taken."""

    kind = "slot_unavailable"
    default_message = "This time slot is no longer available."


class ConcurrentConflict(BookingError):
    """The booking kept colliding with concurrent writes and gave up."""

    kind = "concurrent_conflict"
    retryable = True
    default_message = "The schedule changed while booking. Please try again."


class BookingValidationError(BookingError):
    """Malformed slot or availability input."""

    kind = "validation_error"
    default_message = "Invalid time slot."


class AppointmentNotFound(BookingError):
    kind = "appointment_not_found"
    default_message = "Appointment not found."


class InvalidStatusTransition(BookingError):
    kind = "invalid_status_transition"
    default_message = "This appointment status change is not allowed."
