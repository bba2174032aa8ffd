from __future__ import annotations


class BookingError(Exception):
    """Base class for expected booking outcomes that are reported to the caller."""

    code = "BOOKING_ERROR"
    default_message = "Booking request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class PolicyViolation(BookingError):
    """A time-policy rule rejected the request. ``code`` names the rule."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)


class BookingNotFoundError(BookingError):
    code = "NOT_FOUND"
    default_message = "Booking not found or you do not have permission to change it."


class BookingNotConfirmedError(BookingError):
    code = "NOT_CONFIRMED"
    default_message = "This booking is not confirmed."


class RoomTypeNotFoundError(BookingError):
    code = "ROOM_TYPE_NOT_FOUND"
    default_message = "Room type not found."


class NoAvailabilityError(BookingError):
    code = "NO_AVAILABILITY"
    default_message = "No room of this type is available for the requested time."


class InsufficientCreditsError(BookingError):
    code = "INSUFFICIENT_CREDITS"
    default_message = "Insufficient credits to make this booking."

    def __init__(self, balance: int, required: int) -> None:
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient credits: {required} required, {balance} available.")


class AccountNotFoundError(BookingError):
    code = "ACCOUNT_NOT_FOUND"
    default_message = "Credit account not found."


class ForbiddenError(BookingError):
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action."


class DuplicateInvitationError(BookingError):
    code = "DUPLICATE_INVITATION"
    default_message = "This guest has already been invited to this booking."


class InvalidAmountError(BookingError):
    code = "INVALID_AMOUNT"
    default_message = "Credit amount must be a positive integer."
