from .account import Organization, User, UserRole
from .booking import (
    AccountType,
    Booking,
    BookingStatus,
    CreditReason,
    CreditTransaction,
    GuestInvitation,
)
from .catalog import Location, RoomInstance, RoomType

__all__ = [
    "Location",
    "RoomType",
    "RoomInstance",
    "Organization",
    "User",
    "UserRole",
    "Booking",
    "BookingStatus",
    "GuestInvitation",
    "CreditTransaction",
    "CreditReason",
    "AccountType",
]
