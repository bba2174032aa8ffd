from .booking import (
    AvailabilitySlot,
    BalanceResponse,
    BookingCreate,
    BookingReschedule,
    CancellationResponse,
    CreditGrant,
    GuestInvitationCreate,
    RoomTypeSearchResult,
)

__all__ = [
    "BookingCreate",
    "BookingReschedule",
    "GuestInvitationCreate",
    "CreditGrant",
    "CancellationResponse",
    "RoomTypeSearchResult",
    "AvailabilitySlot",
    "BalanceResponse",
]
