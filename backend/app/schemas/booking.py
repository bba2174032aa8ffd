from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import AwareDatetime, BaseModel, Field, model_validator


class BookingCreate(BaseModel):
    room_type_id: int = Field(..., gt=0)
    start_time: AwareDatetime = Field(..., description="ISO-8601 with offset")
    end_time: AwareDatetime

    @model_validator(mode="after")
    def _check_range(self) -> "BookingCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class BookingReschedule(BaseModel):
    new_room_type_id: int = Field(..., gt=0)
    new_start_time: AwareDatetime
    new_end_time: AwareDatetime

    @model_validator(mode="after")
    def _check_range(self) -> "BookingReschedule":
        if self.new_start_time >= self.new_end_time:
            raise ValueError("new_start_time must be before new_end_time")
        return self


class GuestInvitationCreate(BaseModel):
    guest_name: str = Field(..., min_length=1, max_length=255)
    guest_email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CreditGrant(BaseModel):
    credits: int = Field(..., gt=0)


class CancellationResponse(BaseModel):
    message: str
    booking: Dict[str, Any]
    refunded_credits: int


class RoomTypeSearchResult(BaseModel):
    id: int
    name: str
    capacity: int
    credits_per_booking: int
    location_name: str
    available_instances: int
    amenities: List[str] = Field(default_factory=list)


class AvailabilitySlot(BaseModel):
    start_time: datetime
    end_time: datetime
    is_available: bool
    available_instances: int


class BalanceResponse(BaseModel):
    type: str
    id: int
    balance: int
