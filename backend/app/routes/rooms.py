from __future__ import annotations

from datetime import date, datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_session
from app.routes.errors import raise_http
from app.schemas import AvailabilitySlot, RoomTypeSearchResult
from app.services.availability_service import AvailabilityService, get_availability_service
from app.services.errors import BookingError

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("/search", response_model=List[RoomTypeSearchResult])
async def search_available_room_types(
    start_time: datetime,
    end_time: datetime,
    capacity: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_session),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[RoomTypeSearchResult]:
    """Room types with at least one free active instance for the window."""

    if start_time.tzinfo is None or end_time.tzinfo is None:
        raise HTTPException(status_code=400, detail="start_time and end_time must include a UTC offset")
    try:
        results = await availability_service.search_room_types(db, start_time, end_time, capacity)
    except BookingError as exc:
        raise_http(exc)
    return [RoomTypeSearchResult(**result) for result in results]


@router.get("/types/{room_type_id}/availability", response_model=List[AvailabilitySlot])
async def room_type_availability(
    room_type_id: int,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_session),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilitySlot]:
    try:
        slots = await availability_service.room_type_slots(db, room_type_id, day)
    except BookingError as exc:
        raise_http(exc)
    return [AvailabilitySlot(**slot) for slot in slots]
