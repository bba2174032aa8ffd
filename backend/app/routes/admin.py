from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_session
from app.models import Booking
from app.routes.errors import raise_http
from app.schemas import CancellationResponse
from app.services.booking_service import BookingService, get_booking_service
from app.services.errors import BookingError
from app.services.identity import Requester, get_current_requester, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


def _serialize_admin_booking(booking: Booking) -> Dict[str, Any]:
    data = booking.to_dict()
    data["user"] = {
        "id": booking.user.id,
        "name": booking.user.name,
        "email": booking.user.email,
    }
    data["location_name"] = booking.room_instance.room_type.location.name
    return data


@router.get("/bookings")
async def list_all_bookings(
    limit: int = Query(100, ge=1, le=200),
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[Dict[str, Any]]:
    require_admin(requester)
    bookings = await booking_service.list_all_bookings(db, limit=limit)
    return [_serialize_admin_booking(booking) for booking in bookings]


@router.delete("/bookings/{booking_id}", response_model=CancellationResponse)
async def cancel_any_booking(
    booking_id: int,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> CancellationResponse:
    require_admin(requester)
    try:
        result = await booking_service.admin_cancel_booking(db, booking_id)
    except BookingError as exc:
        raise_http(exc)
    return CancellationResponse(
        message="Booking cancelled successfully by admin.",
        booking=result.booking.to_dict(),
        refunded_credits=result.refunded_credits,
    )
