from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_session
from app.routes.errors import raise_http
from app.schemas import BookingCreate, BookingReschedule, CancellationResponse, GuestInvitationCreate
from app.services.booking_service import BookingService, get_booking_service
from app.services.errors import BookingError
from app.services.identity import Requester, get_current_requester
from app.services.invitation_service import InvitationService, get_invitation_service

router = APIRouter(prefix="/booking", tags=["booking"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    try:
        booking = await booking_service.create_booking(
            session=db,
            requester=requester,
            room_type_id=payload.room_type_id,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
    except BookingError as exc:
        raise_http(exc)
    return booking.to_dict()


@router.get("")
async def list_my_bookings(
    limit: int = Query(50, ge=1, le=200),
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[Dict[str, Any]]:
    bookings = await booking_service.list_bookings(db, requester, limit=limit)
    return [booking.to_dict() for booking in bookings]


@router.delete("/{booking_id}", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: int,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> CancellationResponse:
    try:
        result = await booking_service.cancel_booking(db, requester, booking_id)
    except BookingError as exc:
        raise_http(exc)
    return CancellationResponse(
        message="Booking cancelled successfully.",
        booking=result.booking.to_dict(),
        refunded_credits=result.refunded_credits,
    )


@router.post("/{booking_id}/reschedule")
async def reschedule_booking(
    booking_id: int,
    payload: BookingReschedule,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    try:
        booking = await booking_service.reschedule_booking(
            session=db,
            requester=requester,
            booking_id=booking_id,
            new_room_type_id=payload.new_room_type_id,
            new_start_time=payload.new_start_time,
            new_end_time=payload.new_end_time,
        )
    except BookingError as exc:
        raise_http(exc)
    return booking.to_dict()


@router.post("/{booking_id}/invitations", status_code=status.HTTP_201_CREATED)
async def invite_guest(
    booking_id: int,
    payload: GuestInvitationCreate,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> Dict[str, Any]:
    try:
        invitation = await invitation_service.invite_guest(
            db,
            requester,
            booking_id,
            guest_name=payload.guest_name,
            guest_email=payload.guest_email,
        )
    except BookingError as exc:
        raise_http(exc)
    return {
        "message": f"Invitation successfully sent to {invitation.guest_email}.",
        "invitation": invitation.to_dict(),
    }


@router.get("/{booking_id}/invitations")
async def list_invitations(
    booking_id: int,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> List[Dict[str, Any]]:
    try:
        invitations = await invitation_service.list_invitations(db, requester, booking_id)
    except BookingError as exc:
        raise_http(exc)
    return [invitation.to_dict() for invitation in invitations]
