from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.transaction import atomic
from app.models import Booking, BookingStatus, GuestInvitation
from app.services.errors import BookingNotConfirmedError, BookingNotFoundError, DuplicateInvitationError, ForbiddenError
from app.services.identity import Requester
from app.services.notification_service import BookingEvent, NotificationService, get_notification_service

logger = logging.getLogger(__name__)


class InvitationService:
    """Guest invitations attached to a requester's own bookings."""

    def __init__(self, notifier: NotificationService | None = None) -> None:
        self.notifier = notifier or get_notification_service()

    async def _owned_booking(self, session: AsyncSession, requester: Requester, booking_id: int) -> Booking:
        booking = await session.get(Booking, booking_id)
        if booking is None:
            raise BookingNotFoundError("Booking not found.")
        if booking.user_id != requester.id:
            raise ForbiddenError("You do not have permission to invite guests to this booking.")
        return booking

    async def invite_guest(
        self,
        session: AsyncSession,
        requester: Requester,
        booking_id: int,
        guest_name: str,
        guest_email: str,
    ) -> GuestInvitation:
        email = guest_email.strip().lower()

        async with atomic(session):
            booking = await self._owned_booking(session, requester, booking_id)
            if booking.status != BookingStatus.CONFIRMED:
                raise BookingNotConfirmedError("Guests can only be invited to confirmed bookings.")

            duplicate = await session.execute(
                select(GuestInvitation.id).where(
                    GuestInvitation.booking_id == booking.id,
                    GuestInvitation.guest_email == email,
                )
            )
            if duplicate.first() is not None:
                raise DuplicateInvitationError()

            invitation = GuestInvitation(
                booking=booking,
                sent_by_user_id=requester.id,
                guest_name=guest_name.strip(),
                guest_email=email,
            )
            session.add(invitation)
            try:
                await session.flush()
            except IntegrityError as exc:  # concurrent invite of the same guest
                raise DuplicateInvitationError() from exc

        await self.notifier.notify(
            BookingEvent.from_booking(
                "invitation.sent",
                booking,
                recipients=[email],
                details={"guest_name": invitation.guest_name},
            )
        )
        logger.info(
            "booking_event",
            extra={"event": "invitation.sent", "booking_id": booking.id, "invitation_id": invitation.id},
        )
        return invitation

    async def list_invitations(self, session: AsyncSession, requester: Requester, booking_id: int) -> list[GuestInvitation]:
        booking = await self._owned_booking(session, requester, booking_id)
        stmt = (
            select(GuestInvitation)
            .where(GuestInvitation.booking_id == booking.id)
            .order_by(GuestInvitation.created_at.desc(), GuestInvitation.id.desc())
        )
        return list((await session.execute(stmt)).scalars().all())


def get_invitation_service() -> InvitationService:
    return InvitationService()
