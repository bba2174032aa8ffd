from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.transaction import atomic
from app.db.types import as_utc, utcnow
from app.models import Booking, BookingStatus, RoomType, User
from app.services.booking_policy import BookingPolicy, get_booking_policy
from app.services.credit_ledger import AccountRef, CreditLedger, get_credit_ledger, resolve_account, resolve_account_for_user
from app.services.errors import (
    AccountNotFoundError,
    BookingNotConfirmedError,
    BookingNotFoundError,
    InsufficientCreditsError,
    NoAvailabilityError,
    RoomTypeNotFoundError,
)
from app.services.identity import Requester
from app.services.notification_service import BookingEvent, NotificationService, get_notification_service
from app.services.room_allocator import RoomAllocator, get_room_allocator

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class CancellationResult:
    booking: Booking
    refunded_credits: int


class BookingService:
    """Creates, cancels and reschedules bookings.

    Each operation runs in a single transaction on the given session. Row locks
    are always taken in the same order: requester user row, booking row,
    candidate room instances, then the credit account.
    """

    def __init__(
        self,
        allocator: RoomAllocator | None = None,
        ledger: CreditLedger | None = None,
        policy: BookingPolicy | None = None,
        notifier: NotificationService | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.allocator = allocator or get_room_allocator()
        self.ledger = ledger or get_credit_ledger()
        self.policy = policy or get_booking_policy()
        self.notifier = notifier or get_notification_service()
        self.clock = clock or utcnow

    async def _lock_user(self, session: AsyncSession, user_id: int) -> User:
        stmt = select(User).where(User.id == user_id).with_for_update().execution_options(populate_existing=True)
        user = (await session.execute(stmt)).scalar_one_or_none()
        if user is None:
            raise AccountNotFoundError("User account not found.")
        return user

    async def _lock_booking(self, session: AsyncSession, booking_id: int) -> Optional[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def _reload(self, session: AsyncSession, booking_id: int) -> Booking:
        stmt = select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
        return (await session.execute(stmt)).scalar_one()

    async def _load_owned_booking(self, session: AsyncSession, requester: Requester, booking_id: int) -> Booking:
        booking = await self._lock_booking(session, booking_id)
        if booking is None or booking.user_id != requester.id:
            raise BookingNotFoundError()
        return booking

    async def _load_room_type(self, session: AsyncSession, room_type_id: int) -> RoomType:
        room_type = await session.get(RoomType, room_type_id)
        if room_type is None:
            raise RoomTypeNotFoundError()
        return room_type

    async def _check_cooldown(
        self,
        session: AsyncSession,
        user_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> None:
        padded_start, padded_end = self.policy.cooldown_window(start_time, end_time)
        stmt = select(Booking.start_time, Booking.end_time).where(
            Booking.user_id == user_id,
            Booking.status == BookingStatus.CONFIRMED,
            Booking.start_time < padded_end,
            Booking.end_time > padded_start,
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        existing = [(row.start_time, row.end_time) for row in await session.execute(stmt)]
        self.policy.check_cooldown(start_time, end_time, existing)

    async def _count_cancellations_this_month(self, session: AsyncSession, user_id: int, now: datetime) -> int:
        month_start, next_month = self.policy.month_bounds(now)
        stmt = select(func.count(Booking.id)).where(
            Booking.user_id == user_id,
            Booking.status == BookingStatus.CANCELLED,
            Booking.cancelled_at >= month_start,
            Booking.cancelled_at < next_month,
        )
        return int((await session.execute(stmt)).scalar_one())

    async def _release(self, session: AsyncSession, booking: Booking, account: AccountRef, now: datetime) -> int:
        refund = booking.credits_charged
        await self.ledger.credit(session, account, refund, booking=booking)
        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = now
        await session.flush()
        return refund

    async def _emit(self, event_type: str, booking: Booking, **details: object) -> None:
        recipients = [invitation.guest_email for invitation in booking.invitations]
        await self.notifier.notify(BookingEvent.from_booking(event_type, booking, recipients=recipients, details=details))
        logger.info(
            "booking_event",
            extra={
                "event": event_type,
                "booking_id": booking.id,
                "user_id": booking.user_id,
                "room_instance_id": booking.room_instance_id,
                "start_time": booking.start_time.isoformat(),
                "end_time": booking.end_time.isoformat(),
            },
        )

    async def create_booking(
        self,
        session: AsyncSession,
        requester: Requester,
        room_type_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Booking:
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        self.policy.validate_window(start_time, end_time, self.clock())
        account = resolve_account(requester)

        async with atomic(session):
            await self._lock_user(session, requester.id)
            await self._check_cooldown(session, requester.id, start_time, end_time)

            room_type = await self._load_room_type(session, room_type_id)
            cost = room_type.credits_per_booking
            available = await self.ledger.balance(session, account)
            if available < cost:
                raise InsufficientCreditsError(balance=available, required=cost)

            instance = await self.allocator.allocate(session, room_type.id, start_time, end_time)
            if instance is None:
                raise NoAvailabilityError()

            booking = Booking(
                room_instance=instance,
                user_id=requester.id,
                status=BookingStatus.CONFIRMED,
                start_time=start_time,
                end_time=end_time,
                credits_charged=cost,
            )
            # The debit is the authoritative funds check; it inserts the booking with its journal entry.
            try:
                await self.ledger.debit(session, account, cost, booking=booking)
                session.add(booking)
                await session.flush()
            except IntegrityError as exc:  # overlap exclusion constraint
                raise NoAvailabilityError() from exc

        booking = await self._reload(session, booking.id)
        await self._emit("booking.created", booking, credits_charged=booking.credits_charged)
        return booking

    async def cancel_booking(self, session: AsyncSession, requester: Requester, booking_id: int) -> CancellationResult:
        now = self.clock()
        account = resolve_account(requester)

        async with atomic(session):
            await self._lock_user(session, requester.id)
            booking = await self._load_owned_booking(session, requester, booking_id)
            if booking.status != BookingStatus.CONFIRMED:
                raise BookingNotConfirmedError("This booking cannot be cancelled as it is not confirmed.")

            self.policy.check_cancellation_deadline(booking.start_time, now)
            cancellations = await self._count_cancellations_this_month(session, requester.id, now)
            self.policy.check_cancellation_quota(cancellations)

            refunded = await self._release(session, booking, account, now)

        booking = await self._reload(session, booking.id)
        await self._emit("booking.cancelled", booking, refunded_credits=refunded)
        return CancellationResult(booking=booking, refunded_credits=refunded)

    async def reschedule_booking(
        self,
        session: AsyncSession,
        requester: Requester,
        booking_id: int,
        new_room_type_id: int,
        new_start_time: datetime,
        new_end_time: datetime,
    ) -> Booking:
        new_start_time, new_end_time = as_utc(new_start_time), as_utc(new_end_time)
        now = self.clock()
        self.policy.validate_window(new_start_time, new_end_time, now)
        account = resolve_account(requester)

        async with atomic(session):
            await self._lock_user(session, requester.id)
            booking = await self._load_owned_booking(session, requester, booking_id)
            if booking.status != BookingStatus.CONFIRMED:
                raise BookingNotConfirmedError("Only confirmed bookings can be rescheduled.")

            self.policy.check_cancellation_deadline(booking.start_time, now, action="rescheduled")
            await self._check_cooldown(
                session, requester.id, new_start_time, new_end_time, exclude_booking_id=booking.id
            )

            room_type = await self._load_room_type(session, new_room_type_id)
            instance = await self.allocator.allocate(
                session, room_type.id, new_start_time, new_end_time, exclude_booking_id=booking.id
            )
            if instance is None:
                raise NoAvailabilityError("The requested slot is not available.")

            new_cost = room_type.credits_per_booking
            delta = booking.credits_charged - new_cost
            if delta:
                await self.ledger.adjust_delta(session, account, delta, booking=booking)

            previous = {
                "room_instance_id": booking.room_instance_id,
                "start_time": booking.start_time.isoformat(),
                "end_time": booking.end_time.isoformat(),
            }
            booking.room_instance = instance
            booking.start_time = new_start_time
            booking.end_time = new_end_time
            booking.credits_charged = new_cost
            try:
                await session.flush()
            except IntegrityError as exc:
                raise NoAvailabilityError("The requested slot is not available.") from exc

        booking = await self._reload(session, booking.id)
        await self._emit("booking.rescheduled", booking, previous=previous, credit_delta=delta)
        return booking

    async def admin_cancel_booking(self, session: AsyncSession, booking_id: int) -> CancellationResult:
        """Cancel any confirmed booking without deadline or quota checks.

        The refund goes to the account the booking owner currently resolves to.
        """

        now = self.clock()
        owner_id = (await session.execute(select(Booking.user_id).where(Booking.id == booking_id))).scalar_one_or_none()
        if owner_id is None:
            await session.rollback()
            raise BookingNotFoundError("Booking not found.")

        async with atomic(session):
            owner = await self._lock_user(session, owner_id)
            booking = await self._lock_booking(session, booking_id)
            if booking is None:
                raise BookingNotFoundError("Booking not found.")
            if booking.status != BookingStatus.CONFIRMED:
                raise BookingNotConfirmedError("This booking cannot be cancelled as it is not confirmed.")
            if booking.start_time < now:
                logger.info("Admin cancelling a past booking", extra={"booking_id": booking.id})

            refunded = await self._release(session, booking, resolve_account_for_user(owner), now)

        booking = await self._reload(session, booking.id)
        await self._emit("booking.cancelled", booking, refunded_credits=refunded, cancelled_by="admin")
        return CancellationResult(booking=booking, refunded_credits=refunded)

    async def list_bookings(self, session: AsyncSession, requester: Requester, limit: int = 50) -> list[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == requester.id)
            .order_by(Booking.start_time.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().unique().all())

    async def list_all_bookings(self, session: AsyncSession, limit: int = 100) -> list[Booking]:
        stmt = select(Booking).order_by(Booking.start_time.desc()).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().unique().all())


def get_booking_service() -> BookingService:
    return BookingService()
