from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Booking, BookingStatus, RoomInstance

logger = logging.getLogger(__name__)


class RoomAllocator:
    """Finds a concrete room instance of a room type that is free for a window."""

    async def _candidates(self, session: AsyncSession, room_type_id: int, lock: bool) -> Sequence[RoomInstance]:
        stmt = (
            select(RoomInstance)
            .where(RoomInstance.room_type_id == room_type_id, RoomInstance.is_active.is_(True))
            .order_by(RoomInstance.id)
        )
        if lock:
            # Rows are locked in id order so concurrent allocators queue behind each other.
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return (await session.execute(stmt)).scalars().all()

    async def _busy_instance_ids(
        self,
        session: AsyncSession,
        instance_ids: Sequence[int],
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[int],
    ) -> set[int]:
        conditions = [
            Booking.room_instance_id.in_(instance_ids),
            Booking.status == BookingStatus.CONFIRMED,
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        ]
        if exclude_booking_id is not None:
            conditions.append(Booking.id != exclude_booking_id)
        stmt = select(Booking.room_instance_id).where(and_(*conditions)).distinct()
        return set((await session.execute(stmt)).scalars().all())

    async def free_instances(
        self,
        session: AsyncSession,
        room_type_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[int] = None,
        lock: bool = False,
    ) -> list[RoomInstance]:
        candidates = await self._candidates(session, room_type_id, lock=lock)
        if not candidates:
            return []
        busy = await self._busy_instance_ids(
            session,
            [instance.id for instance in candidates],
            start_time,
            end_time,
            exclude_booking_id,
        )
        return [instance for instance in candidates if instance.id not in busy]

    async def allocate(
        self,
        session: AsyncSession,
        room_type_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[RoomInstance]:
        """Lock the candidate instances and return the lowest-id free one, or ``None``."""

        free = await self.free_instances(
            session,
            room_type_id,
            start_time,
            end_time,
            exclude_booking_id=exclude_booking_id,
            lock=True,
        )
        if not free:
            logger.info(
                "allocation_event",
                extra={
                    "event": "allocation.unavailable",
                    "room_type_id": room_type_id,
                    "start_time": start_time.isoformat(),
                    "end_time": end_time.isoformat(),
                },
            )
            return None
        return free[0]


def get_room_allocator() -> RoomAllocator:
    return RoomAllocator()
