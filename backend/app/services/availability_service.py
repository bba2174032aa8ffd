from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.types import as_utc
from app.models import Booking, BookingStatus, RoomType
from app.services.booking_policy import BookingPolicy, get_booking_policy
from app.services.errors import RoomTypeNotFoundError
from app.services.room_allocator import RoomAllocator, get_room_allocator
from app.utils.config import get_settings


class AvailabilityService:
    """Read-only views over free room capacity. Takes no locks."""

    def __init__(
        self,
        allocator: RoomAllocator | None = None,
        policy: BookingPolicy | None = None,
        slot_length: timedelta | None = None,
    ) -> None:
        self.allocator = allocator or get_room_allocator()
        self.policy = policy or get_booking_policy()
        self.slot_length = slot_length or timedelta(minutes=get_settings().slot_length_minutes)

    async def search_room_types(
        self,
        session: AsyncSession,
        start_time: datetime,
        end_time: datetime,
        capacity: int,
    ) -> List[Dict[str, Any]]:
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        self.policy.check_interval(start_time, end_time)

        stmt = select(RoomType).where(RoomType.capacity >= capacity).order_by(RoomType.capacity, RoomType.id)
        room_types = (await session.execute(stmt)).scalars().unique().all()

        results: List[Dict[str, Any]] = []
        for room_type in room_types:
            free = await self.allocator.free_instances(session, room_type.id, start_time, end_time)
            if not free:
                continue
            data = room_type.to_dict(include_location=False)
            data["location_name"] = room_type.location.name
            data["available_instances"] = len(free)
            results.append(data)
        return results

    async def room_type_slots(self, session: AsyncSession, room_type_id: int, day: date) -> List[Dict[str, Any]]:
        room_type = await session.get(RoomType, room_type_id)
        if room_type is None:
            raise RoomTypeNotFoundError()

        day_start = datetime.combine(day, room_type.opens_at, tzinfo=self.policy.tz)
        day_end = datetime.combine(day, room_type.closes_at, tzinfo=self.policy.tz)
        instance_ids = [instance.id for instance in room_type.instances if instance.is_active]

        busy: Dict[int, list[tuple[datetime, datetime]]] = {instance_id: [] for instance_id in instance_ids}
        if instance_ids:
            stmt = select(Booking.room_instance_id, Booking.start_time, Booking.end_time).where(
                Booking.room_instance_id.in_(instance_ids),
                Booking.status == BookingStatus.CONFIRMED,
                Booking.start_time < day_end,
                Booking.end_time > day_start,
            )
            for row in await session.execute(stmt):
                busy[row.room_instance_id].append((row.start_time, row.end_time))

        slots: List[Dict[str, Any]] = []
        slot_start = day_start
        while slot_start < day_end:
            slot_end = min(slot_start + self.slot_length, day_end)
            free_count = sum(
                1
                for intervals in busy.values()
                if not any(start < slot_end and end > slot_start for start, end in intervals)
            )
            slots.append(
                {
                    "start_time": slot_start.isoformat(),
                    "end_time": slot_end.isoformat(),
                    "is_available": free_count > 0,
                    "available_instances": free_count,
                }
            )
            slot_start = slot_end
        return slots


def get_availability_service() -> AvailabilityService:
    return AvailabilityService()
