import pytest
from sqlalchemy import update

from app.models import Booking, BookingStatus, RoomInstance
from app.services.room_allocator import RoomAllocator

from .conftest import at

pytestmark = pytest.mark.asyncio


async def _book(session, instance_id: int, user_id: int, start, end, status=BookingStatus.CONFIRMED) -> Booking:
    booking = Booking(
        room_instance_id=instance_id,
        user_id=user_id,
        status=status,
        start_time=start,
        end_time=end,
        credits_charged=5,
    )
    session.add(booking)
    await session.commit()
    return booking


async def test_allocates_lowest_free_instance(session, catalog):
    allocator = RoomAllocator()
    first, second = catalog.huddle_instance_ids

    instance = await allocator.allocate(session, catalog.huddle_id, at(10), at(10, 30))
    assert instance.id == first

    await _book(session, first, catalog.erin.id, at(10), at(10, 30))
    instance = await allocator.allocate(session, catalog.huddle_id, at(10, 15), at(10, 45))
    assert instance.id == second


async def test_back_to_back_bookings_share_an_instance(session, catalog):
    first, _ = catalog.huddle_instance_ids
    await _book(session, first, catalog.erin.id, at(10), at(10, 30))

    instance = await RoomAllocator().allocate(session, catalog.huddle_id, at(10, 30), at(11))
    assert instance.id == first


async def test_cancelled_bookings_do_not_block(session, catalog):
    await _book(session, catalog.boardroom_instance_id, catalog.erin.id, at(10), at(11), status=BookingStatus.CANCELLED)

    instance = await RoomAllocator().allocate(session, catalog.boardroom_id, at(10), at(11))
    assert instance.id == catalog.boardroom_instance_id


async def test_returns_none_when_every_instance_is_taken(session, catalog):
    await _book(session, catalog.boardroom_instance_id, catalog.erin.id, at(10), at(11))

    assert await RoomAllocator().allocate(session, catalog.boardroom_id, at(10, 30), at(11, 30)) is None


async def test_excluded_booking_frees_its_own_instance(session, catalog):
    booking = await _book(session, catalog.boardroom_instance_id, catalog.erin.id, at(10), at(11))

    instance = await RoomAllocator().allocate(
        session, catalog.boardroom_id, at(10, 30), at(11, 30), exclude_booking_id=booking.id
    )
    assert instance.id == catalog.boardroom_instance_id


async def test_inactive_instances_are_never_offered(session, catalog):
    active, inactive = catalog.meeting_instance_ids
    await _book(session, active, catalog.erin.id, at(10), at(11))

    free = await RoomAllocator().free_instances(session, catalog.meeting_id, at(10), at(11))
    assert free == []

    await session.execute(update(RoomInstance).where(RoomInstance.id == inactive).values(is_active=True))
    await session.commit()
    free = await RoomAllocator().free_instances(session, catalog.meeting_id, at(10), at(11))
    assert [instance.id for instance in free] == [inactive]
