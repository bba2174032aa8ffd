from datetime import timedelta

import pytest

from app.services.availability_service import AvailabilityService
from app.services.booking_policy import BookingPolicy
from app.services.errors import (
    BookingNotConfirmedError,
    DuplicateInvitationError,
    ForbiddenError,
    RoomTypeNotFoundError,
)
from app.services.invitation_service import InvitationService

from .conftest import IST, NOW, at

pytestmark = pytest.mark.asyncio


@pytest.fixture
def invitation_service(notifier) -> InvitationService:
    return InvitationService(notifier=notifier)


@pytest.fixture
def availability_service() -> AvailabilityService:
    return AvailabilityService(policy=BookingPolicy(tz=IST), slot_length=timedelta(minutes=30))


async def test_invite_guest_and_notify(session, catalog, booking_service, invitation_service, notifier):
    booking = await booking_service.create_booking(session, catalog.erin, catalog.huddle_id, at(10), at(10, 30))

    invitation = await invitation_service.invite_guest(
        session, catalog.erin, booking.id, guest_name="  Sam  ", guest_email="Sam@Example.com"
    )

    assert invitation.guest_email == "sam@example.com"
    assert invitation.guest_name == "Sam"
    event = notifier.events[-1]
    assert event.type == "invitation.sent"
    assert event.recipients == ["sam@example.com"]

    listed = await invitation_service.list_invitations(session, catalog.erin, booking.id)
    assert [item.guest_email for item in listed] == ["sam@example.com"]


async def test_duplicate_invitation_is_rejected(session, catalog, booking_service, invitation_service):
    booking = await booking_service.create_booking(session, catalog.erin, catalog.huddle_id, at(10), at(10, 30))
    booking_id = booking.id
    await invitation_service.invite_guest(session, catalog.erin, booking_id, "Sam", "sam@example.com")

    with pytest.raises(DuplicateInvitationError):
        await invitation_service.invite_guest(session, catalog.erin, booking_id, "Sam again", "SAM@example.com")


async def test_only_owner_can_invite(session, catalog, booking_service, invitation_service):
    booking = await booking_service.create_booking(session, catalog.erin, catalog.huddle_id, at(10), at(10, 30))
    booking_id = booking.id

    with pytest.raises(ForbiddenError):
        await invitation_service.invite_guest(session, catalog.alice, booking_id, "Sam", "sam@example.com")
    with pytest.raises(ForbiddenError):
        await invitation_service.list_invitations(session, catalog.alice, booking_id)


async def test_cannot_invite_to_cancelled_booking(session, catalog, booking_service, invitation_service):
    booking = await booking_service.create_booking(session, catalog.erin, catalog.huddle_id, at(10), at(10, 30))
    booking_id = booking.id
    await booking_service.cancel_booking(session, catalog.erin, booking_id)

    with pytest.raises(BookingNotConfirmedError):
        await invitation_service.invite_guest(session, catalog.erin, booking_id, "Sam", "sam@example.com")


async def test_reschedule_event_lists_invited_guests(session, catalog, booking_service, invitation_service, notifier):
    listener = notifier.bus.subscribe(f"user:{catalog.erin.id}")
    booking = await booking_service.create_booking(session, catalog.erin, catalog.huddle_id, at(10), at(10, 30))
    booking_id = booking.id
    await invitation_service.invite_guest(session, catalog.erin, booking_id, "Sam", "sam@example.com")

    await booking_service.reschedule_booking(session, catalog.erin, booking_id, catalog.huddle_id, at(11), at(11, 30))

    event = notifier.events[-1]
    assert event.type == "booking.rescheduled"
    assert event.recipients == ["sam@example.com"]

    received = [listener.get_nowait()["type"] for _ in range(listener.qsize())]
    assert received == ["booking.created", "invitation.sent", "booking.rescheduled"]


async def test_search_lists_room_types_with_free_instances(session, catalog, booking_service, availability_service):
    await booking_service.create_booking(session, catalog.erin, catalog.huddle_id, at(10), at(10, 30))
    await booking_service.create_booking(session, catalog.alice, catalog.huddle_id, at(10), at(10, 30))

    results = await availability_service.search_room_types(session, at(10), at(10, 30), capacity=2)
    assert [(item["name"], item["available_instances"]) for item in results] == [
        ("Meeting-6", 1),
        ("Boardroom-12", 1),
    ]
    assert results[0]["location_name"] == "Indiranagar"

    large = await availability_service.search_room_types(session, at(10), at(10, 30), capacity=10)
    assert [item["name"] for item in large] == ["Boardroom-12"]


async def test_room_type_slots_follow_opening_hours(session, catalog, booking_service, availability_service):
    await booking_service.create_booking(session, catalog.erin, catalog.huddle_id, at(10), at(10, 30))
    await booking_service.create_booking(session, catalog.alice, catalog.huddle_id, at(10, 15), at(10, 45))

    slots = await availability_service.room_type_slots(session, catalog.huddle_id, NOW.date())

    assert len(slots) == 6
    assert slots[0]["start_time"] == at(9).isoformat()
    assert slots[-1]["end_time"] == at(12).isoformat()
    by_start = {slot["start_time"]: slot["available_instances"] for slot in slots}
    assert by_start[at(9, 30).isoformat()] == 2
    assert by_start[at(10).isoformat()] == 0
    assert by_start[at(10, 30).isoformat()] == 1
    assert by_start[at(11).isoformat()] == 2

    with pytest.raises(RoomTypeNotFoundError):
        await availability_service.room_type_slots(session, 9999, NOW.date())

