from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.db.base import Base
from app.models import Location, Organization, RoomInstance, RoomType, User, UserRole
from app.services.booking_policy import BookingPolicy
from app.services.booking_service import BookingService
from app.services.identity import Requester
from app.services.notification_service import NotificationService
from app.stores.event_bus import EventBus

IST = timezone(timedelta(hours=5, minutes=30))
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=IST)


def at(hour: int, minute: int = 0, days: int = 0) -> datetime:
    """A wall-clock time on the test day, in the booking timezone."""

    return NOW.replace(hour=hour, minute=minute) + timedelta(days=days)


class FrozenClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(NotificationService):
    def __init__(self) -> None:
        super().__init__(bus=EventBus())
        self.events = []

    async def notify(self, event) -> None:  # type: ignore[override]
        self.events.append(event)
        await super().notify(event)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(session_factory):
    """Seed one location with three room types and a handful of accounts."""

    async with session_factory() as session:
        location = Location(name="Indiranagar", address="100 Feet Road")
        huddle = RoomType(
            name="Huddle-2",
            capacity=2,
            credits_per_booking=5,
            opens_at=time(9, 0),
            closes_at=time(12, 0),
        )
        huddle.instances.extend([RoomInstance(name="Huddle A"), RoomInstance(name="Huddle B")])
        meeting = RoomType(name="Meeting-6", capacity=6, credits_per_booking=12)
        meeting.instances.extend([RoomInstance(name="Orion"), RoomInstance(name="Lyra", is_active=False)])
        boardroom = RoomType(name="Boardroom-12", capacity=12, credits_per_booking=30)
        boardroom.instances.append(RoomInstance(name="Andromeda"))
        location.room_types.extend([huddle, meeting, boardroom])
        session.add(location)

        acme = Organization(name="Acme Labs", credits_pool=3)
        session.add(acme)
        await session.flush()

        alice = User(name="Alice", email="alice@example.com", role=UserRole.INDIVIDUAL_USER, individual_credits=10)
        erin = User(name="Erin", email="erin@example.com", role=UserRole.INDIVIDUAL_USER, individual_credits=100)
        bob = User(name="Bob", email="bob@acme.example", role=UserRole.ORG_USER, organization_id=acme.id)
        carol = User(
            name="Carol",
            email="carol@acme.example",
            role=UserRole.ORG_ADMIN,
            organization_id=acme.id,
            individual_credits=50,
        )
        admin = User(name="Ops", email="ops@example.com", role=UserRole.ADMIN)
        session.add_all([alice, erin, bob, carol, admin])
        await session.commit()

        return SimpleNamespace(
            location_id=location.id,
            huddle_id=huddle.id,
            huddle_instance_ids=[instance.id for instance in huddle.instances],
            meeting_id=meeting.id,
            meeting_instance_ids=[instance.id for instance in meeting.instances],
            boardroom_id=boardroom.id,
            boardroom_instance_id=boardroom.instances[0].id,
            acme_id=acme.id,
            alice=Requester(id=alice.id, role=UserRole.INDIVIDUAL_USER),
            erin=Requester(id=erin.id, role=UserRole.INDIVIDUAL_USER),
            bob=Requester(id=bob.id, role=UserRole.ORG_USER, organization_id=acme.id),
            carol=Requester(id=carol.id, role=UserRole.ORG_ADMIN, organization_id=acme.id),
            admin=Requester(id=admin.id, role=UserRole.ADMIN),
        )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def booking_service(clock, notifier) -> BookingService:
    return BookingService(policy=BookingPolicy(tz=IST), notifier=notifier, clock=clock)
