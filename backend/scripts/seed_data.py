from __future__ import annotations

import asyncio
import logging
from datetime import time
from typing import Any, Dict

from sqlalchemy import select

from app.data.catalog_loader import catalog_path, load_catalog
from app.db.database import async_session_factory
from app.db.transaction import atomic
from app.models import Location, Organization, RoomInstance, RoomType, User, UserRole

logger = logging.getLogger(__name__)


def _build_room_type(payload: Dict[str, Any]) -> RoomType:
    room_type = RoomType(
        name=payload["name"],
        capacity=int(payload["capacity"]),
        credits_per_booking=int(payload["credits_per_booking"]),
        amenities=payload.get("amenities", []),
        opens_at=time.fromisoformat(payload.get("opens_at", "09:00")),
        closes_at=time.fromisoformat(payload.get("closes_at", "18:00")),
    )
    for instance_name in payload.get("instances", []):
        room_type.instances.append(RoomInstance(name=instance_name, is_active=True))
    return room_type


async def _user_exists(session, email: str) -> bool:
    return (await session.execute(select(User.id).where(User.email == email))).first() is not None


async def seed() -> None:
    path = catalog_path()
    if not path.exists():
        raise FileNotFoundError(f"Seed data file not found: {path}")
    payload = load_catalog(path)

    async with async_session_factory() as session:
        async with atomic(session):
            for location_payload in payload.get("locations", []):
                existing = await session.execute(select(Location).where(Location.name == location_payload["name"]))
                if existing.scalar_one_or_none():
                    continue
                location = Location(name=location_payload["name"], address=location_payload.get("address"))
                for room_type_payload in location_payload.get("room_types", []):
                    location.room_types.append(_build_room_type(room_type_payload))
                session.add(location)

            for org_payload in payload.get("organizations", []):
                organization = (
                    await session.execute(select(Organization).where(Organization.name == org_payload["name"]))
                ).scalar_one_or_none()
                if organization is None:
                    organization = Organization(name=org_payload["name"], credits_pool=int(org_payload.get("credits_pool", 0)))
                    session.add(organization)
                    await session.flush()
                for user_payload in org_payload.get("users", []):
                    if await _user_exists(session, user_payload["email"]):
                        continue
                    session.add(
                        User(
                            name=user_payload.get("name"),
                            email=user_payload["email"],
                            role=UserRole(user_payload.get("role", UserRole.ORG_USER.value)),
                            organization_id=organization.id,
                            individual_credits=int(user_payload.get("individual_credits", 0)),
                        )
                    )

            for user_payload in payload.get("users", []):
                if await _user_exists(session, user_payload["email"]):
                    continue
                session.add(
                    User(
                        name=user_payload.get("name"),
                        email=user_payload["email"],
                        role=UserRole(user_payload.get("role", UserRole.INDIVIDUAL_USER.value)),
                        individual_credits=int(user_payload.get("individual_credits", 0)),
                    )
                )

    logger.info("Seed data loaded", extra={"path": str(path)})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())
