from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.utils.config import Settings, get_settings


def build_engine(settings: Settings) -> AsyncEngine:
    options: Dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
    if settings.database_url.startswith("postgresql"):
        # Each booking request holds row locks until it commits.
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
    return create_async_engine(settings.database_url, **options)


engine = build_engine(get_settings())

async_session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    """One session per request. Services decide where its transactions begin and end."""

    async with async_session_factory() as session:
        yield session
