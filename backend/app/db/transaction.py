from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit the session's transaction on success, roll it back on any error."""

    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
