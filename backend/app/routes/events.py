from __future__ import annotations

import json
from typing import AsyncGenerator

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from app.services.identity import Requester, get_current_requester
from app.stores.event_bus import event_bus

router = APIRouter(prefix="/events", tags=["events"])


async def _event_stream(channel: str) -> AsyncGenerator[str, None]:
    yield json.dumps({"type": "status", "status": "listening", "channel": channel})
    async for event in event_bus.stream(channel):
        yield json.dumps(event, default=str)


@router.get("/stream")
async def listen(requester: Requester = Depends(get_current_requester)) -> EventSourceResponse:
    """Stream the requester's booking notifications as server-sent events."""

    return EventSourceResponse(_event_stream(f"user:{requester.id}"), ping=15)
