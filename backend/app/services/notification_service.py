from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from app.models import Booking
from app.stores.event_bus import EventBus, event_bus
from app.utils.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class BookingEvent:
    type: str  # booking.created | booking.cancelled | booking.rescheduled | invitation.sent
    booking_id: int
    requester_id: int
    room_type_id: Optional[int]
    room_instance_id: Optional[int]
    start_time: str
    end_time: str
    recipients: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_booking(
        cls,
        event_type: str,
        booking: Booking,
        recipients: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "BookingEvent":
        instance = booking.room_instance
        return cls(
            type=event_type,
            booking_id=booking.id,
            requester_id=booking.user_id,
            room_type_id=instance.room_type_id if instance else None,
            room_instance_id=booking.room_instance_id,
            start_time=booking.start_time.isoformat(),
            end_time=booking.end_time.isoformat(),
            recipients=list(recipients or []),
            details=dict(details or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class NotificationService:
    """Best-effort fan-out of booking events. Never raises into the caller.

    The requester's live stream gets every event; guests are reached through the
    webhook, whose payload lists them in ``recipients``.
    """

    def __init__(
        self,
        bus: EventBus | None = None,
        webhook_url: str | None = None,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.bus = bus or event_bus
        self.webhook_url = webhook_url
        self.timeout_seconds = timeout_seconds
        self._tasks: set[asyncio.Task[None]] = set()

    async def notify(self, event: BookingEvent) -> None:
        payload = event.to_dict()
        try:
            await self.bus.publish(f"user:{event.requester_id}", payload)
        except Exception:
            logger.exception("Notification publish failed", extra={"booking_id": event.booking_id})

        if self.webhook_url:
            task = asyncio.create_task(self._deliver(payload))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _deliver(self, payload: Dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(
                "Notification webhook failed",
                extra={"booking_id": payload.get("booking_id"), "error": str(exc)},
            )


_notification_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    global _notification_service
    if not _notification_service:
        settings = get_settings()
        _notification_service = NotificationService(
            webhook_url=settings.notification_webhook_url,
            timeout_seconds=settings.notification_timeout_seconds,
        )
    return _notification_service
