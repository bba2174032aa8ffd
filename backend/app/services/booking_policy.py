from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Tuple

from app.services.errors import PolicyViolation
from app.utils.config import Settings, get_settings

INVALID_RANGE = "INVALID_RANGE"
PAST_TIME = "PAST_TIME"
TOO_FAR_AHEAD = "TOO_FAR_AHEAD"
COOLDOWN_CONFLICT = "COOLDOWN_CONFLICT"
TOO_LATE_TO_CANCEL = "TOO_LATE_TO_CANCEL"
QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

Interval = Tuple[datetime, datetime]


@dataclass(frozen=True)
class BookingPolicy:
    """Time rules for bookings. Pure: every check takes ``now`` explicitly."""

    max_booking_days_ahead: int = 3
    cooldown: timedelta = timedelta(minutes=30)
    cancellation_notice: timedelta = timedelta(minutes=15)
    max_cancellations_per_month: int = 5
    tz: timezone = field(default=timezone(timedelta(hours=5, minutes=30)))

    @classmethod
    def from_settings(cls, settings: Settings) -> "BookingPolicy":
        return cls(
            max_booking_days_ahead=settings.max_booking_days_ahead,
            cooldown=timedelta(minutes=settings.cooldown_window_minutes),
            cancellation_notice=timedelta(minutes=settings.cancellation_minutes_before),
            max_cancellations_per_month=settings.max_cancellations_per_month,
            tz=settings.booking_timezone,
        )

    def local(self, value: datetime) -> datetime:
        return value.astimezone(self.tz)

    def check_interval(self, start_time: datetime, end_time: datetime) -> None:
        if start_time >= end_time:
            raise PolicyViolation(INVALID_RANGE, "start_time must be before end_time.")

    def check_not_past(self, start_time: datetime, now: datetime) -> None:
        # Earlier days count as past too, not only earlier times today.
        if start_time < now:
            raise PolicyViolation(PAST_TIME, "Bookings cannot start in the past.")

    def check_advance_window(self, start_time: datetime, now: datetime) -> None:
        if start_time > now + timedelta(days=self.max_booking_days_ahead):
            raise PolicyViolation(
                TOO_FAR_AHEAD,
                f"Bookings can only be made up to {self.max_booking_days_ahead} days in advance.",
            )

    def validate_window(self, start_time: datetime, end_time: datetime, now: datetime) -> None:
        self.check_interval(start_time, end_time)
        self.check_not_past(start_time, now)
        self.check_advance_window(start_time, now)

    def cooldown_window(self, start_time: datetime, end_time: datetime) -> Interval:
        return start_time - self.cooldown, end_time + self.cooldown

    def check_cooldown(self, start_time: datetime, end_time: datetime, existing: Iterable[Interval]) -> None:
        """``existing`` holds the requester's other CONFIRMED booking intervals."""

        padded_start, padded_end = self.cooldown_window(start_time, end_time)
        for other_start, other_end in existing:
            if other_start < padded_end and other_end > padded_start:
                minutes = int(self.cooldown.total_seconds() // 60)
                raise PolicyViolation(
                    COOLDOWN_CONFLICT,
                    f"You have another booking within the {minutes}-minute cooldown period.",
                )

    def check_cancellation_deadline(self, start_time: datetime, now: datetime, action: str = "cancelled") -> None:
        if now > start_time - self.cancellation_notice:
            minutes = int(self.cancellation_notice.total_seconds() // 60)
            raise PolicyViolation(
                TOO_LATE_TO_CANCEL,
                f"Bookings must be {action} at least {minutes} minutes in advance.",
            )

    def month_bounds(self, now: datetime) -> Interval:
        """Start and end of the calendar month containing ``now``, in the booking timezone."""

        local_now = self.local(now)
        month_start = local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if month_start.month == 12:
            next_month = month_start.replace(year=month_start.year + 1, month=1)
        else:
            next_month = month_start.replace(month=month_start.month + 1)
        return month_start, next_month

    def check_cancellation_quota(self, cancellations_this_month: int) -> None:
        if cancellations_this_month >= self.max_cancellations_per_month:
            raise PolicyViolation(QUOTA_EXCEEDED, "You have reached your monthly cancellation limit.")


def get_booking_policy() -> BookingPolicy:
    return BookingPolicy.from_settings(get_settings())
