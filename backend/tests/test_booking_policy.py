from datetime import datetime, timedelta, timezone

import pytest

from app.services.booking_policy import (
    COOLDOWN_CONFLICT,
    INVALID_RANGE,
    PAST_TIME,
    QUOTA_EXCEEDED,
    TOO_FAR_AHEAD,
    TOO_LATE_TO_CANCEL,
    BookingPolicy,
)
from app.services.errors import PolicyViolation
from app.utils.config import Settings, parse_utc_offset

from .conftest import IST, NOW, at

policy = BookingPolicy(tz=IST)


def _code(callable_, *args, **kwargs) -> str:
    with pytest.raises(PolicyViolation) as excinfo:
        callable_(*args, **kwargs)
    return excinfo.value.code


def test_rejects_empty_and_inverted_ranges():
    assert _code(policy.check_interval, at(10), at(10)) == INVALID_RANGE
    assert _code(policy.check_interval, at(11), at(10)) == INVALID_RANGE
    policy.check_interval(at(10), at(10, 30))


def test_past_start_rejected_even_on_earlier_days():
    assert _code(policy.check_not_past, at(8, 59), NOW) == PAST_TIME
    assert _code(policy.check_not_past, at(15, days=-1), NOW) == PAST_TIME
    policy.check_not_past(NOW, NOW)


def test_advance_window_is_inclusive():
    policy.check_advance_window(NOW + timedelta(days=3), NOW)
    assert _code(policy.check_advance_window, NOW + timedelta(days=3, minutes=1), NOW) == TOO_FAR_AHEAD


def test_validate_window_checks_range_first():
    assert _code(policy.validate_window, at(8), at(7), NOW) == INVALID_RANGE


def test_cooldown_blocks_bookings_closer_than_thirty_minutes():
    existing = [(at(10), at(10, 30))]
    assert _code(policy.check_cooldown, at(10, 15), at(10, 45), existing) == COOLDOWN_CONFLICT
    assert _code(policy.check_cooldown, at(10, 59), at(11, 30), existing) == COOLDOWN_CONFLICT
    assert _code(policy.check_cooldown, at(9), at(9, 31), existing) == COOLDOWN_CONFLICT


def test_cooldown_allows_exactly_thirty_minute_gap():
    existing = [(at(10), at(10, 30))]
    policy.check_cooldown(at(11), at(11, 30), existing)
    policy.check_cooldown(at(9), at(9, 30), existing)
    policy.check_cooldown(at(11), at(11, 30), [])


def test_cancellation_deadline_boundary():
    start = at(10)
    policy.check_cancellation_deadline(start, start - timedelta(minutes=15))
    assert _code(policy.check_cancellation_deadline, start, start - timedelta(minutes=14)) == TOO_LATE_TO_CANCEL


def test_deadline_message_names_the_action():
    with pytest.raises(PolicyViolation) as excinfo:
        policy.check_cancellation_deadline(at(10), at(9, 50), action="rescheduled")
    assert "rescheduled" in excinfo.value.message


def test_month_bounds_use_booking_timezone():
    # 20:00 UTC on the last day of March is already April in IST.
    now = datetime(2026, 3, 31, 20, 0, tzinfo=timezone.utc)
    start, end = policy.month_bounds(now)
    assert start == datetime(2026, 4, 1, tzinfo=IST)
    assert end == datetime(2026, 5, 1, tzinfo=IST)


def test_month_bounds_roll_over_december():
    start, end = policy.month_bounds(datetime(2026, 12, 15, 12, 0, tzinfo=IST))
    assert start == datetime(2026, 12, 1, tzinfo=IST)
    assert end == datetime(2027, 1, 1, tzinfo=IST)


def test_quota_allows_up_to_limit():
    policy.check_cancellation_quota(4)
    assert _code(policy.check_cancellation_quota, 5) == QUOTA_EXCEEDED


def test_policy_built_from_settings():
    settings = Settings(
        MAX_BOOKING_DAYS_AHEAD=7,
        COOLDOWN_WINDOW_MINUTES=10,
        CANCELLATION_MINUTES_BEFORE=60,
        MAX_CANCELLATIONS_PER_MONTH=2,
        BOOKING_TIMEZONE_OFFSET="-03:00",
    )
    configured = BookingPolicy.from_settings(settings)
    assert configured.max_booking_days_ahead == 7
    assert configured.cooldown == timedelta(minutes=10)
    assert configured.cancellation_notice == timedelta(hours=1)
    assert configured.max_cancellations_per_month == 2
    assert configured.tz == timezone(-timedelta(hours=3))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+05:30", timedelta(hours=5, minutes=30)),
        ("-03:00", -timedelta(hours=3)),
        ("Z", timedelta(0)),
        ("+0000", timedelta(0)),
    ],
)
def test_parse_utc_offset(raw, expected):
    assert parse_utc_offset(raw) == timezone(expected)


def test_parse_utc_offset_rejects_garbage():
    with pytest.raises(ValueError):
        parse_utc_offset("IST")
