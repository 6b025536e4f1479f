"""
Fixed-time run policy in Mountain time.

News and events run daily at 06:00 local, businesses on Mondays at 06:00.
DST is classified with the approximate North American rule on UTC instants
so the policy does not need a timezone database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

RUN_HOUR_LOCAL = 6
MDT_OFFSET_HOURS = 6  # UTC-6 in daylight time
MST_OFFSET_HOURS = 7  # UTC-7 in standard time
MONDAY = 0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _nth_sunday(year: int, month: int, n: int, hour: int) -> datetime:
    first = datetime(year, month, 1, hour, tzinfo=timezone.utc)
    to_sunday = (6 - first.weekday()) % 7
    return first + timedelta(days=to_sunday + 7 * (n - 1))


def dst_window(year: int) -> Tuple[datetime, datetime]:
    """Second Sunday of March 09:00 UTC to first Sunday of November 08:00 UTC."""
    return _nth_sunday(year, 3, 2, 9), _nth_sunday(year, 11, 1, 8)


def is_mountain_dst(instant: datetime) -> bool:
    instant = _as_utc(instant)
    start, end = dst_window(instant.year)
    return start <= instant < end


def next_daily_six_am_mountain(now: datetime) -> datetime:
    """Next 06:00 Mountain strictly after *now*, as an aware UTC datetime."""
    now = _as_utc(now)
    offset = MDT_OFFSET_HOURS if is_mountain_dst(now) else MST_OFFSET_HOURS
    target = now.replace(hour=RUN_HOUR_LOCAL + offset, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target


def next_weekly_monday_six_am_mountain(now: datetime) -> datetime:
    target = next_daily_six_am_mountain(now)
    while target.weekday() != MONDAY:
        target += timedelta(days=1)
    return target


def compute_next_scheduled_run(type_: str, now: datetime, enabled: bool) -> Optional[datetime]:
    if not enabled:
        return None
    if type_ in ("news", "events"):
        return next_daily_six_am_mountain(now)
    if type_ == "businesses":
        return next_weekly_monday_six_am_mountain(now)
    raise ValueError(f"Unknown scraper type: {type_!r}")


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'}"


def format_countdown(target: datetime, now: datetime) -> str:
    """Largest whole unit until *target*: ``"2 days"``, ``"1 hour"``, ``"14 minutes"`` or ``"Due"``."""
    diff = _as_utc(target) - _as_utc(now)
    if diff <= timedelta(0):
        return "Due"
    minutes = int(diff.total_seconds() // 60)
    days = minutes // (60 * 24)
    if days > 0:
        return _plural(days, "day")
    hours = minutes // 60
    if hours > 0:
        return _plural(hours, "hour")
    return _plural(minutes, "minute")


def hours_since(last: Optional[datetime], now: datetime) -> Optional[float]:
    if last is None:
        return None
    return (_as_utc(now) - _as_utc(last)).total_seconds() / 3600


def should_skip(
    type_: str,
    last_success: Optional[datetime],
    interval_hours: float,
    now: datetime,
    *,
    force: bool = False,
) -> Optional[str]:
    """Skip message when the last successful run is younger than the interval, else ``None``."""
    if force:
        return None
    elapsed = hours_since(last_success, now)
    if elapsed is None or elapsed >= interval_hours:
        return None
    return f"Skipped {type_} scraping - last run was {elapsed:.1f} hours ago"
