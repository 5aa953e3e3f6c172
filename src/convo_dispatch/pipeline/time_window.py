"""Local calendar-day window resolution."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from convo_dispatch.schemas import DayWindow


def resolve_day_window(timezone: str, now: datetime | None = None) -> DayWindow:
    """Return the inclusive bounds of the local day containing `now`.

    `end_sec` is the last second of the day (start of the next day minus one
    second). Millisecond bounds describe the same instants. Naive `now` values
    are treated as UTC.
    """

    zone = ZoneInfo(timezone)
    current = now or datetime.now(UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    local = current.astimezone(zone)

    start = datetime(local.year, local.month, local.day, tzinfo=zone)
    next_day = local.date() + timedelta(days=1)
    next_start = datetime(next_day.year, next_day.month, next_day.day, tzinfo=zone)

    start_sec = int(start.timestamp())
    end_sec = int(next_start.timestamp()) - 1
    return DayWindow(
        start_sec=start_sec,
        end_sec=end_sec,
        start_ms=start_sec * 1000,
        end_ms=end_sec * 1000,
        iso_date=start.date().isoformat(),
        timezone=timezone,
    )
