# quest/day_boundary.py
"""
Logical day resolution.

The app runs on a fixed-offset calendar (GMT+1) and a "day" starts at
03:30 local time, not at midnight:

    23:50 on Feb 18  -> 2026-02-18
    02:00 on Feb 19  -> 2026-02-18 (still yesterday)
    03:30 on Feb 19  -> 2026-02-19 (new day)

Everything here takes ``now`` explicitly; ``app_today`` is the only place
that reads the clock and the Flask config.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union

from flask import current_app

DEFAULT_UTC_OFFSET_HOURS = 1
DEFAULT_RESET_TIME = time(3, 30)

DayLike = Union[str, date]


def parse_reset_time(value: Union[str, time]) -> time:
    """'03:30' -> time(3, 30)."""
    if isinstance(value, time):
        return value
    hours, _, minutes = str(value).strip().partition(":")
    return time(int(hours), int(minutes or 0))


def as_date(day: DayLike) -> date:
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    return date.fromisoformat(str(day))


def logical_day(
    now: Optional[datetime] = None,
    utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS,
    reset_at: Union[str, time] = DEFAULT_RESET_TIME,
) -> str:
    """
    Return the logical day (YYYY-MM-DD) that ``now`` falls in.

    Naive datetimes are taken as UTC. The reset instant itself already
    belongs to the new day.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local = now.astimezone(timezone(timedelta(hours=utc_offset_hours)))
    day = local.date()
    if local.time() < parse_reset_time(reset_at):
        day -= timedelta(days=1)
    return day.isoformat()


def previous_day(day: DayLike) -> str:
    return (as_date(day) - timedelta(days=1)).isoformat()


def day_window(
    day: DayLike,
    utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS,
    reset_at: Union[str, time] = DEFAULT_RESET_TIME,
) -> Tuple[datetime, datetime]:
    """UTC [start, end) of a logical day."""
    tz = timezone(timedelta(hours=utc_offset_hours))
    start = datetime.combine(as_date(day), parse_reset_time(reset_at), tzinfo=tz)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def app_today(now: Optional[datetime] = None) -> str:
    cfg = current_app.config
    return logical_day(
        now,
        utc_offset_hours=cfg.get("DAY_UTC_OFFSET_HOURS", DEFAULT_UTC_OFFSET_HOURS),
        reset_at=cfg.get("DAY_RESET_TIME", DEFAULT_RESET_TIME),
    )


def app_day_window(day: DayLike) -> Tuple[datetime, datetime]:
    cfg = current_app.config
    return day_window(
        day,
        utc_offset_hours=cfg.get("DAY_UTC_OFFSET_HOURS", DEFAULT_UTC_OFFSET_HOURS),
        reset_at=cfg.get("DAY_RESET_TIME", DEFAULT_RESET_TIME),
    )
