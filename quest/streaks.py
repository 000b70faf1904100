# quest/streaks.py
"""
Streak counters over a user's daily logs.

Records only need ``log_date`` (date or ISO string), ``points_earned`` and
``deeds`` attributes, so both ``DailyLog`` rows and plain objects work.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from .day_boundary import DayLike, as_date, previous_day
from .deeds import CATEGORIES, TOTAL_DEEDS, is_category_complete


def _zero_categories() -> Dict[str, int]:
    return {cat: 0 for cat in CATEGORIES}


@dataclass
class StreakCounters:
    daily_streak: int = 0
    perfect_streak: int = 0
    category_streaks: Dict[str, int] = field(default_factory=_zero_categories)
    total_points: int = 0

    def to_dict(self) -> dict:
        data = {
            "daily_streak": self.daily_streak,
            "perfect_streak": self.perfect_streak,
            "total_points": self.total_points,
        }
        for cat, value in self.category_streaks.items():
            data[f"{cat}_streak"] = value
        return data


@dataclass
class LifetimeMilestones:
    max_daily_streak: int = 0
    has_perfect_day: bool = False

    def to_dict(self) -> dict:
        return {
            "max_daily_streak": self.max_daily_streak,
            "has_perfect_day": self.has_perfect_day,
        }


def _points(record) -> int:
    return int(getattr(record, "points_earned", 0) or 0)


def dedupe_by_day(records: Iterable) -> Dict[date, object]:
    """One record per logical day; the first one seen wins."""
    by_day: Dict[date, object] = {}
    for record in records:
        day = as_date(record.log_date)
        if day not in by_day:
            by_day[day] = record
    return by_day


def compute_streaks(records: Iterable, today: DayLike) -> StreakCounters:
    """
    Walk backwards from today (or yesterday, if nothing is logged yet today)
    and count consecutive days for every streak at once.

    The daily streak ends the walk on the first zero-point day or gap. The
    perfect and category streaks only stop counting; the walk goes on for
    the others.
    """
    today = as_date(today)
    by_day = dedupe_by_day(records)
    # rows dated after today (clock skew, bad writes) take no part
    days: List[date] = sorted((d for d in by_day if d <= today), reverse=True)

    # a 0-point row for today is just the placeholder created on first load
    if days and days[0] == today and _points(by_day[days[0]]) == 0:
        days = days[1:]

    result = StreakCounters()
    if not days:
        return result

    if days[0] == today:
        expected = today
    elif days[0] == as_date(previous_day(today)):
        expected = days[0]
    else:
        return result

    perfect_active = True
    category_active = {cat: True for cat in CATEGORIES}

    for day in days:
        if day < expected:
            break

        record = by_day[day]
        points = _points(record)
        result.total_points += points

        if points <= 0:
            break
        result.daily_streak += 1

        if perfect_active:
            if points == TOTAL_DEEDS:
                result.perfect_streak += 1
            else:
                perfect_active = False

        deeds = getattr(record, "deeds", None) or {}
        for cat in CATEGORIES:
            if not category_active[cat]:
                continue
            if is_category_complete(deeds, cat):
                result.category_streaks[cat] += 1
            else:
                category_active[cat] = False

        expected -= timedelta(days=1)

    return result


def scan_lifetime(records: Iterable) -> LifetimeMilestones:
    """Best run of active days anywhere in history, plus any perfect day."""
    by_day = dedupe_by_day(records)

    best = 0
    current = 0
    previous_active: Optional[date] = None
    has_perfect = False

    for day in sorted(by_day):
        points = _points(by_day[day])
        if points >= TOTAL_DEEDS:
            has_perfect = True

        if points <= 0:
            current = 0
            previous_active = None
            continue

        if previous_active is not None and (day - previous_active).days == 1:
            current += 1
        else:
            current = 1

        previous_active = day
        best = max(best, current)

    return LifetimeMilestones(max_daily_streak=best, has_perfect_day=has_perfect)


def count_deed(records: Iterable, deed_key: str) -> int:
    """Number of distinct days on which ``deed_key`` was ticked."""
    return sum(
        1
        for record in dedupe_by_day(records).values()
        if (getattr(record, "deeds", None) or {}).get(deed_key)
    )
