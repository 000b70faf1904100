# quest/daily_logs.py
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from . import db
from .day_boundary import DayLike, as_date
from .deeds import count_completed, is_deed_key, normalize_deeds
from .models.daily_log import DailyLog

DEFAULT_HISTORY_WINDOW = 400


def load_history(user_id: int, limit: Optional[int] = None) -> List[DailyLog]:
    """Most recent logs first, bounded to the configured window."""
    if limit is None:
        limit = current_app.config.get("HISTORY_WINDOW", DEFAULT_HISTORY_WINDOW)
    return (
        DailyLog.query.filter_by(user_id=user_id)
        .order_by(DailyLog.log_date.desc())
        .limit(limit)
        .all()
    )


def get_log(user_id: int, day: DayLike) -> Optional[DailyLog]:
    return DailyLog.query.filter_by(user_id=user_id, log_date=as_date(day)).first()


def set_deed(user_id: int, day: DayLike, deed_key: str, done: Optional[bool] = None) -> DailyLog:
    """
    Upsert the (user, day) log with one deed set (or toggled when ``done``
    is None). ``points_earned`` is recomputed from the deeds map on every
    write.
    """
    if not is_deed_key(deed_key):
        raise ValueError(f"unknown deed: {deed_key}")

    log_date = as_date(day)

    # second pass only if a concurrent request inserted the same day first
    for attempt in range(2):
        log = get_log(user_id, log_date)
        if log is None:
            log = DailyLog(user_id=user_id, log_date=log_date, deeds=normalize_deeds({}))
            db.session.add(log)

        deeds = normalize_deeds(log.deeds)
        deeds[deed_key] = (not deeds[deed_key]) if done is None else bool(done)
        # new dict so the JSON column change is picked up
        log.deeds = deeds
        log.points_earned = count_completed(deeds)

        try:
            db.session.commit()
            return log
        except IntegrityError:
            db.session.rollback()
            if attempt:
                raise

    return log
