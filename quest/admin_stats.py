# quest/admin_stats.py
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import func

from . import db
from .badges import STREAK_MILESTONES
from .day_boundary import app_today, as_date
from .models.achievement import Achievement
from .models.daily_log import DailyLog
from .models.push_subscription import PushSubscription
from .models.reminder import ReminderSchedule
from .models.user import User


def collect_stats(now: Optional[datetime] = None) -> Dict[str, object]:
    """
    Operator counters. "Today" is the current logical day; ``now`` (naive
    UTC) only decides which pending reminders are overdue.
    """
    now = now or datetime.utcnow()
    today = as_date(app_today())

    active_today, deeds_today = (
        db.session.query(
            func.count(func.distinct(DailyLog.user_id)),
            func.coalesce(func.sum(DailyLog.points_earned), 0),
        )
        .filter(DailyLog.log_date == today)
        .one()
    )

    pending = ReminderSchedule.query.filter(ReminderSchedule.notification_sent.is_(False))

    streak_types = [badge_type for _, badge_type in STREAK_MILESTONES]
    streak_rows = (
        db.session.query(Achievement.badge_type, func.count(Achievement.id))
        .filter(Achievement.badge_type.in_(streak_types))
        .group_by(Achievement.badge_type)
        .all()
    )
    by_streak = {badge_type: 0 for badge_type in streak_types}
    by_streak.update({badge_type: int(count) for badge_type, count in streak_rows})

    return {
        "today": today.isoformat(),
        "total_users": User.query.count(),
        "active_today": int(active_today or 0),
        "total_deeds_completed_today": int(deeds_today or 0),
        "pending_reminders": pending.count(),
        "delivered_reminders": ReminderSchedule.query.filter(
            ReminderSchedule.notification_sent.is_(True)
        ).count(),
        "overdue_reminders": pending.filter(ReminderSchedule.scheduled_for < now).count(),
        "push_subscriptions": PushSubscription.query.count(),
        "achievements_earned": Achievement.query.count(),
        "users_by_streak": by_streak,
    }
