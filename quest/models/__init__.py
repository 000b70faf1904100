# quest/models/__init__.py
from .. import db

# BIGINT ids in MySQL; SQLite only autoincrements a plain INTEGER key
BigId = db.BigInteger().with_variant(db.Integer(), "sqlite")

from .user import User  # noqa: E402
from .daily_log import DailyLog  # noqa: E402
from .achievement import Achievement  # noqa: E402
from .social import Friendship  # noqa: E402
from .push_subscription import PushSubscription  # noqa: E402
from .reminder import ReminderSchedule  # noqa: E402

__all__ = [
    "BigId",
    "User",
    "DailyLog",
    "Achievement",
    "Friendship",
    "PushSubscription",
    "ReminderSchedule",
]
