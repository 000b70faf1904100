# quest/notifications.py
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError

from . import db
from .badges import badge_label
from .models.reminder import REMINDER_EVENING
from .models.social import Friendship
from .push import push_to_user, vapid_settings

logger = logging.getLogger(__name__)

APP_NAME = "Ramadan Quest"
DASHBOARD_URL = "/dashboard"

# NotificationOutcome.reason
NOT_ATTEMPTED = "not_attempted"
NO_BADGES = "no_badges"
PUSH_NOT_CONFIGURED = "push_not_configured"
NO_SUBSCRIPTIONS = "no_subscriptions"
DELIVERY_FAILED = "delivery_failed"
SENT = "sent"


@dataclass
class NotificationOutcome:
    sent: bool = False
    sent_count: int = 0
    subscription_count: int = 0
    reason: str = NOT_ATTEMPTED

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -----------------------------
# Messages
# -----------------------------
def achievement_message(badge_types: List[str]) -> Dict[str, str]:
    names = [badge_label(b) for b in badge_types]
    if len(badge_types) == 1:
        title = "🏅 New Achievement Unlocked!"
        body = f"You earned {names[0]}"
    else:
        title = f"🏅 {len(badge_types)} New Achievements!"
        body = "Unlocked: " + ", ".join(names[:2]) + ("..." if len(names) > 2 else "")
    return {
        "title": title,
        "body": body,
        "url": DASHBOARD_URL,
        "tag": "achievement-unlock",
    }


def reminder_message(reminder_type: str) -> Dict[str, str]:
    if reminder_type == REMINDER_EVENING:
        title = "🌙 Last Chance Tonight!"
        body = "Your streak resets in 3 hours. Complete your deeds now!"
    else:
        title = "⏰ Daily Reminder"
        body = "Keep your streak alive - check in to Ramadan Quest!"
    return {
        "title": title,
        "body": body,
        "url": DASHBOARD_URL,
        "tag": f"reminder-{reminder_type}",
    }


def nudge_message(text: str) -> Dict[str, str]:
    return {"title": APP_NAME, "body": text, "url": DASHBOARD_URL}


# -----------------------------
# Dispatch
# -----------------------------
def deliver(user_id: int, message: Dict[str, Any]) -> NotificationOutcome:
    """
    Push ``message`` to all of the user's devices.

    Missing VAPID keys and users without devices are ordinary outcomes,
    not errors; per-device failures are folded into the counts.
    """
    vapid = vapid_settings()
    if vapid is None:
        return NotificationOutcome(reason=PUSH_NOT_CONFIGURED)

    try:
        report = push_to_user(user_id, message, vapid)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("could not load push subscriptions for user=%s", user_id)
        return NotificationOutcome(reason=NO_SUBSCRIPTIONS)

    if report.subscription_count == 0:
        return NotificationOutcome(reason=NO_SUBSCRIPTIONS)

    return NotificationOutcome(
        sent=report.sent_count > 0,
        sent_count=report.sent_count,
        subscription_count=report.subscription_count,
        reason=SENT if report.sent_count > 0 else DELIVERY_FAILED,
    )


def notify_achievements(user_id: int, badge_types: List[str]) -> NotificationOutcome:
    if not badge_types:
        return NotificationOutcome(reason=NO_BADGES)
    return deliver(user_id, achievement_message(badge_types))


class NotFriendsError(Exception):
    pass


def nudge_friend(sender_id: int, target_id: int, text: str) -> NotificationOutcome:
    """Friend-to-friend reminder; only allowed between accepted friends."""
    if not Friendship.are_friends(sender_id, target_id):
        raise NotFriendsError(f"user {sender_id} may not notify user {target_id}")
    return deliver(target_id, nudge_message(text))
