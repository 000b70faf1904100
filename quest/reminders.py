# quest/reminders.py
"""
Streak reminders.

Reminder rows are scheduled elsewhere (cron / admin). Due rows are sent
once per user per run, the evening "last chance" wording wins over the
hourly one, and every selected row is marked sent afterwards.
"""
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional

from . import db
from .models.reminder import REMINDER_EVENING, REMINDER_HOURLY, ReminderSchedule
from .notifications import NotificationOutcome, deliver, reminder_message
from .push import vapid_settings

logger = logging.getLogger(__name__)


class ReminderError(Exception):
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


def pending_reminders(limit: int = 100) -> List[ReminderSchedule]:
    return (
        ReminderSchedule.query.filter(ReminderSchedule.notification_sent.is_(False))
        .order_by(ReminderSchedule.scheduled_for.asc())
        .limit(limit)
        .all()
    )


def _mark_sent(reminders: List[ReminderSchedule], now: datetime) -> None:
    for reminder in reminders:
        reminder.notification_sent = True
        reminder.sent_at = now
    db.session.commit()


def send_due_reminders(now: Optional[datetime] = None, limit: int = 100) -> Dict[str, int]:
    """
    Raises ReminderError (500) without touching any row when push is not
    configured, so the batch stays due for the next run.
    """
    if vapid_settings() is None:
        raise ReminderError("Push is not configured on server", 500)

    now = now or datetime.utcnow()
    due = (
        ReminderSchedule.query.filter(
            ReminderSchedule.notification_sent.is_(False),
            ReminderSchedule.scheduled_for <= now,
        )
        .order_by(ReminderSchedule.scheduled_for.asc())
        .limit(limit)
        .all()
    )
    if not due:
        return {"sent": 0, "users": 0, "reminders": 0}

    by_user: "OrderedDict[int, List[ReminderSchedule]]" = OrderedDict()
    for reminder in due:
        by_user.setdefault(reminder.user_id, []).append(reminder)

    sent = 0
    for user_id, reminders in by_user.items():
        if any(r.reminder_type == REMINDER_EVENING for r in reminders):
            reminder_type = REMINDER_EVENING
        else:
            reminder_type = REMINDER_HOURLY
        outcome = deliver(user_id, reminder_message(reminder_type))
        sent += outcome.sent_count

    _mark_sent(due, now)
    logger.info("reminders: %d due, %d users, %d pushes sent", len(due), len(by_user), sent)
    return {"sent": sent, "users": len(by_user), "reminders": len(due)}


def trigger_reminder(reminder_id: str) -> NotificationOutcome:
    reminder = db.session.get(ReminderSchedule, reminder_id)
    if reminder is None:
        raise ReminderError("Reminder not found", 404)
    if reminder.notification_sent:
        raise ReminderError("Reminder already sent", 409)

    outcome = deliver(reminder.user_id, reminder_message(reminder.reminder_type))
    if outcome.subscription_count == 0:
        raise ReminderError(f"Cannot send reminder: {outcome.reason}", 400)

    _mark_sent([reminder], datetime.utcnow())
    return outcome


def cancel_reminder(reminder_id: str) -> None:
    reminder = db.session.get(ReminderSchedule, reminder_id)
    if reminder is None:
        raise ReminderError("Reminder not found", 404)
    db.session.delete(reminder)
    db.session.commit()
