# quest/models/reminder.py
import uuid
from datetime import datetime
from .. import db
from . import BigId

REMINDER_HOURLY = "hourly"
REMINDER_EVENING = "evening_last_chance"


class ReminderSchedule(db.Model):
    __tablename__ = "reminder_schedules"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(BigId, db.ForeignKey("users.id"), nullable=False, index=True)
    reminder_type = db.Column(
        db.Enum(REMINDER_HOURLY, REMINDER_EVENING, name="reminder_type"),
        nullable=False,
        default=REMINDER_HOURLY,
    )
    scheduled_for = db.Column(db.DateTime, nullable=False)  # naive UTC
    notification_sent = db.Column(db.Boolean, nullable=False, default=False)
    sent_at = db.Column(db.DateTime)

    user = db.relationship("User", backref="reminders")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "reminder_type": self.reminder_type,
            "scheduled_for": self.scheduled_for.isoformat() if self.scheduled_for else None,
            "notification_sent": bool(self.notification_sent),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }
