# quest/models/achievement.py
from datetime import datetime
from .. import db
from ..badges import BADGE_TYPES, badge_label
from . import BigId


class Achievement(db.Model):
    """One earned badge. (user_id, badge_type) is unique; rows are never revoked."""
    __tablename__ = "achievements"
    __table_args__ = (
        db.UniqueConstraint("user_id", "badge_type", name="uq_achievement_user_badge"),
    )

    id = db.Column(BigId, primary_key=True)
    user_id = db.Column(BigId, db.ForeignKey("users.id"), nullable=False, index=True)
    badge_type = db.Column(db.Enum(*BADGE_TYPES, name="badge_type"), nullable=False)
    milestone_value = db.Column(db.Integer)
    earned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    notified_at = db.Column(db.DateTime)

    user = db.relationship("User", backref="achievements")

    def to_dict(self):
        return {
            "badge_type": self.badge_type,
            "label": badge_label(self.badge_type),
            "milestone_value": self.milestone_value,
            "earned_at": self.earned_at.isoformat() if self.earned_at else None,
            "notified_at": self.notified_at.isoformat() if self.notified_at else None,
        }
