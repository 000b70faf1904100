# quest/models/daily_log.py
from datetime import datetime
from .. import db
from ..deeds import normalize_deeds
from . import BigId


class DailyLog(db.Model):
    __tablename__ = "daily_logs"
    __table_args__ = (
        db.UniqueConstraint("user_id", "log_date", name="uq_daily_log_user_day"),
    )

    id = db.Column(BigId, primary_key=True)
    user_id = db.Column(BigId, db.ForeignKey("users.id"), nullable=False, index=True)
    log_date = db.Column(db.Date, nullable=False)  # logical day, not UTC date
    deeds = db.Column(db.JSON, nullable=False, default=dict)
    points_earned = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    user = db.relationship("User", backref="daily_logs")

    def to_dict(self):
        return {
            "log_date": self.log_date.isoformat() if self.log_date else None,
            "deeds": normalize_deeds(self.deeds),
            "points_earned": self.points_earned or 0,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
