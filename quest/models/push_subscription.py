# quest/models/push_subscription.py
from datetime import datetime
from .. import db
from . import BigId


class PushSubscription(db.Model):
    __tablename__ = "push_subscriptions"

    id = db.Column(BigId, primary_key=True)
    user_id = db.Column(BigId, db.ForeignKey("users.id"), nullable=False, index=True)
    endpoint = db.Column(db.String(1024), unique=True, nullable=False)
    p256dh = db.Column(db.String(255), nullable=False)
    auth = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    user = db.relationship("User", backref="push_subscriptions")

    def subscription_info(self):
        """Shape expected by the Web Push encoder."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }
