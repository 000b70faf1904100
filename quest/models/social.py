# quest/models/social.py
from datetime import datetime
from sqlalchemy import and_, or_
from .. import db
from . import BigId


# -----------------------------
# Friendships
# -----------------------------
class Friendship(db.Model):
    """Friend requests. Managed by the social screens; read-only here."""
    __tablename__ = "friendships"

    id = db.Column(BigId, primary_key=True)
    requester_id = db.Column(BigId, db.ForeignKey("users.id"), nullable=False)
    addressee_id = db.Column(BigId, db.ForeignKey("users.id"), nullable=False)
    status = db.Column(
        db.Enum("pending", "accepted", "blocked", name="friendship_status"),
        nullable=False,
        default="pending",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    requester = db.relationship(
        "User", foreign_keys=[requester_id], backref="sent_friendships"
    )
    addressee = db.relationship(
        "User", foreign_keys=[addressee_id], backref="received_friendships"
    )

    @classmethod
    def accepted_count(cls, user_id: int) -> int:
        return cls.query.filter(
            cls.status == "accepted",
            or_(cls.requester_id == user_id, cls.addressee_id == user_id),
        ).count()

    @classmethod
    def are_friends(cls, user_a: int, user_b: int) -> bool:
        return (
            cls.query.filter(
                cls.status == "accepted",
                or_(
                    and_(cls.requester_id == user_a, cls.addressee_id == user_b),
                    and_(cls.requester_id == user_b, cls.addressee_id == user_a),
                ),
            ).first()
            is not None
        )
