# quest/models/user.py
from datetime import datetime
from .. import db
from . import BigId


class User(db.Model):
    """Profile row mirrored from the auth provider; the JWT identity is ``id``."""
    __tablename__ = "users"

    id = db.Column(BigId, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    display_name = db.Column(db.String(100))
    avatar_url = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
        }
