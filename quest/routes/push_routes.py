# quest/routes/push_routes.py
from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import get_jwt_identity, jwt_required
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .. import db, limiter
from ..models.push_subscription import PushSubscription
from ..notifications import NotFriendsError, nudge_friend
from ..push import vapid_settings
from . import json_object_body

push_bp = Blueprint("push", __name__)

MAX_MESSAGE_LENGTH = 200


def _text(v) -> str:
    return v.strip() if isinstance(v, str) else ""


@push_bp.route("/public-key", methods=["GET"])
@limiter.limit("120 per minute")
def public_key():
    key = (current_app.config.get("VAPID_PUBLIC_KEY") or "").strip()
    if not key:
        return jsonify({"message": "VAPID public key is missing"}), 500
    return jsonify({"public_key": key}), 200


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

@push_bp.route("/subscriptions", methods=["POST"])
@jwt_required()
def subscribe():
    """
    Body (what PushManager.subscribe() hands the browser):
    {
      "endpoint": "https://fcm.googleapis.com/...",
      "keys": { "p256dh": "...", "auth": "..." }
    }
    """
    user_id = int(get_jwt_identity())
    data = json_object_body()
    if data is None:
        return jsonify({"message": "JSON object body required"}), 400

    endpoint = _text(data.get("endpoint"))
    keys = data.get("keys") or {}
    p256dh = _text(keys.get("p256dh")) if isinstance(keys, dict) else ""
    auth = _text(keys.get("auth")) if isinstance(keys, dict) else ""

    if not endpoint.startswith("https://") or not p256dh or not auth:
        return jsonify({"message": "endpoint, keys.p256dh and keys.auth are required"}), 400

    try:
        sub = PushSubscription.query.filter_by(endpoint=endpoint).first()
        created = sub is None
        if created:
            sub = PushSubscription(endpoint=endpoint)
            db.session.add(sub)

        # a device that changes hands moves to the new user
        sub.user_id = user_id
        sub.p256dh = p256dh
        sub.auth = auth
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"message": "subscription already registered, retry"}), 409
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[push/subscribe] user_id={user_id}: {e}")
        return jsonify({"message": "Failed to save subscription"}), 500

    return jsonify({"ok": True, "id": sub.id}), 201 if created else 200


@push_bp.route("/subscriptions", methods=["DELETE"])
@jwt_required()
def unsubscribe():
    user_id = int(get_jwt_identity())
    data = json_object_body()
    if data is None:
        return jsonify({"message": "JSON object body required"}), 400

    endpoint = _text(data.get("endpoint"))
    if not endpoint:
        return jsonify({"message": "endpoint is required"}), 400

    try:
        deleted = PushSubscription.query.filter_by(
            user_id=user_id, endpoint=endpoint
        ).delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[push/unsubscribe] user_id={user_id}: {e}")
        return jsonify({"message": "Failed to remove subscription"}), 500

    return jsonify({"ok": True, "deleted": deleted}), 200


# ---------------------------------------------------------------------------
# Friend nudge
# ---------------------------------------------------------------------------

@push_bp.route("/send", methods=["POST"])
@limiter.limit("30 per minute")
@jwt_required()
def send_to_friend():
    """
    Body:
    {
      "to_user_id": 2,
      "message": "Don't break the streak!"
    }
    """
    sender_id = int(get_jwt_identity())
    data = json_object_body()
    if data is None:
        return jsonify({"message": "JSON object body required"}), 400

    message = _text(data.get("message"))
    try:
        target_id = int(data.get("to_user_id"))
    except (TypeError, ValueError):
        target_id = None

    if not target_id or not message:
        return jsonify({"message": "to_user_id and message are required"}), 400

    if vapid_settings() is None:
        return jsonify({"message": "Push is not configured on server"}), 500

    try:
        outcome = nudge_friend(sender_id, target_id, message[:MAX_MESSAGE_LENGTH])
    except NotFriendsError:
        return jsonify({"message": "Not allowed to notify this user"}), 403

    return jsonify({"ok": True, "sent": outcome.sent_count, "reason": outcome.reason}), 200
