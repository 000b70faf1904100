# quest/routes/reminder_routes.py
import hmac
import re
from functools import wraps

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .. import db, limiter
from ..admin_stats import collect_stats
from ..reminders import ReminderError, cancel_reminder, pending_reminders, send_due_reminders, trigger_reminder
from . import json_object_body

reminders_bp = Blueprint("reminders", __name__)
admin_bp = Blueprint("admin", __name__)

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def admin_required(f):
    """Shared-secret check for cron and admin callers (X-Admin-Secret)."""
    @wraps(f)
    def decorated(*args, **kwargs):
        expected = current_app.config.get("ADMIN_SECRET")
        given = request.headers.get("X-Admin-Secret") or ""
        if not expected or not hmac.compare_digest(given, expected):
            return jsonify({"message": "Unauthorized"}), 401
        return f(*args, **kwargs)
    return decorated


def _reminder_id_from_body():
    data = json_object_body()
    if data is None:
        return None, (jsonify({"message": "JSON object body required"}), 400)
    reminder_id = data.get("reminder_id")
    if not reminder_id:
        return None, (jsonify({"message": "reminder_id required"}), 400)
    if not isinstance(reminder_id, str) or not UUID_RE.match(reminder_id):
        return None, (jsonify({"message": "Invalid reminder_id"}), 400)
    return reminder_id, None


# -----------------------------
# Cron
# -----------------------------
@reminders_bp.route("/send", methods=["POST"])
@admin_required
def send_reminders():
    try:
        summary = send_due_reminders()
    except ReminderError as e:
        current_app.logger.warning(f"[reminders/send] {e.message}")
        return jsonify({"message": e.message, "sent": 0}), e.status
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[reminders/send] {e}")
        return jsonify({"message": "Failed to send reminders", "sent": 0}), 500

    return jsonify({"ok": True, **summary}), 200


# -----------------------------
# Admin
# -----------------------------
@admin_bp.route("/reminders", methods=["GET"])
@limiter.limit("60 per minute")
@admin_required
def list_reminders():
    return jsonify({"reminders": [r.to_dict() for r in pending_reminders()]}), 200


@admin_bp.route("/stats", methods=["GET"])
@limiter.limit("60 per minute")
@admin_required
def stats():
    try:
        data = collect_stats()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[admin/stats] {e}")
        return jsonify({"message": "Failed to fetch admin statistics"}), 500

    return jsonify(data), 200


@admin_bp.route("/reminders/trigger", methods=["POST"])
@limiter.limit("20 per minute")
@admin_required
def trigger():
    reminder_id, error = _reminder_id_from_body()
    if error:
        return error

    try:
        outcome = trigger_reminder(reminder_id)
    except ReminderError as e:
        return jsonify({"message": e.message}), e.status

    return jsonify({"ok": True, "sent": outcome.sent_count, "message": "Reminder triggered manually"}), 200


@admin_bp.route("/reminders/cancel", methods=["DELETE"])
@limiter.limit("30 per minute")
@admin_required
def cancel():
    reminder_id, error = _reminder_id_from_body()
    if error:
        return error

    try:
        cancel_reminder(reminder_id)
    except ReminderError as e:
        return jsonify({"message": e.message}), e.status

    return jsonify({"ok": True, "message": "Reminder cancelled and deleted"}), 200
