# quest/routes/log_routes.py

from typing import Any

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..achievements import AchievementStoreError, evaluate_achievements
from ..daily_logs import get_log, load_history, set_deed
from ..day_boundary import app_today
from ..deeds import TOTAL_DEEDS, is_deed_key, normalize_deeds
from ..models.user import User
from ..streaks import compute_streaks
from . import json_object_body

logs_bp = Blueprint("logs", __name__)

MAX_HISTORY = 400


# ------------------------------
# Helpers
# ------------------------------
def _safe_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return default


def _empty_log(today: str) -> dict:
    return {
        "log_date": today,
        "deeds": normalize_deeds({}),
        "points_earned": 0,
        "updated_at": None,
    }


# ------------------------------
# GET /api/logs/today
# ------------------------------
@logs_bp.route("/today", methods=["GET"])
@jwt_required()
def today_log():
    user_id = int(get_jwt_identity())
    today = app_today()

    log = get_log(user_id, today)
    return jsonify(
        {
            "today": today,
            "total_deeds": TOTAL_DEEDS,
            "log": log.to_dict() if log else _empty_log(today),
        }
    ), 200


# ------------------------------
# PUT /api/logs/today/deeds/<deed_key>
# body: { "done": true }   (omit "done" to toggle)
# ------------------------------
@logs_bp.route("/today/deeds/<deed_key>", methods=["PUT"])
@jwt_required()
def update_deed(deed_key):
    user_id = int(get_jwt_identity())
    data = json_object_body()
    if data is None:
        return jsonify({"message": "JSON object body required"}), 400

    if not is_deed_key(deed_key):
        return jsonify({"message": f"unknown deed '{deed_key}'"}), 400

    done = data.get("done")
    if done is not None and not isinstance(done, bool):
        return jsonify({"message": "done must be a boolean"}), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "user not found"}), 404

    # only the current logical day is ever written
    today = app_today()

    try:
        log = set_deed(user_id, today, deed_key, done)
        history = load_history(user_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"[logs] deed update failed user_id={user_id}: {e}")
        return jsonify({"message": "Failed to update log"}), 500

    streaks = compute_streaks(history, today)

    try:
        evaluation = evaluate_achievements(
            user_id,
            daily_streak=streaks.daily_streak,
            perfect_streak=streaks.perfect_streak,
            history=history,
        ).to_dict()
    except AchievementStoreError as e:
        # the log itself is saved; badges catch up on the next write or /award
        current_app.logger.warning(f"[logs] achievement evaluation skipped user_id={user_id}: {e}")
        evaluation = None

    return jsonify(
        {
            "today": today,
            "log": log.to_dict(),
            "streaks": streaks.to_dict(),
            "achievements": evaluation,
        }
    ), 200


# ------------------------------
# GET /api/logs/history?limit=30
# ------------------------------
@logs_bp.route("/history", methods=["GET"])
@jwt_required()
def history():
    user_id = int(get_jwt_identity())
    limit = _safe_int(request.args.get("limit"), 30)
    limit = max(1, min(limit, MAX_HISTORY))

    rows = load_history(user_id, limit=limit)
    return jsonify({"logs": [row.to_dict() for row in rows]}), 200
