# quest/routes/achievement_routes.py
from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from sqlalchemy.exc import SQLAlchemyError

from .. import db, limiter
from ..achievements import AchievementStoreError, achievement_stats, evaluate_achievements
from ..badges import BADGES, BADGE_TYPES
from ..daily_logs import load_history
from ..day_boundary import app_today
from ..models.achievement import Achievement
from ..models.user import User
from ..streaks import compute_streaks

achievements_bp = Blueprint("achievements", __name__)


@achievements_bp.route("", methods=["GET"])
@jwt_required()
def achievements_overview():
    """
    Returns:
    {
      "earned": [
        {
          "badge_type": "streak_3",
          "label": "3-Day Streak 🔥",
          "milestone_value": 3,
          "earned_at": "2026-02-21T10:05:00",
          "notified_at": null
        },
        ...
      ],
      "locked": [
        { "badge_type": "streak_30", "label": "30-Day Legend ⭐", "description": "..." },
        ...
      ],
      "stats": {
        "total_days_completed": 12,
        "avg_points_per_day": 8,
        "charity_count": 4,
        "quran_count": 11
      }
    }
    """
    user_id = int(get_jwt_identity())

    rows = (
        Achievement.query.filter(Achievement.user_id == user_id)
        .order_by(Achievement.earned_at.desc())
        .all()
    )
    earned = [row.to_dict() for row in rows]
    earned_types = {row.badge_type for row in rows}

    locked = [
        {
            "badge_type": badge_type,
            "label": BADGES[badge_type]["label"],
            "description": BADGES[badge_type]["description"],
        }
        for badge_type in BADGE_TYPES
        if badge_type not in earned_types
    ]

    return (
        jsonify(
            {
                "earned": earned,
                "locked": locked,
                "stats": achievement_stats(load_history(user_id)),
            }
        ),
        200,
    )


@achievements_bp.route("/award", methods=["POST"])
@limiter.limit("120 per minute")
@jwt_required()
def award():
    """
    Recompute streaks from the stored history and award whatever is due.
    Safe to call repeatedly; a second call with nothing new earns nothing.
    """
    user_id = int(get_jwt_identity())
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "user not found"}), 404

    try:
        history = load_history(user_id)
        streaks = compute_streaks(history, app_today())
        result = evaluate_achievements(
            user_id,
            daily_streak=streaks.daily_streak,
            perfect_streak=streaks.perfect_streak,
            history=history,
        )
    except (AchievementStoreError, SQLAlchemyError) as e:
        db.session.rollback()
        current_app.logger.warning(f"[achievements/award] user_id={user_id} store failure: {e}")
        return jsonify({"message": "Failed to evaluate achievements"}), 500

    current_app.logger.info(
        f"[achievements/award] user_id={user_id} earned={result.earned_badges} "
        f"notification={result.notification.reason}"
    )
    return jsonify({"ok": True, **result.to_dict()}), 200
