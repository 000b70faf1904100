# quest/routes/dashboard_routes.py
from datetime import timedelta

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity

from .. import db
from ..daily_logs import load_history
from ..day_boundary import app_day_window, app_today, as_date
from ..deeds import TOTAL_DEEDS
from ..models.user import User
from ..streaks import compute_streaks, dedupe_by_day, scan_lifetime

# Blueprint for dashboard-related endpoints
dashboard_bp = Blueprint("dashboard", __name__)


# -------------------------
# DASHBOARD OVERVIEW
# -------------------------
@dashboard_bp.route("/overview", methods=["GET"])
@jwt_required()
def dashboard_overview():
    user_id = int(get_jwt_identity())
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "user not found"}), 404

    today = app_today()
    today_date = as_date(today)
    week_start = today_date - timedelta(days=6)

    history = load_history(user.id)
    by_date = dedupe_by_day(history)

    today_row = by_date.get(today_date)
    today_dict = {
        "date": today,
        "points": today_row.points_earned if today_row else 0,
        "total_deeds": TOTAL_DEEDS,
    }

    by_day = []
    total_points = active_days = 0

    for i in range(7):
        d = week_start + timedelta(days=i)
        row = by_date.get(d)
        p = row.points_earned if row else 0

        total_points += p
        if p > 0:
            active_days += 1

        by_day.append({"date": d.isoformat(), "points": p})

    last7days = {
        "total_points": total_points,
        "active_days": active_days,
        "by_day": by_day,
    }

    _, resets_at = app_day_window(today)

    return (
        jsonify(
            {
                "user": user.to_dict(),
                "today": today_dict,
                "last7days": last7days,
                "streaks": compute_streaks(history, today).to_dict(),
                "lifetime": scan_lifetime(history).to_dict(),
                "resets_at": resets_at.isoformat(),
            }
        ),
        200,
    )
