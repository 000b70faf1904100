"""HTTP surface: logs, dashboard, achievements, push and reminders."""

# pylint: disable=redefined-outer-name
# pylint: disable=unused-argument

import json
import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from quest import create_app, db
from quest.day_boundary import app_today, as_date
from quest.deeds import TOTAL_DEEDS
from quest.models import Achievement, DailyLog, PushSubscription, ReminderSchedule
from tests.conftest import TestingConfig

ADMIN = {"X-Admin-Secret": "admin-secret"}


@pytest.fixture
def headers(user, auth_headers):
    return auth_headers(user)


@pytest.fixture
def today(app):
    return as_date(app_today())


def test_health(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}


def test_token_required(client):
    res = client.get("/api/logs/today")
    assert res.status_code == 401
    assert res.get_json()["message"] == "Missing or invalid auth token"


# ============================================================================
# /api/logs
# ============================================================================


def test_today_before_anything_is_logged(client, headers, today):
    res = client.get("/api/logs/today", headers=headers)

    assert res.status_code == 200
    data = res.get_json()
    assert data["today"] == today.isoformat()
    assert data["total_deeds"] == TOTAL_DEEDS
    assert data["log"]["points_earned"] == 0
    assert not any(data["log"]["deeds"].values())


def test_toggle_deed(client, headers, user):
    url = "/api/logs/today/deeds/iman_quran"

    first = client.put(url, headers=headers).get_json()
    assert first["log"]["deeds"]["iman_quran"] is True
    assert first["log"]["points_earned"] == 1
    assert first["streaks"]["daily_streak"] == 1

    second = client.put(url, headers=headers).get_json()
    assert second["log"]["deeds"]["iman_quran"] is False
    assert second["log"]["points_earned"] == 0
    assert DailyLog.query.filter_by(user_id=user.id).count() == 1


def test_set_deed_explicitly(client, headers):
    url = "/api/logs/today/deeds/tummy_fast"

    client.put(url, headers=headers, json={"done": True})
    data = client.put(url, headers=headers, json={"done": True}).get_json()

    assert data["log"]["deeds"]["tummy_fast"] is True
    assert data["log"]["points_earned"] == 1


def test_third_day_in_a_row_awards_streak_badge(client, headers, user, add_run, today):
    add_run(user, today - timedelta(days=1), 2)

    data = client.put(
        "/api/logs/today/deeds/prayer_five", headers=headers, json={"done": True}
    ).get_json()

    assert data["streaks"]["daily_streak"] == 3
    assert data["achievements"]["earned_badges"] == ["streak_3"]
    assert data["achievements"]["notification"]["reason"] == "no_subscriptions"
    assert Achievement.query.filter_by(user_id=user.id).count() == 1


@pytest.mark.parametrize(
    "deed, body, status",
    [
        ("not_a_deed", {}, 400),
        ("iman_quran", {"done": "yes"}, 400),
        ("iman_quran", {"done": 1}, 400),
    ],
)
def test_bad_deed_updates(client, headers, deed, body, status):
    res = client.put(f"/api/logs/today/deeds/{deed}", headers=headers, json=body)
    assert res.status_code == status


def test_deed_update_for_unknown_user(client, auth_headers):
    ghost = type("Ghost", (), {"id": 9999})()
    res = client.put("/api/logs/today/deeds/iman_quran", headers=auth_headers(ghost))
    assert res.status_code == 404


def test_history_is_newest_first_and_limited(client, headers, user, add_run, today):
    add_run(user, today, 5)

    logs = client.get("/api/logs/history?limit=3", headers=headers).get_json()["logs"]

    assert [log["log_date"] for log in logs] == [
        (today - timedelta(days=i)).isoformat() for i in range(3)
    ]


def test_history_limit_is_clamped(client, headers, user, add_run, today):
    add_run(user, today, 2)

    assert len(client.get("/api/logs/history?limit=0", headers=headers).get_json()["logs"]) == 1
    assert len(client.get("/api/logs/history?limit=abc", headers=headers).get_json()["logs"]) == 2


# ============================================================================
# /api/dashboard
# ============================================================================


def test_dashboard_overview(client, headers, user, add_run, add_log, today):
    add_run(user, today - timedelta(days=1), 3, done=("iman_quran", "tummy_fast"))
    add_log(user, today - timedelta(days=20), ("tummy_fast",))

    data = client.get("/api/dashboard/overview", headers=headers).get_json()

    assert data["user"]["username"] == "amina"
    assert data["today"] == {"date": today.isoformat(), "points": 0, "total_deeds": TOTAL_DEEDS}
    assert data["last7days"]["total_points"] == 6
    assert data["last7days"]["active_days"] == 3
    assert len(data["last7days"]["by_day"]) == 7
    assert data["last7days"]["by_day"][-1] == {"date": today.isoformat(), "points": 0}
    assert data["streaks"]["daily_streak"] == 3
    assert data["lifetime"] == {"max_daily_streak": 3, "has_perfect_day": False}
    resets_at = datetime.fromisoformat(data["resets_at"])
    assert resets_at > datetime.now(resets_at.tzinfo)


# ============================================================================
# /api/achievements
# ============================================================================


def test_achievements_overview(client, headers, user, add_run, today):
    add_run(user, today, 3, done=("social_charity",))
    db.session.add(Achievement(user_id=user.id, badge_type="streak_3", milestone_value=3))
    db.session.commit()

    data = client.get("/api/achievements", headers=headers).get_json()

    assert [b["badge_type"] for b in data["earned"]] == ["streak_3"]
    assert data["earned"][0]["label"] == "3-Day Streak 🔥"
    locked = {b["badge_type"] for b in data["locked"]}
    assert "streak_3" not in locked
    assert "streak_30" in locked
    assert data["stats"] == {
        "total_days_completed": 3,
        "avg_points_per_day": 1,
        "charity_count": 3,
        "quran_count": 0,
    }


def test_award_is_idempotent(client, headers, user, add_run, today):
    add_run(user, today, 7)

    first = client.post("/api/achievements/award", headers=headers).get_json()
    second = client.post("/api/achievements/award", headers=headers).get_json()

    assert first["ok"] is True
    assert first["earned_badges"] == ["streak_3", "streak_7"]
    assert second["earned_badges"] == []
    assert second["eligible_badges"] == ["streak_3", "streak_7"]
    assert second["notification"]["reason"] == "not_attempted"
    assert Achievement.query.filter_by(user_id=user.id).count() == 2


def test_award_notifies_subscribed_devices(
    client, headers, user, add_run, add_subscription, fake_push, today
):
    add_subscription(user)
    add_run(user, today, 3)

    data = client.post("/api/achievements/award", headers=headers).get_json()

    assert data["notification"] == {
        "sent": True,
        "sent_count": 1,
        "subscription_count": 1,
        "reason": "sent",
    }
    assert json.loads(fake_push.calls[0]["data"])["tag"] == "achievement-unlock"


# ============================================================================
# /api/push
# ============================================================================

SUBSCRIPTION = {
    "endpoint": "https://push.example.com/send/abc",
    "keys": {"p256dh": "BPk", "auth": "aut"},
}


def test_public_key(client):
    assert client.get("/api/push/public-key").get_json() == {"public_key": "test-vapid-public-key"}


def test_public_key_missing(app, client):
    app.config["VAPID_PUBLIC_KEY"] = ""
    assert client.get("/api/push/public-key").status_code == 500


def test_subscribe_then_refresh(client, headers, user):
    res = client.post("/api/push/subscriptions", headers=headers, json=SUBSCRIPTION)
    assert res.status_code == 201

    refreshed = dict(SUBSCRIPTION, keys={"p256dh": "new", "auth": "new-auth"})
    res = client.post("/api/push/subscriptions", headers=headers, json=refreshed)
    assert res.status_code == 200

    sub = PushSubscription.query.one()
    assert sub.user_id == user.id
    assert sub.p256dh == "new"


def test_subscription_moves_to_new_owner(client, make_user, auth_headers):
    first, second = make_user(), make_user()
    client.post("/api/push/subscriptions", headers=auth_headers(first), json=SUBSCRIPTION)
    client.post("/api/push/subscriptions", headers=auth_headers(second), json=SUBSCRIPTION)

    assert PushSubscription.query.one().user_id == second.id


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"endpoint": "http://push.example.com/x", "keys": SUBSCRIPTION["keys"]},
        {"endpoint": SUBSCRIPTION["endpoint"], "keys": {"p256dh": "x"}},
        {"endpoint": SUBSCRIPTION["endpoint"], "keys": "nope"},
    ],
)
def test_subscribe_validation(client, headers, body):
    assert client.post("/api/push/subscriptions", headers=headers, json=body).status_code == 400


def test_unsubscribe(client, headers):
    client.post("/api/push/subscriptions", headers=headers, json=SUBSCRIPTION)

    res = client.delete(
        "/api/push/subscriptions", headers=headers, json={"endpoint": SUBSCRIPTION["endpoint"]}
    )

    assert res.get_json() == {"ok": True, "deleted": 1}
    assert PushSubscription.query.count() == 0


def test_nudge_requires_friendship(client, headers, make_user, add_subscription, fake_push):
    stranger = make_user()
    add_subscription(stranger)

    res = client.post(
        "/api/push/send", headers=headers, json={"to_user_id": stranger.id, "message": "hi"}
    )

    assert res.status_code == 403
    assert fake_push.calls == []


def test_nudge_friend(client, headers, user, make_user, befriend, add_subscription, fake_push):
    friend = make_user()
    befriend(friend, user)
    add_subscription(friend)

    res = client.post(
        "/api/push/send",
        headers=headers,
        json={"to_user_id": friend.id, "message": "x" * 500},
    )

    assert res.status_code == 200
    assert res.get_json() == {"ok": True, "sent": 1, "reason": "sent"}
    payload = json.loads(fake_push.calls[0]["data"])
    assert payload["title"] == "Ramadan Quest"
    assert len(payload["body"]) == 200


@pytest.mark.parametrize("body", [{}, {"to_user_id": 2}, {"message": "hi"}, {"to_user_id": "x", "message": "hi"}])
def test_nudge_validation(client, headers, body):
    assert client.post("/api/push/send", headers=headers, json=body).status_code == 400


# ============================================================================
# /api/reminders and /api/admin
# ============================================================================


@pytest.fixture
def add_reminder(app):
    def _add(user, reminder_type="hourly", minutes=-5, sent=False):
        reminder = ReminderSchedule(
            user_id=user.id,
            reminder_type=reminder_type,
            scheduled_for=datetime.utcnow() + timedelta(minutes=minutes),
            notification_sent=sent,
        )
        db.session.add(reminder)
        db.session.commit()
        return reminder

    return _add


def test_reminders_need_the_admin_secret(client):
    assert client.post("/api/reminders/send").status_code == 401
    assert client.post("/api/reminders/send", headers={"X-Admin-Secret": "nope"}).status_code == 401
    assert client.get("/api/admin/reminders").status_code == 401


def test_admin_secret_unset_locks_everything(app, client):
    app.config["ADMIN_SECRET"] = None
    assert client.post("/api/reminders/send", headers=ADMIN).status_code == 401


def test_send_due_reminders(client, make_user, add_reminder, add_subscription, fake_push):
    amina, bilal = make_user(), make_user()
    add_subscription(amina)
    add_subscription(bilal)
    add_reminder(amina, "hourly", minutes=-60)
    add_reminder(amina, "evening_last_chance", minutes=-1)
    add_reminder(bilal, "hourly", minutes=-10)
    later = add_reminder(bilal, "hourly", minutes=60)
    later_id = later.id

    data = client.post("/api/reminders/send", headers=ADMIN).get_json()

    assert data == {"ok": True, "sent": 2, "users": 2, "reminders": 3}
    tags = sorted(json.loads(call["data"])["tag"] for call in fake_push.calls)
    assert tags == ["reminder-evening_last_chance", "reminder-hourly"]

    pending = ReminderSchedule.query.filter_by(notification_sent=False).all()
    assert [r.id for r in pending] == [later_id]


def test_send_without_push_keys_leaves_reminders_due(
    app, client, user, add_reminder, add_subscription, fake_push
):
    add_subscription(user)
    add_reminder(user, minutes=-5)
    app.config["VAPID_PRIVATE_KEY"] = None

    res = client.post("/api/reminders/send", headers=ADMIN)

    assert res.status_code == 500
    assert res.get_json() == {"message": "Push is not configured on server", "sent": 0}
    assert fake_push.calls == []
    assert ReminderSchedule.query.filter_by(notification_sent=False).count() == 1


def test_send_with_nothing_due(client):
    assert client.post("/api/reminders/send", headers=ADMIN).get_json() == {
        "ok": True,
        "sent": 0,
        "users": 0,
        "reminders": 0,
    }


def test_admin_lists_pending(client, user, add_reminder):
    add_reminder(user, minutes=30)
    add_reminder(user, minutes=-30, sent=True)

    reminders = client.get("/api/admin/reminders", headers=ADMIN).get_json()["reminders"]

    assert len(reminders) == 1
    assert reminders[0]["notification_sent"] is False


def test_admin_trigger(client, user, add_reminder, add_subscription, fake_push):
    add_subscription(user)
    reminder = add_reminder(user, minutes=120)

    res = client.post("/api/admin/reminders/trigger", headers=ADMIN, json={"reminder_id": reminder.id})

    assert res.status_code == 200
    assert res.get_json()["sent"] == 1
    assert db.session.get(ReminderSchedule, reminder.id).notification_sent is True

    again = client.post("/api/admin/reminders/trigger", headers=ADMIN, json={"reminder_id": reminder.id})
    assert again.status_code == 409


def test_admin_trigger_without_devices(client, user, add_reminder, fake_push):
    reminder = add_reminder(user)

    res = client.post("/api/admin/reminders/trigger", headers=ADMIN, json={"reminder_id": reminder.id})

    assert res.status_code == 400
    assert res.get_json()["message"] == "Cannot send reminder: no_subscriptions"


@pytest.mark.parametrize(
    "body, status",
    [
        ({}, 400),
        ({"reminder_id": "not-a-uuid"}, 400),
        ({"reminder_id": str(uuid.uuid4())}, 404),
    ],
)
def test_admin_trigger_bad_ids(client, body, status):
    res = client.post("/api/admin/reminders/trigger", headers=ADMIN, json=body)
    assert res.status_code == status


def test_admin_cancel(client, user, add_reminder):
    reminder = add_reminder(user)
    reminder_id = reminder.id

    res = client.delete("/api/admin/reminders/cancel", headers=ADMIN, json={"reminder_id": reminder_id})

    assert res.status_code == 200
    assert ReminderSchedule.query.count() == 0
    missing = client.delete("/api/admin/reminders/cancel", headers=ADMIN, json={"reminder_id": reminder_id})
    assert missing.status_code == 404


def test_admin_stats(client, make_user, add_log, add_reminder, add_subscription, today):
    amina, bilal, _ = make_user(), make_user(), make_user()
    add_log(amina, today, ("iman_quran", "tummy_fast"))
    add_log(bilal, today, ("prayer_five",))
    add_log(bilal, today - timedelta(days=1), ("prayer_five", "iman_dua"))
    add_reminder(amina, minutes=-30)
    add_reminder(amina, minutes=30)
    add_reminder(bilal, minutes=-90, sent=True)
    add_subscription(amina)
    db.session.add_all(
        [
            Achievement(user_id=amina.id, badge_type="streak_3", milestone_value=3),
            Achievement(user_id=bilal.id, badge_type="streak_3", milestone_value=3),
            Achievement(user_id=bilal.id, badge_type="perfect_day", milestone_value=1),
        ]
    )
    db.session.commit()

    data = client.get("/api/admin/stats", headers=ADMIN).get_json()

    assert data == {
        "today": today.isoformat(),
        "total_users": 3,
        "active_today": 2,
        "total_deeds_completed_today": 3,
        "pending_reminders": 2,
        "delivered_reminders": 1,
        "overdue_reminders": 1,
        "push_subscriptions": 1,
        "achievements_earned": 3,
        "users_by_streak": {"streak_3": 2, "streak_7": 0, "streak_14": 0, "streak_30": 0},
    }


def test_admin_stats_need_the_admin_secret(client):
    assert client.get("/api/admin/stats").status_code == 401


# ============================================================================
# Request bodies and store failures
# ============================================================================


@pytest.mark.parametrize("body", [["iman_quran"], "done", 5])
@pytest.mark.parametrize(
    "method, url",
    [
        ("put", "/api/logs/today/deeds/iman_quran"),
        ("post", "/api/push/subscriptions"),
        ("delete", "/api/push/subscriptions"),
        ("post", "/api/push/send"),
    ],
)
def test_non_object_json_body_is_rejected(client, headers, method, url, body):
    res = getattr(client, method)(url, headers=headers, json=body)

    assert res.status_code == 400
    assert res.get_json()["message"] == "JSON object body required"


@pytest.mark.parametrize(
    "method, url",
    [("post", "/api/admin/reminders/trigger"), ("delete", "/api/admin/reminders/cancel")],
)
def test_admin_non_object_json_body_is_rejected(client, method, url):
    res = getattr(client, method)(url, headers=ADMIN, json=[str(uuid.uuid4())])
    assert res.status_code == 400


def test_non_string_endpoint_is_rejected(client, headers):
    body = {"endpoint": 5, "keys": SUBSCRIPTION["keys"]}
    assert client.post("/api/push/subscriptions", headers=headers, json=body).status_code == 400
    assert client.delete("/api/push/subscriptions", headers=headers, json={"endpoint": 5}).status_code == 400


def test_unsubscribe_store_failure(client, headers, monkeypatch):
    client.post("/api/push/subscriptions", headers=headers, json=SUBSCRIPTION)

    def broken_commit():
        raise OperationalError("DELETE FROM push_subscriptions", {}, Exception("db down"))

    monkeypatch.setattr(db.session, "commit", broken_commit)

    res = client.delete(
        "/api/push/subscriptions", headers=headers, json={"endpoint": SUBSCRIPTION["endpoint"]}
    )

    assert res.status_code == 500
    assert res.get_json() == {"message": "Failed to remove subscription"}
    assert PushSubscription.query.count() == 1


# ============================================================================
# Rate limits
# ============================================================================


class RateLimitedConfig(TestingConfig):
    RATELIMIT_ENABLED = True


def test_public_key_is_rate_limited():
    app = create_app(RateLimitedConfig)
    client = app.test_client()

    statuses = [client.get("/api/push/public-key").status_code for _ in range(121)]

    assert statuses[:120] == [200] * 120
    assert statuses[120] == 429
    assert client.get("/api/push/public-key").get_json()["message"] == "Too many requests"
