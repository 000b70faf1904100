# tests/conftest.py
from datetime import timedelta
from types import SimpleNamespace

import pytest
from flask_jwt_extended import create_access_token
from pywebpush import WebPushException

from config import Config
from quest import create_app, db
from quest.day_boundary import as_date
from quest.deeds import DEED_KEYS, count_completed
from quest.models import DailyLog, Friendship, PushSubscription, User


class TestingConfig(Config):
    __test__ = False  # not a test class

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-key-long-enough-for-hs256"
    RATELIMIT_ENABLED = False
    VAPID_PUBLIC_KEY = "test-vapid-public-key"
    VAPID_PRIVATE_KEY = "test-vapid-private-key"
    VAPID_SUBJECT = "mailto: <ops@example.com>"
    ADMIN_SECRET = "admin-secret"
    PUSH_SEND_TIMEOUT = 2
    HISTORY_WINDOW = 400


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(username=None):
        counter["n"] += 1
        user = User(username=username or f"user{counter['n']}", display_name="Test")
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user("amina")


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id))
        return {"Authorization": f"Bearer {token}"}

    return _headers


def deeds_for(done=()):
    return {key: key in done for key in DEED_KEYS}


def record(day, done=(), points=None):
    """In-memory stand-in for a DailyLog row."""
    deeds = deeds_for(done)
    return SimpleNamespace(
        log_date=as_date(day),
        deeds=deeds,
        points_earned=count_completed(deeds) if points is None else points,
    )


def run(end_day, days, done=("tummy_fast",)):
    """``days`` consecutive records ending on ``end_day`` (newest first)."""
    end = as_date(end_day)
    return [record(end - timedelta(days=i), done) for i in range(days)]


@pytest.fixture
def add_log(app):
    def _add(user, day, done=()):
        deeds = deeds_for(done)
        log = DailyLog(
            user_id=user.id,
            log_date=as_date(day),
            deeds=deeds,
            points_earned=count_completed(deeds),
        )
        db.session.add(log)
        db.session.commit()
        return log

    return _add


@pytest.fixture
def add_run(add_log):
    def _add(user, end_day, days, done=("tummy_fast",)):
        end = as_date(end_day)
        return [add_log(user, end - timedelta(days=i), done) for i in range(days)]

    return _add


@pytest.fixture
def befriend(app):
    def _befriend(a, b, status="accepted"):
        f = Friendship(requester_id=a.id, addressee_id=b.id, status=status)
        db.session.add(f)
        db.session.commit()
        return f

    return _befriend


@pytest.fixture
def add_subscription(app):
    counter = {"n": 0}

    def _add(user, endpoint=None):
        counter["n"] += 1
        sub = PushSubscription(
            user_id=user.id,
            endpoint=endpoint or f"https://push.example.com/send/{counter['n']}",
            p256dh=f"p256dh-{counter['n']}",
            auth=f"auth-{counter['n']}",
        )
        db.session.add(sub)
        db.session.commit()
        return sub

    return _add


class FakeWebPush:
    """Records sends; ``statuses[endpoint]`` picks the push service's answer."""

    def __init__(self):
        self.calls = []
        self.statuses = {}

    def __call__(self, subscription_info, data=None, vapid_private_key=None,
                 vapid_claims=None, timeout=None, **kwargs):
        self.calls.append(
            {
                "endpoint": subscription_info["endpoint"],
                "keys": subscription_info["keys"],
                "data": data,
                "vapid_private_key": vapid_private_key,
                "vapid_claims": dict(vapid_claims or {}),
                "timeout": timeout,
            }
        )
        status = self.statuses.get(subscription_info["endpoint"], 201)
        if isinstance(status, Exception):
            raise status
        if status > 202:
            raise WebPushException(
                f"Push failed: {status}", response=SimpleNamespace(status_code=status)
            )
        return SimpleNamespace(status_code=status)


@pytest.fixture
def fake_push(monkeypatch):
    fake = FakeWebPush()
    monkeypatch.setattr("quest.push.webpush", fake)
    return fake
