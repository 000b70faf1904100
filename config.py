# config.py
import os
from datetime import timedelta


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")
    # Tokens are minted by the auth provider; we only verify them.
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "mysql+pymysql://root:@localhost/ramadan_quest"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 🔐 JWT config
    JWT_TOKEN_LOCATION = ["headers"]     # where to look for tokens
    JWT_HEADER_NAME = "Authorization"    # header name
    JWT_HEADER_TYPE = "Bearer"           # expected prefix
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)

    # 🌙 logical day: GMT+1, new day starts at 03:30
    DAY_UTC_OFFSET_HOURS = int(os.environ.get("DAY_UTC_OFFSET_HOURS", "1"))
    DAY_RESET_TIME = os.environ.get("DAY_RESET_TIME", "03:30")

    # how many daily logs an evaluation reads back
    HISTORY_WINDOW = int(os.environ.get("HISTORY_WINDOW", "400"))

    # 🔔 web push
    VAPID_PUBLIC_KEY = (os.environ.get("VAPID_PUBLIC_KEY") or "").strip() or None
    VAPID_PRIVATE_KEY = (os.environ.get("VAPID_PRIVATE_KEY") or "").strip() or None
    VAPID_SUBJECT = os.environ.get("VAPID_SUBJECT", "mailto:contact@example.com")
    PUSH_SEND_TIMEOUT = float(os.environ.get("PUSH_SEND_TIMEOUT", "10"))
    PUSH_MAX_WORKERS = int(os.environ.get("PUSH_MAX_WORKERS", "8"))

    # cron + admin endpoints (X-Admin-Secret header)
    ADMIN_SECRET = os.environ.get("ADMIN_SECRET")

    RATELIMIT_ENABLED = os.environ.get("RATELIMIT_ENABLED", "1") == "1"
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
