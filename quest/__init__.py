# quest/__init__.py

import logging

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy

from config import Config

db = SQLAlchemy()
jwt = JWTManager()
limiter = Limiter(get_remote_address, default_limits=[])


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    limiter.init_app(app)

    # CORS: the PWA calls /api/* from its own origin(s)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # -----------------------------
    # JWT error handlers
    # -----------------------------
    @jwt.unauthorized_loader
    def unauthorized_callback(reason):
        return (
            jsonify(
                {
                    "message": "Missing or invalid auth token",
                    "error": reason,
                }
            ),
            401,
        )

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return (
            jsonify(
                {
                    "message": "Invalid auth token",
                    "error": reason,
                }
            ),
            422,
        )

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"message": "Token has expired"}), 401

    @app.errorhandler(429)
    def too_many_requests(e):
        return jsonify({"message": "Too many requests", "error": str(e.description)}), 429

    # -----------------------------
    # IMPORT BLUEPRINTS (all routes)
    # -----------------------------
    from .routes.log_routes import logs_bp
    from .routes.dashboard_routes import dashboard_bp
    from .routes.achievement_routes import achievements_bp
    from .routes.push_routes import push_bp
    from .routes.reminder_routes import reminders_bp, admin_bp

    # -----------------------------
    # REGISTER BLUEPRINTS
    # -----------------------------
    app.register_blueprint(logs_bp, url_prefix="/api/logs")
    app.register_blueprint(dashboard_bp, url_prefix="/api/dashboard")
    app.register_blueprint(achievements_bp, url_prefix="/api/achievements")
    app.register_blueprint(push_bp, url_prefix="/api/push")
    app.register_blueprint(reminders_bp, url_prefix="/api/reminders")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    @app.route("/api/health")
    def health():
        return {"status": "ok"}

    # -----------------------------
    # DB init
    # -----------------------------
    from . import models  # noqa: F401  (register tables)

    with app.app_context():
        db.create_all()

    return app
