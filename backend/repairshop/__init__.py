# backend/repairshop/__init__.py
from flask import Flask, request, jsonify, send_from_directory
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import ServiceError
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Notification gateway; tests swap in their own Notifier
    from .services.notification_service import NullNotifier, build_notifier
    app.extensions["notifier"] = build_notifier(app.config)
    if isinstance(app.extensions["notifier"], NullNotifier):
        app.logger.warning("TELEGRAM_BOT_TOKEN not set; customer and owner notifications are disabled")

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.jobs import jobs_bp
    from .routes.staff import staff_bp
    from .routes.expenses import expenses_bp
    from .routes.suggestions import suggestions_bp
    from .routes.admin import admin_bp
    from .routes.telegram import telegram_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(suggestions_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(telegram_bp)

    @app.get("/uploads/logos/<path:filename>")
    def uploaded_logo(filename):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.errorhandler(ServiceError)
    def handle_service_error(exc: ServiceError):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
