# shelfguard/__init__.py
import atexit
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before extensions read SQLALCHEMY_DATABASE_URI
    if test_config:
        app.config.update(test_config)

    if not app.debug and not app.testing:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.shops import shops_bp
    from .routes.products import products_bp
    from .routes.notifications import notifications_bp

    api_prefix = f"/api/{app.config['API_VERSION']}"
    app.register_blueprint(system_bp)
    for bp in (auth_bp, shops_bp, products_bp, notifications_bp):
        app.register_blueprint(bp, url_prefix=f"{api_prefix}{bp.url_prefix}")

    from .errors import register_error_handlers
    from .rate_limit import init_rate_limiter
    register_error_handlers(app)
    init_rate_limiter(app)

    allowed_origins = set(app.config["CORS_ORIGINS"])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    from .services.push_service import build_push_notifier
    app.extensions["push_notifier"] = build_push_notifier(app.config)

    if app.config["NOTIFICATION_SCHEDULER_ENABLED"] and not app.testing:
        from .scheduler import ExpiryNotificationScheduler
        scheduler = ExpiryNotificationScheduler(
            app,
            app.extensions["push_notifier"],
            app.config["NOTIFICATION_SCHEDULER_CRON"],
        )
        scheduler.start()
        app.extensions["expiry_scheduler"] = scheduler
        atexit.register(scheduler.shutdown)
    else:
        app.logger.info("Notification scheduler is disabled")

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
