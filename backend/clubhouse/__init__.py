# backend/clubhouse/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .time_utils import ClubClock


def create_app(config_overrides: dict | None = None, clock: ClubClock | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before extensions bind to the database URI
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # One clock for every "today" comparison; tests install a fixed one
    app.extensions["club_clock"] = clock or ClubClock(app.config["CLUB_TIMEZONE"])

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.members import members_bp
    from .routes.facilities import facilities_bp
    from .routes.bookings import bookings_bp
    from .routes.vouchers import vouchers_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(members_bp)
    app.register_blueprint(facilities_bp)
    app.register_blueprint(bookings_bp)
    app.register_blueprint(vouchers_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Acting-User"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
