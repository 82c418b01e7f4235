# backend/vault/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, init_secret_codec, migrate

HISTORY_ON_DELETE_CHOICES = ("retain", "cascade")


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    if app.config.get("HISTORY_ON_DELETE") not in HISTORY_ON_DELETE_CHOICES:
        raise ValueError(
            f"HISTORY_ON_DELETE must be one of {HISTORY_ON_DELETE_CHOICES}, "
            f"got {app.config.get('HISTORY_ON_DELETE')!r}"
        )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    init_secret_codec(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.sites import sites_bp
    from .routes.credentials import credentials_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(sites_bp)
    app.register_blueprint(credentials_bp)
    app.register_blueprint(admin_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS") or [])
    principal_header = app.config.get("PRINCIPAL_HEADER", "X-Authenticated-Email")

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = f"Content-Type, {principal_header}"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,PATCH,OPTIONS"
        # Responses carry decoded secrets
        response.headers["Cache-Control"] = "no-store"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
