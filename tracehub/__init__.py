"""
TraceHub — Requirements Traceability & Quality Platform
Flask Application Factory.

Usage:
    from tracehub import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from tracehub.config import config
from tracehub.middleware.logging_config import configure_logging
from tracehub.middleware.rate_limiter import init_rate_limits
from tracehub.middleware.timing import init_request_timing
from tracehub.models import db
from tracehub.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from tracehub.models import project as _project_models          # noqa: F401
    from tracehub.models import requirement as _requirement_models  # noqa: F401
    from tracehub.models import testing as _testing_models          # noqa: F401
    from tracehub.models import reporting as _reporting_models      # noqa: F401

    # ── Blueprints ───────────────────────────────────────────────────────
    from tracehub.blueprints.health_bp import health_bp
    from tracehub.blueprints.project_bp import project_bp
    from tracehub.blueprints.reporting_bp import reporting_bp
    from tracehub.blueprints.requirement_bp import requirement_bp
    from tracehub.blueprints.testing_bp import testing_bp
    from tracehub.blueprints.traceability_bp import traceability_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(requirement_bp)
    app.register_blueprint(testing_bp)
    app.register_blueprint(traceability_bp)
    app.register_blueprint(reporting_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    @app.errorhandler(413)
    def _payload_too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def _unsupported_media_type(e):
        return {"error": "Content-Type must be application/json"}, 415

    @app.errorhandler(429)
    def _rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # Local SQLite databases are created on first start; elsewhere run `flask db upgrade`
    if config_name == "development" and app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        with app.app_context():
            db.create_all()

    return app
