"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with the relation engine, blueprints and configuration.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask

from authz.config import AppConfig, load_settings
from authz.extensions import db


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(config: Optional[AppConfig] = None) -> Flask:
    """Create and configure Flask application."""
    # Load configuration
    cfg = config or load_settings()

    # Create Flask app
    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["DEMO_MODE"] = cfg.demo_mode

    # Storage
    app.config["SQLALCHEMY_DATABASE_URI"] = cfg.database_url
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = cfg.sqlalchemy_engine_options
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    _configure_logging(cfg.log_level)

    db.init_app(app)
    from authz.core import models  # noqa: F401  (registers the tables on the metadata)

    # Relation engine and message dispatcher
    from authz.core.engine import AuthzEngine
    from authz.rpc.handlers import build_dispatcher

    engine = AuthzEngine(cfg, lambda: db.session)
    app.extensions["authz"] = engine
    app.extensions["authz_rpc"] = build_dispatcher(engine)

    # Register blueprints
    from authz.api import authorization, errors, health, rpc
    from authz.api.relations import create_relations_blueprint
    from authz.core.domains import DOMAINS

    app.register_blueprint(health.bp)
    app.register_blueprint(authorization.bp)
    app.register_blueprint(rpc.bp)
    for domain in DOMAINS:
        app.register_blueprint(create_relations_blueprint(domain))

    # Register error handlers
    errors.register_error_handlers(app)

    # CLI commands
    from authz.commands import grant_admin_command, init_db_command

    app.cli.add_command(init_db_command)
    app.cli.add_command(grant_admin_command)

    if cfg.demo_mode:
        # Demo databases are created on the fly; production uses `flask init-db`
        with app.app_context():
            db.create_all()

    # Log startup info
    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] Relation domains registered: {', '.join(d.name for d in DOMAINS)}")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - do not deploy with demo secrets")

    return app


def _configure_logging(level_name: str) -> None:
    """Apply LOG_LEVEL to the ``authz`` logger hierarchy."""
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        print(f"[flask_app] Unknown LOG_LEVEL {level_name!r}, using INFO")
        level = logging.INFO

    logger = logging.getLogger("authz")
    logger.setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")


# ─────────────────────────────────────────────────────────────────────────────
# Module-level app instance (for gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=True)
