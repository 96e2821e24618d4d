# docsign/__init__.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError

from .settings import Config
from .extensions import db, migrate, login_manager, limiter
from .errors import DocSignError


def create_app(config_object: type | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # ======================
    # Initialize Extensions
    # ======================
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # ======================
    # Import Models (CRITICAL)
    # ======================
    from . import models  # noqa: F401

    # ======================
    # Signing core (explicit config, no ambient state)
    # ======================
    from .services import EXTENSION_KEY, build_services

    app.extensions[EXTENSION_KEY] = build_services(app)

    # ======================
    # Register Blueprints
    # ======================
    from .auth import auth
    from .routes import main
    from .public import public

    app.register_blueprint(auth)
    app.register_blueprint(main)
    app.register_blueprint(public)

    @app.get("/api/health")
    def health():
        return jsonify(
            {
                "status": "OK",
                "message": "PDF Signature API is running",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    # ======================
    # Domain errors -> JSON
    # ======================
    @app.errorhandler(DocSignError)
    def domain_error(e: DocSignError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        app.logger.exception("Database error")
        return jsonify({"msg": "Server error"}), 500

    # ======================
    # Rate limit error handler
    # ======================
    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"msg": "Too many requests from this IP, please try again later."}), 429

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"message": "Route not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"message": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({"msg": "File too large"}), 413

    return app
