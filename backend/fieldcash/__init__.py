# backend/fieldcash/__init__.py
from flask import Flask, jsonify
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate
from .services.permission_service import PermissionDeniedError
from .validation import ConflictError, NotFoundError, ValidationError


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.shops import shops_bp
    from .routes.collections import collections_bp
    from .routes.handovers import handovers_bp
    from .routes.settlements import settlements_bp
    from .routes.reconciliations import reconciliations_bp
    from .routes.invoices import invoices_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(shops_bp)
    app.register_blueprint(collections_bp)
    app.register_blueprint(handovers_bp)
    app.register_blueprint(settlements_bp)
    app.register_blueprint(reconciliations_bp)
    app.register_blueprint(invoices_bp)

    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """
    Map typed service errors onto HTTP responses.

    Services raise; they never build responses. Unexpected errors are logged
    with a stack trace and answered with a generic message.
    """
    def _error(message: str, status: int):
        db.session.rollback()
        return jsonify({"error": message}), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return _error(str(exc), 400)

    @app.errorhandler(PermissionDeniedError)
    def handle_permission_denied(exc):
        return _error(str(exc), 403)

    @app.errorhandler(NotFoundError)
    def handle_not_found(exc):
        return _error(str(exc), 404)

    @app.errorhandler(ConflictError)
    def handle_conflict(exc):
        return _error(str(exc), 409)

    @app.errorhandler(StaleDataError)
    def handle_stale_data(exc):
        # Retries exhausted on an optimistic lock conflict
        return _error("Record was modified concurrently, retry the request", 409)

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("Unhandled error")
        return _error("Internal server error", 500)
