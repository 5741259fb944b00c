# backend/duka/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

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
    from .routes.workers import workers_bp
    from .routes.sales import sales_bp
    from .routes.earnings import earnings_bp
    from .routes.payroll import payroll_bp
    from .routes.expenses import expenses_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(shops_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(workers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(earnings_bp)
    app.register_blueprint(payroll_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(reports_bp)

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        from werkzeug.exceptions import HTTPException
        if isinstance(exc, HTTPException):
            return exc
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return {"error": "Internal server error"}, 500

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
