# backend/agripos/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate, enable_sqlite_savepoints



def create_app(config_class=Config, overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            enable_sqlite_savepoints(db.engine)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Customer notifications (log or webhook)
    from .notifications import create_notifier
    app.extensions["agripos.notifier"] = create_notifier(app.config)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.checkout import checkout_bp
    from .routes.transactions import transactions_bp
    from .routes.sessions import sessions_bp
    from .routes.orders import orders_bp
    from .routes.inventory import inventory_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(inventory_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS") or [])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                "Content-Type, X-User-Id, X-Branch-Id, X-User-Email"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
