# backend/giftbox/__init__.py
from flask import Flask, request

from .config import Config
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

    # Collaborators the services look up through app.extensions
    from .services.payment_gateway import PaymentGateway
    from .services.cart_service import CartService, DatabaseCartStore

    app.extensions.setdefault("payment_gateway", PaymentGateway.from_config(app.config))
    app.extensions.setdefault("cart_service", CartService(DatabaseCartStore()))

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.profile import profile_bp
    from .routes.vendors import vendors_bp
    from .routes.catalog import catalog_bp
    from .routes.landing import landing_bp
    from .routes.cart import cart_bp
    from .routes.orders import orders_bp
    from .routes.engagement import engagement_bp
    from .routes.payments import payments_bp  # Connected payment accounts
    from .routes.plugin import plugin_bp  # External storefront API (X-API-Key)
    from .routes.inquiries import inquiries_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(vendors_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(landing_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(engagement_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(plugin_bp)
    app.register_blueprint(inquiries_bp)
    app.register_blueprint(admin_bp)

    allowed_origins = {
        origin.strip()
        for origin in app.config["CORS_ALLOWED_ORIGINS"].split(",")
        if origin.strip()
    }

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, X-API-Key"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Audit log subscriber for domain events
    from .events import connect_audit_log
    connect_audit_log()

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
