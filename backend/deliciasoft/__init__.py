# backend/deliciasoft/__init__.py
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

    from .services import verification_service
    verification_service.init_app(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.catalog import CATALOG_BLUEPRINTS
    from .routes.recipes import recipes_bp
    from .routes.inventory import inventory_bp
    from .routes.sales import sales_bp
    from .routes.orders import orders_bp
    from .routes.payments import payments_bp
    from .routes.production import production_bp
    from .routes.purchases import purchases_bp
    from .routes.admin import users_bp, roles_bp, permissions_bp
    from .routes.images import images_bp
    from .routes.contact import contact_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    for bp in CATALOG_BLUEPRINTS:
        app.register_blueprint(bp)
    app.register_blueprint(recipes_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(production_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(roles_bp)
    app.register_blueprint(permissions_bp)
    app.register_blueprint(images_bp)
    app.register_blueprint(contact_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ALLOWED_ORIGINS", []):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
