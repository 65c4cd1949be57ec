# backend/justsell/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate

__version__ = "1.0.0"


def _init_field_cipher(app: Flask) -> None:
    from .repositories import CIPHER_EXTENSION_KEY
    from .security import FieldCipher, StaticKeyProvider

    provider = StaticKeyProvider(
        app.config["FIELD_ENCRYPTION_KEYS"],
        app.config["FIELD_ENCRYPTION_KEY_VERSION"],
    )
    app.extensions[CIPHER_EXTENSION_KEY] = FieldCipher(provider)


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

    _init_field_cipher(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.transactions import transactions_bp
    from .routes.age_verification import age_verification_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(age_verification_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
