# backend/cashdesk/__init__.py
import logging

from flask import Flask, jsonify

from .config import Config
from .errors import PosError
from .extensions import db, migrate


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))
    logging.getLogger("cashdesk").setLevel(app.logger.level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.users import users_bp
    from .routes.products import products_bp, categories_bp
    from .routes.inventory import inventory_bp
    from .routes.registers import registers_bp
    from .routes.sales import sales_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(registers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(reports_bp)

    @app.errorhandler(PosError)
    def handle_pos_error(error: PosError):
        return jsonify(error.to_dict()), error.status_code

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
