# backend/estoque/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def _configure_logging(app: Flask) -> None:
    level = app.config.get("LOG_LEVEL", "INFO")
    logger = logging.getLogger("estoque")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    app.logger.setLevel(level)


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.catalog import products_bp, categories_bp, suppliers_bp, customers_bp
    from .routes.movements import movements_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.goods_receipts import goods_receipts_bp
    from .routes.sales_orders import sales_orders_bp
    from .routes.finance import payables_bp, receivables_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(movements_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(goods_receipts_bp)
    app.register_blueprint(sales_orders_bp)
    app.register_blueprint(payables_bp)
    app.register_blueprint(receivables_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
