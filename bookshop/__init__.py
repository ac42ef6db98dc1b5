"""Bookshop rental manager: catalog, customers, rental orders and payments."""

import logging
from types import SimpleNamespace

from flasgger import Swagger
from flask import Flask

from .auth import auth_bp
from .catalog import CatalogService
from .config import Config
from .customers import CustomerService
from .errors import register_error_handlers
from .extensions import bcrypt, cache, db, monitor, response_cache
from .orders import OrderLifecycle, RetryPolicy
from .seed import seed_sample_data
from .views.authors import authors_bp
from .views.books import books_bp
from .views.customers import customers_bp
from .views.finance import finance_bp
from .views.orders import orders_bp
from .views.reports import reports_bp
from .views.system import system_bp

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

BLUEPRINTS = (auth_bp, books_bp, authors_bp, customers_bp, orders_bp,
              finance_bp, reports_bp, system_bp)


def configure_logging(app):
    level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger(__name__).setLevel(level)
    app.logger.setLevel(level)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    db.init_app(app)
    cache.init_app(app)
    bcrypt.init_app(app)
    Swagger(app, template=app.config['SWAGGER_TEMPLATE'])

    # Only the hash is kept around for login checks.
    app.config['ADMIN_PASSWORD_HASH'] = bcrypt.generate_password_hash(
        app.config['ADMIN_PASSWORD']).decode('utf-8')

    register_error_handlers(app)

    with app.app_context():
        db.create_all()
        monitor.instrument(db.engine)
        response_cache.clear()

    app.extensions['bookshop'] = SimpleNamespace(
        catalog=CatalogService(db.session, response_cache),
        customers=CustomerService(db.session, response_cache),
        orders=OrderLifecycle(
            db.session,
            response_cache,
            retry=RetryPolicy(app.config['ORDER_CREATE_MAX_ATTEMPTS'],
                              app.config['ORDER_RETRY_BASE_DELAY']),
            transaction_timeout=app.config['ORDER_TRANSACTION_TIMEOUT'],
            default_return_days=app.config['DEFAULT_RETURN_DAYS'],
        ),
    )

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.cli.command('seed')
    def seed_command():
        """Add sample authors, books and customers to an empty database."""
        added = seed_sample_data()
        print(f"Successfully added {added} books.")

    app.logger.info('Bookshop app created (database: %s)', app.config['SQLALCHEMY_DATABASE_URI'])
    return app
