import os

from dotenv import load_dotenv

load_dotenv()

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


def _engine_options():
    isolation_level = os.getenv('DB_ISOLATION_LEVEL')
    if not isolation_level:
        return {}
    return {'isolation_level': isolation_level}


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'a_very_secret_key_that_should_be_changed')

    # --- Database ---
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL', 'sqlite:///' + os.path.join(basedir, 'bookshop.db'))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Order transactions expect READ COMMITTED; SQLite has no such level,
    # so it is only applied when DB_ISOLATION_LEVEL is set.
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options()

    # --- Cache ---
    CACHE_TYPE = os.getenv('CACHE_TYPE', 'SimpleCache')
    CACHE_DEFAULT_TIMEOUT = int(os.getenv('CACHE_DEFAULT_TIMEOUT', 300))

    # --- Auth ---
    ADMIN_USERNAME = os.getenv('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD', 'admin')
    TOKEN_TTL_MINUTES = int(os.getenv('TOKEN_TTL_MINUTES', 60 * 24 * 7))

    # --- Orders ---
    ORDER_CREATE_MAX_ATTEMPTS = int(os.getenv('ORDER_CREATE_MAX_ATTEMPTS', 3))
    ORDER_RETRY_BASE_DELAY = float(os.getenv('ORDER_RETRY_BASE_DELAY', 1.0))
    ORDER_TRANSACTION_TIMEOUT = float(os.getenv('ORDER_TRANSACTION_TIMEOUT', 10))
    DEFAULT_RETURN_DAYS = int(os.getenv('DEFAULT_RETURN_DAYS', 14))

    # --- Monitoring ---
    SLOW_QUERY_THRESHOLD_MS = int(os.getenv('SLOW_QUERY_THRESHOLD_MS', 1000))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    SWAGGER_TEMPLATE = {
        "swagger": "2.0",
        "info": {
            "title": "Bookshop Manager API",
            "description": "API for the book rental shop: catalog, customers, orders and payments.",
            "version": "1.0.0"
        },
        "basePath": "/",
        "schemes": ["http"],
        "securityDefinitions": {
            "APIKeyHeader": {
                "type": "apiKey",
                "name": "x-access-token",
                "in": "header",
                "description": "JWT Token"
            }
        }
    }


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing-secret-key-with-enough-length-for-hs256'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    CACHE_TYPE = 'SimpleCache'
    ADMIN_USERNAME = 'tester'
    ADMIN_PASSWORD = 'secret'
    ORDER_RETRY_BASE_DELAY = 0.0
    BCRYPT_LOG_ROUNDS = 4
    LOG_LEVEL = 'DEBUG'
