"""Error taxonomy shared by the core modules and the HTTP layer."""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

# Largest value a 64-bit signed INTEGER column can hold.
MAX_ID = 2 ** 63 - 1


class BookshopError(Exception):
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class Unauthorized(BookshopError):
    status_code = 401
    message = 'Unauthorized'


class NotFound(BookshopError):
    status_code = 404
    message = 'Not found'


class InvalidInput(BookshopError):
    status_code = 400
    message = 'Invalid input'


class InsufficientStock(BookshopError):
    status_code = 409
    message = 'Insufficient stock'

    def __init__(self, book_id, book_name, available, requested):
        super().__init__(
            f'Book "{book_name}" has only {available} copies available, but {requested} requested')
        self.book_id = book_id
        self.available = available
        self.requested = requested


class Conflict(BookshopError):
    status_code = 409
    message = 'Conflict'


class TransientStoreFailure(BookshopError):
    status_code = 503
    message = 'Database is busy, please retry'


class InternalFailure(BookshopError):
    status_code = 500
    message = 'Internal server error'


def parse_id(value, label='ID'):
    """Return ``value`` as a positive int or raise InvalidInput."""
    if isinstance(value, bool):
        raise InvalidInput(f'Invalid {label}')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'Invalid {label}')
    if number <= 0 or number > MAX_ID or (isinstance(value, float) and value != number):
        raise InvalidInput(f'Invalid {label}')
    return number


def register_error_handlers(app):
    @app.errorhandler(BookshopError)
    def handle_bookshop_error(error):
        if isinstance(error, InternalFailure):
            # Internal detail stays in the log.
            logger.error('Internal failure: %s', error.message)
            return jsonify({'error': InternalFailure.message}), error.status_code
        return jsonify({'error': error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception('Unhandled error: %s', error)
        return jsonify({'error': 'Internal server error'}), 500
