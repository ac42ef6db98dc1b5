import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..auth import token_required
from ..extensions import db, monitor, response_cache
from ..models import Author, Book, Customer, Order

logger = logging.getLogger(__name__)

system_bp = Blueprint('system', __name__, url_prefix='/api')


@system_bp.route('/health', methods=['GET'])
def health():
    """
    Database health check
    ---
    tags: [System]
    responses:
      200: {description: Database reachable; includes row counts.}
      500: {description: Database unreachable.}
    """
    try:
        db.session.execute(text('SELECT 1'))
        counts = {
            'books': db.session.query(Book).count(),
            'authors': db.session.query(Author).count(),
            'customers': db.session.query(Customer).count(),
            'orders': db.session.query(Order).count()
        }
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error('Health check failed: %s', exc)
        return jsonify({
            'status': 'unhealthy',
            'database': 'disconnected',
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), 500
    return jsonify({
        'status': 'healthy',
        'database': 'connected',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'counts': counts
    })


@system_bp.route('/performance', methods=['GET'])
@token_required
def performance():
    """
    Query timing and cache statistics
    ---
    tags: [System]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: includeSlowQueries, in: query, type: boolean, default: false}
      - {name: threshold, in: query, type: integer, description: Slow query threshold in ms}
    responses:
      200: {description: Performance statistics.}
    """
    threshold = request.args.get(
        'threshold', current_app.config['SLOW_QUERY_THRESHOLD_MS'], type=int)
    data = {
        'database': monitor.get_stats(threshold),
        'cache': response_cache.stats(),
        'timestamp': datetime.now(timezone.utc).isoformat()
    }
    if request.args.get('includeSlowQueries', '').lower() == 'true':
        data['slowQueries'] = monitor.get_slow_queries(threshold)
    return jsonify(data)


@system_bp.route('/performance/clear', methods=['POST'])
@token_required
def clear_performance():
    """
    Reset query metrics and/or the response cache
    ---
    tags: [System]
    security:
      - APIKeyHeader: []
    parameters:
      - name: body
        in: body
        schema:
          properties:
            clearMetrics: {type: boolean}
            clearCache: {type: boolean}
    responses:
      200: {description: Cleared.}
    """
    data = request.get_json(silent=True) or {}
    cleared = []
    if data.get('clearMetrics'):
        monitor.clear()
        cleared.append('metrics')
    if data.get('clearCache'):
        response_cache.clear()
        cleared.append('cache')
    logger.info('Performance data cleared: %s', ', '.join(cleared) or 'nothing')
    return jsonify({'success': True, 'cleared': cleared})
