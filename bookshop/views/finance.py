from datetime import datetime

from flask import Blueprint, jsonify, request

from ..auth import token_required
from ..extensions import db
from .. import finance

finance_bp = Blueprint('finance', __name__, url_prefix='/api/finance')


@finance_bp.route('/daily', methods=['GET'])
@token_required
def daily():
    """
    Payments per day of a month
    ---
    tags: [Finance]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: month, in: query, type: integer, description: "1-12, defaults to the current month"}
      - {name: year, in: query, type: integer, description: Defaults to the current year}
    responses:
      200: {description: Daily totals.}
      400: {description: Invalid month or year.}
    """
    today = datetime.now()
    month = request.args.get('month', today.month, type=int)
    year = request.args.get('year', today.year, type=int)
    return jsonify(finance.daily(db.session, year, month))


@finance_bp.route('/monthly', methods=['GET'])
@token_required
def monthly():
    """
    Payments per month of a year
    ---
    tags: [Finance]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: year, in: query, type: integer, description: Defaults to the current year}
    responses:
      200: {description: Monthly totals.}
    """
    year = request.args.get('year', datetime.now().year, type=int)
    return jsonify(finance.monthly(db.session, year))
