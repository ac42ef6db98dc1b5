from datetime import datetime

from flask import Blueprint, jsonify

from ..auth import token_required
from ..extensions import db
from .. import reports
from . import json_body

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


@reports_bp.route('/export', methods=['POST'])
@token_required
def export():
    """
    Export report data as a JSON attachment
    ---
    tags: [Reports]
    security:
      - APIKeyHeader: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          id: ReportRequest
          properties:
            reportType: {type: string, enum: [all, orders, customers, books, payments]}
            dateRange: {type: string, enum: [daily, monthly, custom, all]}
            startDate: {type: string, format: date}
            endDate: {type: string, format: date}
            includeReturned: {type: boolean}
            includePending: {type: boolean}
    responses:
      200: {description: Report data.}
      400: {description: Unknown report type or no status selected.}
    """
    data = json_body()
    report = reports.assemble(
        db.session,
        report_type=data.get('reportType', 'all'),
        date_range=data.get('dateRange', 'monthly'),
        start_date=data.get('startDate'),
        end_date=data.get('endDate'),
        include_returned=bool(data.get('includeReturned')),
        include_pending=bool(data.get('includePending')),
    )
    filename = f"report-{datetime.now().strftime('%Y-%m-%d')}.json"
    response = jsonify(report)
    response.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
