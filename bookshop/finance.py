from collections import OrderedDict

from .dates import month_bounds
from .errors import InvalidInput
from .models import Payment


def _check_period(year, month=None):
    if not 1 <= year <= 9999:
        raise InvalidInput('Invalid year')
    if month is not None and not 1 <= month <= 12:
        raise InvalidInput('Invalid month')


def daily(session, year, month):
    """Payments of one month grouped by the day they were last paid."""
    _check_period(year, month)
    start, end = month_bounds(year, month)
    payments = (session.query(Payment)
                .filter(Payment.return_date >= start, Payment.return_date <= end)
                .order_by(Payment.return_date.asc())
                .all())

    days = OrderedDict()
    for payment in payments:
        day = payment.return_date.date().isoformat()
        bucket = days.setdefault(day, {'total': 0, 'orders': 0, 'customers': set()})
        bucket['total'] += payment.amount
        bucket['orders'] += 1
        bucket['customers'].add(payment.customer_id)

    return [{
        'date': day,
        'totalPayments': bucket['total'],
        'orderCount': bucket['orders'],
        'customerCount': len(bucket['customers'])
    } for day, bucket in days.items()]


def monthly(session, year):
    _check_period(year)
    start, _ = month_bounds(year, 1)
    _, end = month_bounds(year, 12)
    payments = (session.query(Payment)
                .filter(Payment.return_date >= start, Payment.return_date <= end)
                .all())

    months = {}
    for payment in payments:
        bucket = months.setdefault(payment.return_date.month,
                                   {'total': 0, 'orders': 0, 'customers': set()})
        bucket['total'] += payment.amount
        bucket['orders'] += 1
        bucket['customers'].add(payment.customer_id)

    return [{
        'month': month,
        'year': year,
        'totalPayments': bucket['total'],
        'orderCount': bucket['orders'],
        'customerCount': len(bucket['customers'])
    } for month, bucket in sorted(months.items())]
