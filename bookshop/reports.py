"""Report data for the export endpoint. Only the data is assembled here;
how it is laid out in a file is the client's concern."""

from datetime import datetime

from .dates import day_bounds, month_bounds
from .errors import InvalidInput
from .models import ORDER_COMPLETED, ORDER_PENDING, Book, Customer, Order, OrderDetail, Payment

REPORT_TYPES = ('all', 'orders', 'customers', 'books', 'payments')


def _parse_day(value, label):
    try:
        return datetime.strptime(value, '%Y-%m-%d')
    except (TypeError, ValueError):
        raise InvalidInput(f'{label} must be a YYYY-MM-DD date')


def date_window(date_range, start_date=None, end_date=None, today=None):
    """Return ``(start, end)`` for the range, or ``None`` for no filter."""
    today = today or datetime.now()
    if date_range == 'custom' and start_date and end_date:
        start = _parse_day(start_date, 'startDate')
        end = day_bounds(_parse_day(end_date, 'endDate'))[1]
        if end < start:
            raise InvalidInput('endDate is before startDate')
        return start, end
    if date_range == 'daily':
        return day_bounds(today)
    if date_range == 'monthly':
        return month_bounds(today.year, today.month)
    return None


def _status_filter(include_returned, include_pending):
    if not include_returned and not include_pending:
        raise InvalidInput('No status selected')
    if include_returned and not include_pending:
        return ORDER_COMPLETED
    if include_pending and not include_returned:
        return ORDER_PENDING
    return None


def _payments_by_order(session, order_ids):
    totals = {}
    if not order_ids:
        return totals
    for payment in session.query(Payment).filter(Payment.order_id.in_(order_ids)):
        totals[payment.order_id] = totals.get(payment.order_id, 0) + payment.amount
    return totals


def _orders(session, window, status):
    query = session.query(Order)
    if window:
        query = query.filter(Order.order_date.between(*window))
    if status is not None:
        query = query.filter(Order.status == status)
    return query.order_by(Order.order_date.desc()).all()


def orders_report(session, window, status):
    orders = _orders(session, window, status)
    payments = _payments_by_order(session, [o.id for o in orders])
    return [{
        'orderId': order.id,
        'customerName': order.customer_name,
        'orderDate': order.order_date.isoformat(),
        'returnDate': order.return_date.isoformat() if order.return_date else None,
        'status': 'Completed' if order.status == ORDER_COMPLETED else 'Pending',
        'booksCount': len(order.details),
        'totalPayment': payments.get(order.id, 0)
    } for order in orders]


def customers_report(session, window):
    orders = _orders(session, window, None)
    payments = _payments_by_order(session, [o.id for o in orders])
    per_customer = {}
    for order in orders:
        stats = per_customer.setdefault(order.customer_id, [0, 0])
        stats[0] += 1
        stats[1] += payments.get(order.id, 0)

    rows = []
    for customer in session.query(Customer).order_by(Customer.name.asc()):
        total_orders, total_payments = per_customer.get(customer.id, (0, 0))
        rows.append({
            'customerId': customer.id,
            'name': customer.name,
            'contact': customer.contact,
            'registrationNo': customer.registration_no,
            'registrationDate': customer.date.isoformat(),
            'totalOrders': total_orders,
            'totalPayments': total_payments
        })
    return rows


def books_report(session, window):
    query = session.query(OrderDetail.book_id).join(Order)
    if window:
        query = query.filter(Order.order_date.between(*window))
    borrowed = {}
    for (book_id,) in query:
        borrowed[book_id] = borrowed.get(book_id, 0) + 1

    return [{
        'bookId': book.id,
        'title': book.name,
        'author': book.author_name,
        'price': book.price,
        'timesBorrowed': borrowed.get(book.id, 0),
        'available': book.qty
    } for book in session.query(Book).order_by(Book.name.asc())]


def payments_report(session, window):
    query = session.query(Payment)
    if window:
        query = query.filter(Payment.return_date.between(*window))
    return [p.to_dict() for p in query.order_by(Payment.return_date.desc())]


def assemble(session, report_type='all', date_range='monthly', start_date=None,
             end_date=None, include_returned=False, include_pending=False, today=None):
    if report_type not in REPORT_TYPES:
        raise InvalidInput(f'Unknown report type {report_type!r}')
    status = _status_filter(include_returned, include_pending)
    window = date_window(date_range, start_date, end_date, today)

    data = {}
    if report_type in ('all', 'orders'):
        data['orders'] = orders_report(session, window, status)
    if report_type in ('all', 'customers'):
        data['customers'] = customers_report(session, window)
    if report_type in ('all', 'books'):
        data['books'] = books_report(session, window)
    if report_type in ('all', 'payments'):
        data['payments'] = payments_report(session, window)
    return data
