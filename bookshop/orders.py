"""Order lifecycle: creation with stock reservation, (partial) completion
with restocking and payment accrual."""

import logging
import time
from collections import OrderedDict, namedtuple

from . import fees, inventory, ledger
from .cache import cache_keys
from .dates import add_days, current_local_date
from .errors import MAX_ID, Conflict, InvalidInput, NotFound, TransientStoreFailure, parse_id
from .models import (ITEM_PENDING, ITEM_RETURNED, ORDER_COMPLETED, ORDER_PENDING, Book,
                     Customer, Order, OrderDetail)
from .pagination import paginate
from .store import transaction

logger = logging.getLogger(__name__)

RetryPolicy = namedtuple('RetryPolicy', ['max_attempts', 'base_delay'])
LineItem = namedtuple('LineItem', ['book_id', 'quantity'])
CompletionResult = namedtuple('CompletionResult', [
    'order_id',
    'remaining_pending',
    'order_completed',
    'completed_book_ids',
    'amount_charged',
    'payment_total',
])

STATUS_TEXT = {ORDER_PENDING: 'PENDING', ORDER_COMPLETED: 'COMPLETED'}


def normalize_line_items(items):
    """Accept ``[book_id, ...]`` or ``[{"bookId": .., "quantity": ..}, ...]``.

    Repeated book ids collapse into one line item with the summed quantity.
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise InvalidInput('Missing required fields or invalid books array')
    merged = OrderedDict()
    for item in items:
        if isinstance(item, dict):
            book_id = parse_id(item.get('bookId'), 'book ID')
            quantity = item.get('quantity', 1)
        else:
            book_id = parse_id(item, 'book ID')
            quantity = 1
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidInput(f'Invalid quantity for book {book_id}')
        merged[book_id] = merged.get(book_id, 0) + quantity
    return [LineItem(book_id, quantity) for book_id, quantity in merged.items()]


def _check_amount(amount, label):
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount < 0:
        raise InvalidInput(f'{label} must be a non-negative number')


class OrderLifecycle:
    def __init__(self, session, cache=None, clock=current_local_date,
                 retry=RetryPolicy(3, 1.0), transaction_timeout=10.0,
                 default_return_days=14, sleep=time.sleep):
        self.session = session
        self.cache = cache
        self.clock = clock
        self.retry = retry
        self.transaction_timeout = transaction_timeout
        self.default_return_days = default_return_days
        self._sleep = sleep

    # --- creation ---

    def create(self, customer_id, line_items, loan_amount=0, return_days=None,
               return_due_date=None):
        customer_id = parse_id(customer_id, 'customer ID')
        items = normalize_line_items(line_items)
        _check_amount(loan_amount or 0, 'Loan amount')
        if return_days is None:
            return_days = self.default_return_days
        elif isinstance(return_days, bool) or not isinstance(return_days, int) or return_days < 0:
            raise InvalidInput('returnDays must be a non-negative integer')

        customer = self.session.get(Customer, customer_id)
        if customer is None:
            raise NotFound('Customer not found')

        order_date = self.clock()
        due = return_due_date or add_days(order_date, return_days)
        order = self._create_with_retry(customer.id, customer.name, items, order_date, due)

        if loan_amount:
            ledger.accrue_loan_best_effort(self.session, customer_id, loan_amount)

        self._invalidate(customer_id)
        logger.info('Order %s created for customer %s with %d book(s)',
                    order.id, customer_id, len(items))
        return order

    def _create_with_retry(self, customer_id, customer_name, items, order_date, due):
        attempt = 1
        while True:
            try:
                return self._create_once(customer_id, customer_name, items, order_date, due)
            except TransientStoreFailure as exc:
                logger.warning('Order creation attempt %d/%d failed for customer %s: %s',
                               attempt, self.retry.max_attempts, customer_id, exc)
                if attempt >= self.retry.max_attempts:
                    raise
                self._sleep(self.retry.base_delay * 2 ** (attempt - 1))
                attempt += 1

    def _create_once(self, customer_id, customer_name, items, order_date, due):
        with transaction(self.session, 'create order', timeout=self.transaction_timeout):
            order = Order(
                customer_id=customer_id,
                customer_name=customer_name,
                order_date=order_date,
                return_date=due,
                status=ORDER_PENDING,
            )
            self.session.add(order)
            self.session.flush()

            for item in items:
                book = inventory.reserve(self.session, item.book_id, item.quantity)
                self.session.add(OrderDetail(
                    order_id=order.id,
                    book_id=book.id,
                    customer_id=customer_id,
                    book_name=book.name,
                    author_name=book.author_name,
                    status=ITEM_PENDING,
                ))
        return order

    # --- completion ---

    def complete(self, order_id, selected_book_ids, current_payment=None, as_of=None):
        order_id = parse_id(order_id, 'order ID')
        if not isinstance(selected_book_ids, (list, tuple)) or not selected_book_ids:
            raise InvalidInput('No books selected')
        book_ids = list(OrderedDict.fromkeys(parse_id(b, 'book ID') for b in selected_book_ids))
        if current_payment is not None:
            _check_amount(current_payment, 'currentPayment')

        order = self.session.get(Order, order_id)
        if order is None:
            raise NotFound('Order not found')
        if order.customer is None:
            raise NotFound('Customer not found')
        customer_id = order.customer_id
        as_of = as_of or self.clock()

        with transaction(self.session, f'complete order {order_id}'):
            pending = (self.session.query(OrderDetail)
                       .filter(OrderDetail.order_id == order_id,
                               OrderDetail.status == ITEM_PENDING)
                       .with_for_update()
                       .all())
            pending_ids = {detail.book_id for detail in pending}
            not_pending = [book_id for book_id in book_ids if book_id not in pending_ids]
            if not_pending:
                raise Conflict(f'Books {not_pending} are not pending on order {order_id}')

            if current_payment is None:
                total_pending_fee = fees.compute_total_pending(
                    len(pending), order.order_date, as_of)
                current_payment = fees.compute_current_payment(
                    len(book_ids), total_pending_fee, len(pending))

            selected = set(book_ids)
            for detail in pending:
                if detail.book_id in selected:
                    detail.status = ITEM_RETURNED
                    inventory.restock(self.session, detail.book_id, 1)

            remaining = (self.session.query(OrderDetail)
                         .filter_by(order_id=order_id, status=ITEM_PENDING)
                         .count())
            if remaining == 0:
                order.status = ORDER_COMPLETED
                order.return_date = as_of

            payment = ledger.accrue(self.session, order, current_payment, as_of)
            payment_total = payment.amount

        self._invalidate(customer_id)
        logger.info('Order %s: returned books %s, charged %s, %d still pending',
                    order_id, book_ids, current_payment, remaining)
        return CompletionResult(
            order_id=order_id,
            remaining_pending=remaining,
            order_completed=remaining == 0,
            completed_book_ids=book_ids,
            amount_charged=current_payment,
            payment_total=payment_total,
        )

    # --- reads ---

    def get(self, order_id):
        order = self.session.get(Order, parse_id(order_id, 'order ID'))
        if order is None:
            raise NotFound('Order not found')
        return order

    def quote(self, order_id, as_of=None):
        """Return the order and the fee currently owed for its pending books."""
        order = self.get(order_id)
        pending_count = sum(1 for d in order.details if d.status == ITEM_PENDING)
        return order, fees.quote(order.order_date, pending_count, as_of or self.clock())

    def list_orders(self, page, limit, status=None, search=''):
        query = self.session.query(Order)
        if status is not None:
            query = query.filter(Order.status == status)
        if search:
            condition = Order.customer_name.icontains(search, autoescape=True)
            if search.isascii() and search.isdigit() and int(search) <= MAX_ID:
                condition = condition | (Order.id == int(search))
            query = query.filter(condition)
        orders, pagination = paginate(query.order_by(Order.order_date.desc(), Order.id.desc()),
                                      page, limit)

        book_ids = {d.book_id for o in orders for d in o.details}
        prices = {}
        if book_ids:
            prices = dict(self.session.query(Book.id, Book.price).filter(Book.id.in_(book_ids)))

        data = []
        for order in orders:
            item = order.to_dict(include_details=True)
            item['statusText'] = STATUS_TEXT.get(order.status, 'PENDING')
            item['quantity'] = len(order.details)
            item['totalAmount'] = sum(prices.get(d.book_id, 0) for d in order.details)
            data.append(item)
        return data, pagination

    def _invalidate(self, customer_id):
        if self.cache is None:
            return
        # Stock changed for the books involved.
        self.cache.clear_pattern('^(orders|books?):')
        self.cache.delete(cache_keys.customer(customer_id))
