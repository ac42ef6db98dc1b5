# tests/test_orders.py
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from bookshop.errors import (Conflict, InsufficientStock, InvalidInput, NotFound,
                             TransientStoreFailure)
from bookshop.extensions import db
from bookshop.models import (ITEM_PENDING, ITEM_RETURNED, ORDER_COMPLETED, ORDER_PENDING, Book,
                             Loan, Order, OrderDetail, Payment)
from bookshop.orders import normalize_line_items

from .conftest import ORDER_DATE


def _qty(book_id):
    return db.session.get(Book, book_id).qty


# === normalize_line_items ===

def test_normalize_accepts_ids_and_objects():
    items = normalize_line_items([3, {'bookId': 4, 'quantity': 2}])
    assert [(i.book_id, i.quantity) for i in items] == [(3, 1), (4, 2)]


def test_normalize_merges_duplicate_books():
    items = normalize_line_items([3, {'bookId': 3, 'quantity': 2}, 5])
    assert [(i.book_id, i.quantity) for i in items] == [(3, 3), (5, 1)]


@pytest.mark.parametrize('items', [[], None, 'abc', [0], [{'bookId': 1, 'quantity': 0}]])
def test_normalize_rejects_invalid_items(items):
    with pytest.raises(InvalidInput):
        normalize_line_items(items)


# === create ===

def test_create_reserves_stock_and_records_line_items(lifecycle, seeded):
    order = lifecycle.create(seeded['customer'], [seeded['book'], seeded['other_book']])

    assert order.status == ORDER_PENDING
    assert order.customer_name == 'Nguyễn Văn An'
    assert order.order_date == ORDER_DATE
    assert order.return_date == ORDER_DATE + timedelta(days=14)
    assert [(d.book_id, d.book_name, d.author_name, d.status) for d in order.details] == [
        (seeded['book'], 'Lão Hạc', 'Nam Cao', ITEM_PENDING),
        (seeded['other_book'], 'Đời Thừa', 'Nam Cao', ITEM_PENDING),
    ]
    assert _qty(seeded['book']) == 4
    assert _qty(seeded['other_book']) == 1


def test_create_with_custom_return_days(lifecycle, seeded):
    order = lifecycle.create(seeded['customer'], [seeded['book']], return_days=7)
    assert order.return_date == ORDER_DATE + timedelta(days=7)


def test_create_merges_duplicates_into_one_line_item(lifecycle, seeded):
    order = lifecycle.create(seeded['customer'], [seeded['book'], seeded['book']])
    assert len(order.details) == 1
    assert _qty(seeded['book']) == 3


def test_insufficient_stock_rolls_back_whole_order(lifecycle, seeded):
    """A failing middle item leaves no order and no stock change behind"""
    with pytest.raises(InsufficientStock):
        lifecycle.create(seeded['customer'],
                         [seeded['book'], seeded['out_of_stock'], seeded['other_book']])

    assert db.session.query(Order).count() == 0
    assert db.session.query(OrderDetail).count() == 0
    assert _qty(seeded['book']) == 5
    assert _qty(seeded['other_book']) == 2


def test_unknown_book_rolls_back(lifecycle, seeded):
    with pytest.raises(NotFound):
        lifecycle.create(seeded['customer'], [seeded['book'], 9999])
    assert db.session.query(Order).count() == 0
    assert _qty(seeded['book']) == 5


def test_unknown_customer(lifecycle, seeded):
    with pytest.raises(NotFound):
        lifecycle.create(9999, [seeded['book']])
    assert _qty(seeded['book']) == 5


@pytest.mark.parametrize('customer_id, books', [
    (None, [1]),
    ('abc', [1]),
    (1, []),
    (1, None),
])
def test_create_validates_before_touching_the_store(lifecycle, customer_id, books):
    with pytest.raises(InvalidInput):
        lifecycle.create(customer_id, books)
    assert db.session.query(Order).count() == 0


def test_transient_failure_is_retried_with_backoff(lifecycle, seeded, sleeps, monkeypatch):
    real_create_once = lifecycle._create_once
    calls = []

    def flaky(*args):
        calls.append(args)
        if len(calls) < 3:
            raise TransientStoreFailure()
        return real_create_once(*args)

    monkeypatch.setattr(lifecycle, '_create_once', flaky)
    order = lifecycle.create(seeded['customer'], [seeded['book']])

    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]
    assert order.id is not None
    assert db.session.query(Order).count() == 1
    assert _qty(seeded['book']) == 4


def test_retries_exhausted_surface_last_error(lifecycle, seeded, sleeps, monkeypatch):
    calls = []

    def always_busy(*args):
        calls.append(args)
        raise TransientStoreFailure()

    monkeypatch.setattr(lifecycle, '_create_once', always_busy)
    with pytest.raises(TransientStoreFailure):
        lifecycle.create(seeded['customer'], [seeded['book']])

    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]


def test_business_errors_are_not_retried(lifecycle, seeded, sleeps):
    with pytest.raises(InsufficientStock):
        lifecycle.create(seeded['customer'], [seeded['out_of_stock']])
    assert sleeps == []


def test_transaction_over_time_budget_is_transient(lifecycle, seeded, sleeps):
    lifecycle.transaction_timeout = -1
    with pytest.raises(TransientStoreFailure):
        lifecycle.create(seeded['customer'], [seeded['book']])

    assert len(sleeps) == 2
    assert db.session.query(Order).count() == 0
    assert _qty(seeded['book']) == 5


def test_loan_is_accrued_after_order(lifecycle, seeded):
    lifecycle.create(seeded['customer'], [seeded['book']], loan_amount=25)
    lifecycle.create(seeded['customer'], [seeded['book']], loan_amount=15)

    loan = db.session.query(Loan).filter_by(customer_id=seeded['customer']).one()
    assert loan.amount == 40


def test_loan_failure_does_not_fail_the_order(lifecycle, seeded):
    with patch('bookshop.ledger.accrue_loan', side_effect=SQLAlchemyError('loan table locked')):
        order = lifecycle.create(seeded['customer'], [seeded['book']], loan_amount=25)

    assert db.session.get(Order, order.id) is not None
    assert db.session.query(Loan).count() == 0
    assert _qty(seeded['book']) == 4


def test_negative_loan_is_rejected(lifecycle, seeded):
    with pytest.raises(InvalidInput):
        lifecycle.create(seeded['customer'], [seeded['book']], loan_amount=-5)
    assert db.session.query(Order).count() == 0


# === complete ===

@pytest.fixture
def order_id(lifecycle, seeded):
    return lifecycle.create(seeded['customer'], [seeded['book'], seeded['other_book']]).id


def test_partial_then_final_completion(lifecycle, seeded, order_id):
    """Return one book on day 14 and the other on day 21"""
    first = lifecycle.complete(order_id, [seeded['book']], as_of=ORDER_DATE + timedelta(days=13))

    assert first.amount_charged == 50
    assert first.payment_total == 50
    assert first.remaining_pending == 1
    assert first.order_completed is False
    assert _qty(seeded['book']) == 5
    assert db.session.get(Order, order_id).status == ORDER_PENDING

    final_date = ORDER_DATE + timedelta(days=20)
    second = lifecycle.complete(order_id, [seeded['other_book']], as_of=final_date)

    assert second.amount_charged == 80
    assert second.payment_total == 130
    assert second.remaining_pending == 0
    assert second.order_completed is True
    assert _qty(seeded['other_book']) == 2

    order = db.session.get(Order, order_id)
    assert order.status == ORDER_COMPLETED
    assert order.return_date == final_date
    assert all(d.status == ITEM_RETURNED for d in order.details)

    payment = db.session.query(Payment).filter_by(order_id=order_id).one()
    assert payment.amount == 130
    assert payment.customer_name == 'Nguyễn Văn An'
    assert payment.return_date == final_date


def test_explicit_payment_overrides_fee_schedule(lifecycle, seeded, order_id):
    result = lifecycle.complete(order_id, [seeded['book'], seeded['other_book']],
                                current_payment=42)
    assert result.amount_charged == 42
    assert result.payment_total == 42
    assert result.order_completed is True


def test_completing_a_returned_book_again_conflicts(lifecycle, seeded, order_id):
    lifecycle.complete(order_id, [seeded['book']], as_of=ORDER_DATE)

    with pytest.raises(Conflict):
        lifecycle.complete(order_id, [seeded['book']], as_of=ORDER_DATE)

    assert _qty(seeded['book']) == 5
    assert db.session.query(Payment).filter_by(order_id=order_id).one().amount == 50


def test_conflict_leaves_other_selected_books_pending(lifecycle, seeded, order_id):
    lifecycle.complete(order_id, [seeded['book']], as_of=ORDER_DATE)

    with pytest.raises(Conflict):
        lifecycle.complete(order_id, [seeded['other_book'], seeded['book']], as_of=ORDER_DATE)

    detail = db.session.get(OrderDetail, (order_id, seeded['other_book']))
    assert detail.status == ITEM_PENDING
    assert _qty(seeded['other_book']) == 1


def test_returned_line_item_restocks_one_copy(lifecycle, seeded):
    order = lifecycle.create(seeded['customer'], [{'bookId': seeded['book'], 'quantity': 2}])
    assert _qty(seeded['book']) == 3

    lifecycle.complete(order.id, [seeded['book']], as_of=ORDER_DATE)
    assert _qty(seeded['book']) == 4


def test_complete_validation(lifecycle, seeded, order_id):
    with pytest.raises(InvalidInput):
        lifecycle.complete(order_id, [])
    with pytest.raises(InvalidInput):
        lifecycle.complete(order_id, ['abc'])
    with pytest.raises(NotFound):
        lifecycle.complete(9999, [seeded['book']])
    with pytest.raises(InvalidInput):
        lifecycle.complete(order_id, [seeded['book']], current_payment=-1)


# === reads ===

def test_quote_reports_fee_for_pending_books(lifecycle, seeded, order_id):
    order, fee = lifecycle.quote(order_id, as_of=ORDER_DATE + timedelta(days=20))
    assert order.id == order_id
    assert fee.fee_per_book == 80
    assert fee.pending_count == 2
    assert fee.total == 160


def test_list_orders_filters_and_searches(lifecycle, seeded, order_id):
    lifecycle.complete(order_id, [seeded['book'], seeded['other_book']], as_of=ORDER_DATE)
    pending_id = lifecycle.create(seeded['customer'], [seeded['book']]).id

    orders, pagination = lifecycle.list_orders(1, 10)
    assert [o['id'] for o in orders] == [pending_id, order_id]
    assert pagination == {'currentPage': 1, 'limit': 10, 'totalItems': 2, 'totalPages': 1}
    assert orders[1]['statusText'] == 'COMPLETED'
    assert orders[1]['totalAmount'] == 75

    pending, _ = lifecycle.list_orders(1, 10, status=ORDER_PENDING)
    assert [o['id'] for o in pending] == [pending_id]

    by_name, _ = lifecycle.list_orders(1, 10, search='văn an')
    assert len(by_name) == 2

    by_id, _ = lifecycle.list_orders(1, 10, search=str(order_id))
    assert [o['id'] for o in by_id] == [order_id]


@pytest.mark.parametrize('search', ['99999999999999999999', '²', '١'])
def test_list_orders_ignores_ids_that_are_not_plain_integers(lifecycle, seeded, search):
    lifecycle.create(seeded['customer'], [seeded['book']])
    orders, pagination = lifecycle.list_orders(1, 10, search=search)
    assert orders == []
    assert pagination['totalItems'] == 0
