# tests/test_fees.py
from datetime import timedelta

import pytest

from bookshop import fees
from bookshop.fees import FeeQuote

from .conftest import ORDER_DATE


@pytest.mark.parametrize('days_later, expected_day', [
    (0, 1),
    (13, 14),
    (14, 15),
    (20, 21),
])
def test_days_elapsed_counts_order_day(days_later, expected_day):
    """The order day itself is day 1"""
    assert fees.days_elapsed(ORDER_DATE, ORDER_DATE + timedelta(days=days_later)) == expected_day


def test_partial_day_does_not_count_as_a_new_day():
    as_of = ORDER_DATE + timedelta(days=13, hours=23)
    assert fees.days_elapsed(ORDER_DATE, as_of) == 14


@pytest.mark.parametrize('days_later, fee', [
    (0, 50),
    (13, 50),
    (14, 80),
    (20, 80),
    (21, 110),
    (27, 110),
    (28, 140),
    (34, 140),
])
def test_fee_tiers(days_later, fee):
    """Flat fee for two weeks, then 30 per started week"""
    assert fees.compute_fee_per_book(ORDER_DATE, ORDER_DATE + timedelta(days=days_later)) == fee


def test_fee_never_decreases():
    previous = 0
    for day in range(0, 120):
        fee = fees.compute_fee_per_book(ORDER_DATE, ORDER_DATE + timedelta(days=day))
        assert fee >= previous
        previous = fee


def test_total_pending_scales_with_count():
    as_of = ORDER_DATE + timedelta(days=20)
    assert fees.compute_total_pending(3, ORDER_DATE, as_of) == 240
    assert fees.compute_total_pending(0, ORDER_DATE, as_of) == 0


def test_current_payment_is_proportional_share():
    assert fees.compute_current_payment(1, 100, 2) == 50
    assert fees.compute_current_payment(2, 160, 2) == 160


def test_current_payment_with_nothing_pending_is_zero():
    assert fees.compute_current_payment(1, 0, 0) == 0


def test_quote():
    result = fees.quote(ORDER_DATE, 2, ORDER_DATE + timedelta(days=20))
    assert result == FeeQuote(days_elapsed=21, fee_per_book=80, pending_count=2, total=160)
