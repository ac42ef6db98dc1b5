"""Rental fee schedule.

Every book costs a flat fee for the first two weeks (the order day counts
as day 1). Each started week after that adds a weekly surcharge:

    days  1-14 -> 50
    days 15-21 -> 80
    days 22-28 -> 110
    days 29-35 -> 140
"""

import math
from collections import namedtuple

BASE_FEE = 50
GRACE_DAYS = 14
WEEKLY_SURCHARGE = 30

SECONDS_PER_DAY = 24 * 3600

FeeQuote = namedtuple('FeeQuote', ['days_elapsed', 'fee_per_book', 'pending_count', 'total'])


def days_elapsed(order_date, as_of):
    """Inclusive day count: the order's own day is day 1."""
    seconds = (as_of - order_date).total_seconds()
    return math.floor(seconds / SECONDS_PER_DAY) + 1


def compute_fee_per_book(order_date, as_of):
    days = days_elapsed(order_date, as_of)
    if days <= GRACE_DAYS:
        return BASE_FEE
    extra_weeks = math.ceil((days - GRACE_DAYS) / 7)
    return BASE_FEE + WEEKLY_SURCHARGE * extra_weeks


def compute_total_pending(pending_count, order_date, as_of):
    return pending_count * compute_fee_per_book(order_date, as_of)


def compute_current_payment(selected_count, total_pending_fee, total_pending_count):
    """Share of the pending fee owed for ``selected_count`` of the pending books."""
    if total_pending_count == 0:
        return 0
    return total_pending_fee * (selected_count / total_pending_count)


def quote(order_date, pending_count, as_of):
    fee = compute_fee_per_book(order_date, as_of)
    return FeeQuote(
        days_elapsed=days_elapsed(order_date, as_of),
        fee_per_book=fee,
        pending_count=pending_count,
        total=pending_count * fee,
    )
