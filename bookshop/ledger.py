"""Payment and loan ledgers. Both only ever accumulate."""

import logging
from collections import namedtuple

from .errors import InvalidInput
from .models import Loan, Payment

logger = logging.getLogger(__name__)

LoanAccrual = namedtuple('LoanAccrual', ['customer_id', 'amount', 'ok', 'error'])


def _check_amount(amount):
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidInput('Payment amount must be a number')
    if amount < 0:
        raise InvalidInput('Payment amount cannot be negative')


def accrue(session, order, amount, as_of):
    """Add ``amount`` to the payment of (order, customer), creating it on first use."""
    _check_amount(amount)
    payment = (session.query(Payment)
               .filter_by(order_id=order.id, customer_id=order.customer_id)
               .with_for_update()
               .first())
    if payment is None:
        payment = Payment(
            order_id=order.id,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            order_date=order.order_date,
            amount=amount,
            return_date=as_of,
        )
        session.add(payment)
    else:
        payment.amount += amount
        payment.return_date = as_of
    session.flush()
    return payment


def accrue_loan(session, customer_id, amount):
    _check_amount(amount)
    loan = session.query(Loan).filter_by(customer_id=customer_id).with_for_update().first()
    if loan is None:
        loan = Loan(customer_id=customer_id, amount=amount)
        session.add(loan)
    else:
        loan.amount += amount
    session.flush()
    return loan


def accrue_loan_best_effort(session, customer_id, amount):
    """Accrue a loan in its own commit; report failure instead of raising."""
    try:
        accrue_loan(session, customer_id, amount)
        session.commit()
    except Exception as exc:
        session.rollback()
        logger.warning('Loan update failed for customer %s (amount %s), order kept: %s',
                       customer_id, amount, exc)
        return LoanAccrual(customer_id, amount, False, str(exc))
    return LoanAccrual(customer_id, amount, True, None)
