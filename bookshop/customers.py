import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from .cache import cache_keys
from .errors import (Conflict, InternalFailure, InvalidInput, NotFound, TransientStoreFailure,
                     parse_id)
from .models import ORDER_PENDING, Customer, Loan, Order, OrderDetail, Payment
from .pagination import paginate
from .store import transaction

logger = logging.getLogger(__name__)


def _required_fields(name, contact, registration_no):
    values = []
    for value in (name, contact, registration_no):
        if not isinstance(value, str) or not value.strip():
            raise InvalidInput('Name, contact, and registration number are required')
        values.append(value.strip())
    return values


class CustomerService:
    def __init__(self, session, cache=None, clock=datetime.now):
        self.session = session
        self.cache = cache
        self.clock = clock

    def list_customers(self, page, limit, search=''):
        query = self.session.query(Customer)
        if search:
            query = query.filter(
                Customer.name.icontains(search, autoescape=True)
                | Customer.contact.icontains(search, autoescape=True)
                | Customer.registration_no.icontains(search, autoescape=True))
        customers, pagination = paginate(
            query.order_by(Customer.date.desc(), Customer.id.desc()), page, limit)

        ids = [c.id for c in customers]
        order_counts, pending_counts, loans = {}, {}, {}
        if ids:
            order_counts = dict(self.session.query(Order.customer_id, func.count(Order.id))
                                .filter(Order.customer_id.in_(ids))
                                .group_by(Order.customer_id))
            pending_counts = dict(self.session.query(Order.customer_id, func.count(Order.id))
                                  .filter(Order.customer_id.in_(ids),
                                          Order.status == ORDER_PENDING)
                                  .group_by(Order.customer_id))
            loans = dict(self.session.query(Loan.customer_id, Loan.amount)
                         .filter(Loan.customer_id.in_(ids)))

        data = []
        for customer in customers:
            item = customer.to_dict()
            item['orderCount'] = order_counts.get(customer.id, 0)
            item['pendingOrderCount'] = pending_counts.get(customer.id, 0)
            item['loanAmount'] = loans.get(customer.id, 0)
            data.append(item)
        return data, pagination

    def get(self, customer_id):
        customer = self.session.get(Customer, parse_id(customer_id, 'customer ID'))
        if customer is None:
            raise NotFound('Customer not found')
        return customer

    def details(self, customer_id):
        customer_id = parse_id(customer_id, 'customer ID')
        key = cache_keys.customer(customer_id)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        data = self.get(customer_id).to_dict()
        if self.cache is not None:
            self.cache.set(key, data, 600)
        return data

    def _ensure_unique_registration(self, registration_no, exclude_id=None):
        query = self.session.query(Customer).filter_by(registration_no=registration_no)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first() is not None:
            raise InvalidInput('Registration number already exists')

    def create(self, name, contact, registration_no):
        name, contact, registration_no = _required_fields(name, contact, registration_no)
        self._ensure_unique_registration(registration_no)
        with transaction(self.session, 'create customer'):
            customer = Customer(name=name, contact=contact,
                                registration_no=registration_no, date=self.clock())
            self.session.add(customer)
        self._invalidate(customer.id)
        logger.info('Customer %s registered (%s)', customer.id, registration_no)
        return customer

    def update(self, customer_id, name, contact, registration_no):
        customer = self.get(customer_id)
        name, contact, registration_no = _required_fields(name, contact, registration_no)
        self._ensure_unique_registration(registration_no, exclude_id=customer.id)
        # Orders and payments keep the customer name they were created with.
        with transaction(self.session, f'update customer {customer.id}'):
            customer.name = name
            customer.contact = contact
            customer.registration_no = registration_no
        self._invalidate(customer.id)
        return customer

    def history(self, customer_id, search=''):
        customer_id = parse_id(customer_id, 'customer ID')
        query = self.session.query(OrderDetail).filter(OrderDetail.customer_id == customer_id)
        if search:
            query = query.filter(
                OrderDetail.book_name.icontains(search, autoescape=True)
                | OrderDetail.author_name.icontains(search, autoescape=True))
        history = []
        for detail in query.order_by(OrderDetail.order_id.desc()).all():
            item = detail.to_dict()
            item['order'] = detail.order.to_dict()
            history.append(item)
        return history

    def delete(self, customer_id):
        customer = self.get(customer_id)
        customer_id = customer.id
        pending = (self.session.query(Order)
                   .filter_by(customer_id=customer_id, status=ORDER_PENDING)
                   .count())
        if pending:
            raise Conflict('Cannot delete customer with pending orders. '
                           'Please complete or cancel all pending orders first.')
        try:
            with transaction(self.session, f'delete customer {customer_id}'):
                self._delete_dependents(customer_id)
        except (Conflict, InternalFailure, TransientStoreFailure) as exc:
            logger.error('Transactional delete of customer %s failed, deleting step by step: %s',
                         customer_id, exc)
            self._delete_sequentially(customer_id)
        self._invalidate(customer_id, line_items_removed=True)
        logger.info('Customer %s deleted with related orders and payments', customer_id)

    def _delete_dependents(self, customer_id, commit_each=False):
        # Payments reference orders, so they go first.
        for model in (Payment, OrderDetail, Order, Loan):
            self.session.query(model).filter_by(customer_id=customer_id).delete(
                synchronize_session=False)
            if commit_each:
                self.session.commit()
        self.session.query(Customer).filter_by(id=customer_id).delete(
            synchronize_session=False)
        if commit_each:
            self.session.commit()

    def _delete_sequentially(self, customer_id):
        try:
            self._delete_dependents(customer_id, commit_each=True)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error('Fallback deletion of customer %s failed: %s', customer_id, exc)
            raise InternalFailure('Failed to delete customer and related data') from exc

    def _invalidate(self, customer_id, line_items_removed=False):
        if self.cache is None:
            return
        self.cache.delete(cache_keys.customer(customer_id))
        if line_items_removed:
            # Cached book details embed the deleted line items.
            self.cache.clear_pattern('^(orders|books?):')
