# tests/conftest.py
from datetime import datetime

import pytest

from bookshop import create_app
from bookshop.catalog import CatalogService
from bookshop.config import TestingConfig
from bookshop.customers import CustomerService
from bookshop.extensions import db, response_cache
from bookshop.models import Author, Book, Customer
from bookshop.orders import OrderLifecycle, RetryPolicy

ORDER_DATE = datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def app():
    """Create an application bound to a fresh in-memory database"""
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    """Push an application context for tests that call services directly"""
    with app.app_context():
        yield app


@pytest.fixture
def seeded(app):
    """One author with three books and one customer; returns their IDs"""
    with app.app_context():
        author = Author(name='Nam Cao')
        db.session.add(author)
        db.session.flush()
        books = [
            Book(name='Lão Hạc', author_id=author.id, author_name=author.name,
                 isbn='978-1', price=45, qty=5),
            Book(name='Chí Phèo', author_id=author.id, author_name=author.name,
                 isbn='978-2', price=40, qty=0),
            Book(name='Đời Thừa', author_id=author.id, author_name=author.name,
                 isbn='978-3', price=30, qty=2),
        ]
        db.session.add_all(books)
        customer = Customer(name='Nguyễn Văn An', contact='0901234567',
                            registration_no='REG-0001', date=ORDER_DATE)
        db.session.add(customer)
        db.session.commit()
        return {
            'author': author.id,
            'book': books[0].id,
            'out_of_stock': books[1].id,
            'other_book': books[2].id,
            'customer': customer.id,
        }


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def lifecycle(app_ctx, seeded, sleeps):
    """Order controller with a fixed clock and a recorded backoff"""
    return OrderLifecycle(
        db.session,
        response_cache,
        clock=lambda: ORDER_DATE,
        retry=RetryPolicy(3, 0.5),
        sleep=sleeps.append,
    )


@pytest.fixture
def catalog(app_ctx):
    return CatalogService(db.session, response_cache)


@pytest.fixture
def customers(app_ctx):
    return CustomerService(db.session, response_cache, clock=lambda: ORDER_DATE)


@pytest.fixture
def token(client):
    response = client.post('/api/auth/login', json={'username': 'tester', 'password': 'secret'})
    assert response.status_code == 200
    return response.get_json()['token']


@pytest.fixture
def auth_headers(token):
    return {'x-access-token': token}
