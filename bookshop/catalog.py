import logging

from sqlalchemy import func

from .cache import cache_keys
from .errors import Conflict, InvalidInput, NotFound, parse_id
from .models import ITEM_PENDING, Author, Book, OrderDetail
from .pagination import paginate
from .store import transaction

logger = logging.getLogger(__name__)

BOOK_LIST_TTL = 300
BOOK_SEARCH_TTL = 60
BOOK_TTL = 600
AUTHOR_LIST_TTL = 600


def _required_text(value, label):
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f'{label} is required')
    return value.strip()


def _non_negative_int(value, label):
    if isinstance(value, bool):
        raise InvalidInput(f'{label} must be a non-negative integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'{label} must be a non-negative integer')
    if number < 0:
        raise InvalidInput(f'{label} must be a non-negative integer')
    return number


class CatalogService:
    def __init__(self, session, cache=None):
        self.session = session
        self.cache = cache

    # === Authors ===

    def list_authors(self, search=''):
        key = cache_keys.authors(search)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        query = (self.session.query(Author, func.count(Book.id))
                 .outerjoin(Book, Book.author_id == Author.id)
                 .group_by(Author.id))
        if search:
            query = query.filter(Author.name.icontains(search, autoescape=True))
        rows = query.order_by(Author.name.asc()).all()
        data = [author.to_dict(book_count=count) for author, count in rows]

        if self.cache is not None:
            self.cache.set(key, data, AUTHOR_LIST_TTL)
        return data

    def get_author(self, author_id):
        author = self.session.get(Author, parse_id(author_id, 'author ID'))
        if author is None:
            raise NotFound('Author not found')
        return author

    def author_book_count(self, author_id):
        return self.session.query(Book).filter_by(author_id=author_id).count()

    def _ensure_unique_author(self, name, exclude_id=None):
        query = self.session.query(Author).filter(func.lower(Author.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Author.id != exclude_id)
        if query.first() is not None:
            raise InvalidInput('Author with this name already exists')

    def create_author(self, name):
        name = _required_text(name, 'Author name')
        self._ensure_unique_author(name)
        with transaction(self.session, 'create author'):
            author = Author(name=name)
            self.session.add(author)
        self._invalidate_authors()
        return author

    def rename_author(self, author_id, name):
        author = self.get_author(author_id)
        name = _required_text(name, 'Author name')
        self._ensure_unique_author(name, exclude_id=author.id)
        # Book.author_name keeps the name the book was written with.
        with transaction(self.session, f'rename author {author.id}'):
            author.name = name
        self._invalidate_authors()
        return author

    def delete_author(self, author_id):
        author = self.get_author(author_id)
        if self.author_book_count(author.id):
            raise Conflict('Cannot delete author with existing books. Please remove all books first.')
        with transaction(self.session, f'delete author {author.id}'):
            self.session.delete(author)
        self._invalidate_authors()

    # === Books ===

    def list_books(self, page, limit, search=''):
        key = cache_keys.books(page, limit, search)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        query = self.session.query(Book)
        if search:
            query = query.filter(
                Book.name.icontains(search, autoescape=True)
                | Book.author_name.icontains(search, autoescape=True)
                | Book.isbn.icontains(search, autoescape=True))
        books, pagination = paginate(query.order_by(Book.id.desc()), page, limit)
        data = {'books': [b.to_dict() for b in books], 'pagination': pagination}

        if self.cache is not None:
            self.cache.set(key, data, BOOK_SEARCH_TTL if search else BOOK_LIST_TTL)
        return data

    def get_book(self, book_id):
        book = self.session.get(Book, parse_id(book_id, 'book ID'))
        if book is None:
            raise NotFound('Book not found')
        return book

    def book_details(self, book_id):
        book_id = parse_id(book_id, 'book ID')
        key = cache_keys.book(book_id)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        book = self.get_book(book_id)
        details = (self.session.query(OrderDetail)
                   .filter_by(book_id=book.id)
                   .order_by(OrderDetail.order_id.desc())
                   .all())
        data = book.to_dict()
        data['orderDetails'] = [d.to_dict() for d in details]

        if self.cache is not None:
            self.cache.set(key, data, BOOK_TTL)
        return data

    def create_book(self, name, author_id, isbn, price, qty=0):
        name = _required_text(name, 'Book name')
        isbn = _required_text(isbn, 'ISBN')
        if price in (None, ''):
            raise InvalidInput('Missing required fields')
        price = _non_negative_int(price, 'Price')
        qty = _non_negative_int(qty or 0, 'Quantity')
        author = self.get_author(author_id)

        with transaction(self.session, 'create book'):
            book = Book(name=name, author_id=author.id, author_name=author.name,
                        isbn=isbn, price=price, qty=qty)
            self.session.add(book)
        self._invalidate_book(book.id)
        logger.info('Book %s created (%s)', book.id, name)
        return book

    def update_book(self, book_id, name=None, author_id=None, isbn=None, price=None, qty=None):
        book = self.get_book(book_id)
        author = self.get_author(author_id) if author_id else None
        changes = {}
        if name:
            changes['name'] = _required_text(name, 'Book name')
        if author is not None:
            changes['author_id'] = author.id
            changes['author_name'] = author.name
        if isbn:
            changes['isbn'] = _required_text(isbn, 'ISBN')
        if price not in (None, ''):
            changes['price'] = _non_negative_int(price, 'Price')
        if qty is not None:
            changes['qty'] = _non_negative_int(qty, 'Quantity')

        with transaction(self.session, f'update book {book.id}'):
            for field, value in changes.items():
                setattr(book, field, value)
        self._invalidate_book(book.id)
        return book

    def delete_book(self, book_id):
        book = self.get_book(book_id)
        book_id = book.id
        pending = (self.session.query(OrderDetail)
                   .filter_by(book_id=book.id, status=ITEM_PENDING)
                   .first())
        if pending is not None:
            raise Conflict('Cannot delete book with pending orders. '
                           'Please complete or cancel all pending orders first.')
        with transaction(self.session, f'delete book {book.id}'):
            self.session.query(OrderDetail).filter_by(book_id=book_id).delete(
                synchronize_session=False)
            self.session.delete(book)
        self._invalidate_book(book_id)
        logger.info('Book %s deleted', book_id)

    def _invalidate_book(self, book_id):
        if self.cache is None:
            return
        self.cache.delete(cache_keys.book(book_id))
        self.cache.clear_pattern('^books:')
        self.cache.clear_pattern('^authors:')

    def _invalidate_authors(self):
        if self.cache is not None:
            self.cache.clear_pattern('^authors:')
