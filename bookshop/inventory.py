from .errors import InsufficientStock, InvalidInput, NotFound
from .models import Book


def _check_quantity(quantity):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInput('Quantity must be a positive integer')


def _locked_book(session, book_id):
    # FOR UPDATE serialises concurrent check-and-decrement on the same row;
    # dialects without row locks (SQLite) ignore it.
    session.flush()
    book = session.get(Book, book_id, with_for_update=True, populate_existing=True)
    if book is None:
        raise NotFound(f'Book with ID {book_id} not found')
    return book


def reserve(session, book_id, quantity=1):
    """Take ``quantity`` copies out of stock inside the caller's transaction."""
    _check_quantity(quantity)
    book = _locked_book(session, book_id)
    if book.qty < quantity:
        raise InsufficientStock(book.id, book.name, book.qty, quantity)
    book.qty -= quantity
    return book


def restock(session, book_id, quantity=1):
    _check_quantity(quantity)
    book = _locked_book(session, book_id)
    book.qty += quantity
    return book
