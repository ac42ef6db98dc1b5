import logging
from datetime import datetime

from .extensions import db
from .models import Author, Book, Customer

logger = logging.getLogger(__name__)

SAMPLE_BOOKS = [
    {'name': 'Lão Hạc', 'author': 'Nam Cao', 'isbn': '978-604-1-00001-1', 'price': 45, 'qty': 5},
    {'name': 'Chí Phèo', 'author': 'Nam Cao', 'isbn': '978-604-1-00002-8', 'price': 40, 'qty': 5},
    {'name': 'Số Đỏ', 'author': 'Vũ Trọng Phụng', 'isbn': '978-604-1-00003-5', 'price': 60, 'qty': 3},
    {'name': 'Dế Mèn Phiêu Lưu Ký', 'author': 'Tô Hoài', 'isbn': '978-604-1-00004-2', 'price': 55, 'qty': 10},
    {'name': 'Nhà Giả Kim', 'author': 'Paulo Coelho', 'isbn': '978-604-1-00005-9', 'price': 80, 'qty': 8},
    {'name': 'Đắc Nhân Tâm', 'author': 'Dale Carnegie', 'isbn': '978-604-1-00006-6', 'price': 75, 'qty': 15},
    {'name': 'Mắt Biếc', 'author': 'Nguyễn Nhật Ánh', 'isbn': '978-604-1-00007-3', 'price': 65, 'qty': 9},
    {'name': 'Tôi Thấy Hoa Vàng Trên Cỏ Xanh', 'author': 'Nguyễn Nhật Ánh', 'isbn': '978-604-1-00008-0', 'price': 70, 'qty': 12},
    {'name': '1984', 'author': 'George Orwell', 'isbn': '978-604-1-00009-7', 'price': 90, 'qty': 5},
    {'name': 'Hoàng Tử Bé', 'author': 'Antoine de Saint-Exupéry', 'isbn': '978-604-1-00010-3', 'price': 50, 'qty': 10},
]

SAMPLE_CUSTOMERS = [
    {'name': 'Nguyễn Văn An', 'contact': '0901234567', 'registration_no': 'REG-0001'},
    {'name': 'Trần Thị Bình', 'contact': '0912345678', 'registration_no': 'REG-0002'},
    {'name': 'Lê Minh Châu', 'contact': '0923456789', 'registration_no': 'REG-0003'},
]


def seed_sample_data():
    """Insert sample authors, books and customers into an empty catalog.

    Returns the number of books added (0 when books already exist).
    """
    if db.session.query(Book).first() is not None:
        logger.info('Books already present, skipping sample data')
        return 0

    authors = {}
    for data in SAMPLE_BOOKS:
        name = data['author']
        if name not in authors:
            authors[name] = Author(name=name)
            db.session.add(authors[name])
    db.session.flush()

    books = [Book(name=data['name'], author_id=authors[data['author']].id,
                  author_name=data['author'], isbn=data['isbn'],
                  price=data['price'], qty=data['qty'])
             for data in SAMPLE_BOOKS]
    db.session.add_all(books)

    now = datetime.now()
    for data in SAMPLE_CUSTOMERS:
        if db.session.query(Customer).filter_by(registration_no=data['registration_no']).first():
            continue
        db.session.add(Customer(date=now, **data))

    db.session.commit()
    logger.info('Added %d sample books by %d authors', len(books), len(authors))
    return len(books)
