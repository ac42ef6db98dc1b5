from .extensions import db

# Order.status
ORDER_PENDING = 0
ORDER_COMPLETED = 1

# OrderDetail.status
ITEM_PENDING = 0
ITEM_RETURNED = 1


def _iso(value):
    return value.isoformat() if value else None


class Author(db.Model):
    __tablename__ = 'authors'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)

    books = db.relationship('Book', back_populates='author')

    def to_dict(self, book_count=None):
        data = {'id': self.id, 'name': self.name}
        if book_count is not None:
            data['bookCount'] = book_count
        return data


class Book(db.Model):
    __tablename__ = 'books'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('authors.id'), nullable=False)
    # Copied from Author.name when the book is written; never resynchronised.
    author_name = db.Column(db.String(200), nullable=False)
    isbn = db.Column(db.String(32), nullable=False)
    price = db.Column(db.Integer, nullable=False, default=0)
    qty = db.Column(db.Integer, nullable=False, default=0)

    author = db.relationship('Author', back_populates='books')

    __table_args__ = (
        db.CheckConstraint('qty >= 0', name='ck_books_qty_nonnegative'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'authorId': self.author_id,
            'authorName': self.author_name,
            'isbn': self.isbn,
            'price': self.price,
            'qty': self.qty
        }


class Customer(db.Model):
    __tablename__ = 'customers'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    contact = db.Column(db.String(100), nullable=False)
    registration_no = db.Column(db.String(100), nullable=False, unique=True)
    date = db.Column(db.DateTime, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'contact': self.contact,
            'registrationNo': self.registration_no,
            'date': _iso(self.date)
        }


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False, index=True)
    customer_name = db.Column(db.String(200), nullable=False)
    order_date = db.Column(db.DateTime, nullable=False)
    # Due date while pending, actual return date once completed.
    return_date = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.Integer, nullable=False, default=ORDER_PENDING)

    customer = db.relationship('Customer')
    details = db.relationship(
        'OrderDetail', back_populates='order', cascade='all, delete-orphan',
        order_by='OrderDetail.book_id')

    @property
    def is_completed(self):
        return self.status == ORDER_COMPLETED

    def to_dict(self, include_details=False):
        data = {
            'id': self.id,
            'customerId': self.customer_id,
            'customerName': self.customer_name,
            'orderDate': _iso(self.order_date),
            'returnDate': _iso(self.return_date),
            'status': self.status
        }
        if include_details:
            data['orderDetails'] = [d.to_dict() for d in self.details]
        return data


class OrderDetail(db.Model):
    __tablename__ = 'order_details'

    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), primary_key=True)
    book_id = db.Column(db.Integer, db.ForeignKey('books.id'), primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False, index=True)
    book_name = db.Column(db.String(255), nullable=False)
    author_name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.Integer, nullable=False, default=ITEM_PENDING)

    order = db.relationship('Order', back_populates='details')
    book = db.relationship('Book')

    def to_dict(self):
        return {
            'orderId': self.order_id,
            'bookId': self.book_id,
            'bookName': self.book_name,
            'authorName': self.author_name,
            'status': self.status
        }


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False)
    customer_name = db.Column(db.String(200), nullable=False)
    amount = db.Column(db.Float, nullable=False, default=0)
    order_date = db.Column(db.DateTime, nullable=False)
    return_date = db.Column(db.DateTime, nullable=False)

    order = db.relationship('Order')

    __table_args__ = (
        db.UniqueConstraint('order_id', 'customer_id', name='uq_payments_order_customer'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'orderId': self.order_id,
            'customerId': self.customer_id,
            'customerName': self.customer_name,
            'amount': self.amount,
            'orderDate': _iso(self.order_date),
            'returnDate': _iso(self.return_date)
        }


class Loan(db.Model):
    __tablename__ = 'loans'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False, unique=True)
    amount = db.Column(db.Float, nullable=False, default=0)

    def to_dict(self):
        return {'id': self.id, 'customerId': self.customer_id, 'amount': self.amount}
