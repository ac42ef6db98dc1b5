from flask import Blueprint, jsonify, request

from ..auth import token_required
from ..pagination import page_args
from . import json_body, search_arg, services

books_bp = Blueprint('books', __name__, url_prefix='/api/books')


@books_bp.route('', methods=['GET'])
@token_required
def list_books():
    """
    List books with search and pagination (cached)
    Search is a case-insensitive match on name, author name and ISBN.
    ---
    tags: [Books]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: search, in: query, type: string, required: false}
      - {name: page, in: query, type: integer, default: 1}
      - {name: limit, in: query, type: integer, default: 10}
    responses:
      200: {description: A page of books.}
      401: {description: Missing or invalid token.}
    """
    page, limit = page_args(request.args)
    data = services().catalog.list_books(page, limit, search_arg())
    return jsonify(data)


@books_bp.route('/<book_id>', methods=['GET'])
@token_required
def get_book(book_id):
    """
    Get one book with its order history (cached)
    ---
    tags: [Books]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: book_id, in: path, type: integer, required: true}
    responses:
      200: {description: The book.}
      404: {description: Book not found.}
    """
    return jsonify(services().catalog.book_details(book_id))


@books_bp.route('', methods=['POST'])
@token_required
def create_book():
    """
    Add a book to the catalog
    ---
    tags: [Books]
    security:
      - APIKeyHeader: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          id: Book
          required: [name, authorId, isbn, price]
          properties:
            name: {type: string}
            authorId: {type: integer}
            isbn: {type: string}
            price: {type: integer}
            qty: {type: integer}
    responses:
      201: {description: Book created.}
      400: {description: Missing required fields.}
      404: {description: Author not found.}
    """
    data = json_body()
    if not data.get('name') or not data.get('authorId') or not data.get('isbn') \
            or data.get('price') in (None, ''):
        return jsonify({'error': 'Missing required fields'}), 400
    book = services().catalog.create_book(
        data['name'], data['authorId'], data['isbn'], data['price'], data.get('qty', 0))
    return jsonify(book.to_dict()), 201


@books_bp.route('/<book_id>', methods=['PUT'])
@token_required
def update_book(book_id):
    """
    Update a book (only the fields sent are changed)
    ---
    tags: [Books]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: book_id, in: path, type: integer, required: true}
      - name: body
        in: body
        required: true
        schema: { $ref: "#/definitions/Book" }
    responses:
      200: {description: Book updated.}
      404: {description: Book or author not found.}
    """
    data = json_body()
    book = services().catalog.update_book(
        book_id,
        name=data.get('name'),
        author_id=data.get('authorId'),
        isbn=data.get('isbn'),
        price=data.get('price'),
        qty=data.get('qty'),
    )
    return jsonify(book.to_dict())


@books_bp.route('/<book_id>', methods=['DELETE'])
@token_required
def delete_book(book_id):
    """
    Delete a book and its returned order lines
    ---
    tags: [Books]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: book_id, in: path, type: integer, required: true}
    responses:
      200: {description: Book deleted.}
      409: {description: The book is on a pending order.}
    """
    services().catalog.delete_book(book_id)
    return jsonify({'success': True})
