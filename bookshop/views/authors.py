from flask import Blueprint, jsonify, request

from ..auth import token_required
from ..errors import InvalidInput
from . import json_body, search_arg, services

authors_bp = Blueprint('authors', __name__, url_prefix='/api/authors')


@authors_bp.route('', methods=['GET'])
@token_required
def list_authors():
    """
    List authors with their book counts
    ---
    tags: [Authors]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: search, in: query, type: string, required: false}
    responses:
      200: {description: All matching authors.}
    """
    authors = services().catalog.list_authors(search_arg())
    return jsonify({'authors': authors, 'total': len(authors)})


@authors_bp.route('/<author_id>', methods=['GET'])
@token_required
def get_author(author_id):
    """
    Get one author
    ---
    tags: [Authors]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: author_id, in: path, type: integer, required: true}
    responses:
      200: {description: The author.}
      404: {description: Author not found.}
    """
    catalog = services().catalog
    author = catalog.get_author(author_id)
    return jsonify({'author': author.to_dict(book_count=catalog.author_book_count(author.id))})


@authors_bp.route('', methods=['POST'])
@token_required
def create_author():
    """
    Create an author
    ---
    tags: [Authors]
    security:
      - APIKeyHeader: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          id: Author
          required: [name]
          properties:
            name: {type: string}
    responses:
      201: {description: Author created.}
      400: {description: Missing name or duplicate author.}
    """
    author = services().catalog.create_author(json_body().get('name'))
    return jsonify(author.to_dict()), 201


@authors_bp.route('/<author_id>', methods=['PUT'])
@token_required
def update_author(author_id):
    """
    Rename an author
    Books keep the author name they were written with.
    ---
    tags: [Authors]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: author_id, in: path, type: integer, required: true}
      - name: body
        in: body
        required: true
        schema: { $ref: "#/definitions/Author" }
    responses:
      200: {description: Author renamed.}
      404: {description: Author not found.}
    """
    author = services().catalog.rename_author(author_id, json_body().get('name'))
    return jsonify({'author': author.to_dict(), 'message': 'Author updated successfully'})


@authors_bp.route('/<author_id>', methods=['DELETE'])
@token_required
def delete_author(author_id):
    """
    Delete an author without books
    ---
    tags: [Authors]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: author_id, in: path, type: integer, required: true}
    responses:
      200: {description: Author deleted.}
      409: {description: The author still has books.}
    """
    services().catalog.delete_author(author_id)
    return jsonify({'message': 'Author deleted successfully'})


@authors_bp.route('', methods=['DELETE'])
@token_required
def delete_author_by_query():
    """
    Delete an author given as ?id=
    ---
    tags: [Authors]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: id, in: query, type: integer, required: true}
    responses:
      200: {description: Author deleted.}
      400: {description: Author ID is required.}
    """
    author_id = request.args.get('id')
    if not author_id:
        raise InvalidInput('Author ID is required')
    services().catalog.delete_author(author_id)
    return jsonify({'message': 'Author deleted successfully'})
