from flask import Blueprint, jsonify, request

from ..auth import token_required
from ..pagination import page_args
from . import json_body, search_arg, services

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


@customers_bp.route('', methods=['GET'])
@token_required
def list_customers():
    """
    List customers with order counts and loan amount
    ---
    tags: [Customers]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: search, in: query, type: string, required: false}
      - {name: page, in: query, type: integer, default: 1}
      - {name: limit, in: query, type: integer, default: 10}
    responses:
      200: {description: A page of customers.}
    """
    page, limit = page_args(request.args)
    customers, pagination = services().customers.list_customers(page, limit, search_arg())
    return jsonify({'customers': customers, 'pagination': pagination})


@customers_bp.route('/<customer_id>', methods=['GET'])
@token_required
def get_customer(customer_id):
    """
    Get one customer (cached)
    ---
    tags: [Customers]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: customer_id, in: path, type: integer, required: true}
    responses:
      200: {description: The customer.}
      404: {description: Customer not found.}
    """
    return jsonify(services().customers.details(customer_id))


@customers_bp.route('/<customer_id>/history', methods=['GET'])
@token_required
def customer_history(customer_id):
    """
    Books a customer has borrowed, newest order first
    ---
    tags: [Customers]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: customer_id, in: path, type: integer, required: true}
      - {name: search, in: query, type: string, required: false, description: Book or author name}
    responses:
      200: {description: Line items of the customer.}
    """
    return jsonify(services().customers.history(customer_id, search_arg()))


@customers_bp.route('', methods=['POST'])
@token_required
def create_customer():
    """
    Register a customer
    ---
    tags: [Customers]
    security:
      - APIKeyHeader: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          id: Customer
          required: [name, contact, registrationNo]
          properties:
            name: {type: string}
            contact: {type: string}
            registrationNo: {type: string}
    responses:
      201: {description: Customer created.}
      400: {description: Missing fields or registration number already used.}
    """
    data = json_body()
    customer = services().customers.create(
        data.get('name'), data.get('contact'), data.get('registrationNo'))
    return jsonify(customer.to_dict()), 201


@customers_bp.route('/<customer_id>', methods=['PUT'])
@token_required
def update_customer(customer_id):
    """
    Update a customer
    ---
    tags: [Customers]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: customer_id, in: path, type: integer, required: true}
      - name: body
        in: body
        required: true
        schema: { $ref: "#/definitions/Customer" }
    responses:
      200: {description: Customer updated.}
      404: {description: Customer not found.}
    """
    data = json_body()
    customer = services().customers.update(
        customer_id, data.get('name'), data.get('contact'), data.get('registrationNo'))
    return jsonify(customer.to_dict())


@customers_bp.route('/<customer_id>', methods=['DELETE'])
@token_required
def delete_customer(customer_id):
    """
    Delete a customer with their orders, payments and loan
    ---
    tags: [Customers]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: customer_id, in: path, type: integer, required: true}
    responses:
      200: {description: Customer and related data deleted.}
      404: {description: Customer not found.}
      409: {description: The customer has pending orders.}
    """
    services().customers.delete(customer_id)
    return jsonify({
        'success': True,
        'message': 'Customer and all related data deleted successfully'
    })
