from flask import Blueprint, jsonify, request

from ..auth import token_required
from ..errors import InvalidInput
from ..models import ORDER_COMPLETED, ORDER_PENDING
from ..pagination import page_args
from . import json_body, no_store, search_arg, services

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')

STATUS_ARGS = {
    '0': ORDER_PENDING, 'pending': ORDER_PENDING,
    '1': ORDER_COMPLETED, 'completed': ORDER_COMPLETED,
}


def _status_arg():
    value = (request.args.get('status') or '').strip().lower()
    if not value or value == 'all':
        return None
    if value not in STATUS_ARGS:
        raise InvalidInput(f'Unknown order status {value!r}')
    return STATUS_ARGS[value]


@orders_bp.route('', methods=['GET'])
@token_required
def list_orders():
    """
    List orders, newest first
    ---
    tags: [Orders]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: page, in: query, type: integer, default: 1}
      - {name: limit, in: query, type: integer, default: 10}
      - {name: status, in: query, type: string, enum: [all, pending, completed]}
      - {name: search, in: query, type: string, description: Customer name or order ID}
    responses:
      200: {description: A page of orders with their line items.}
    """
    page, limit = page_args(request.args)
    orders, pagination = services().orders.list_orders(page, limit, _status_arg(), search_arg())
    return no_store(jsonify({'orders': orders, 'pagination': pagination}))


@orders_bp.route('', methods=['POST'])
@token_required
def create_order():
    """
    Rent books to a customer
    Stock is reserved for every book in one transaction; either all of it
    is reserved or nothing is.
    ---
    tags: [Orders]
    security:
      - APIKeyHeader: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          id: NewOrder
          required: [customerId, books]
          properties:
            customerId: {type: integer}
            books:
              type: array
              description: Book IDs, or objects with bookId and quantity.
              items: {}
            loan: {type: number, description: Amount added to the customer's loan.}
            returnDays: {type: integer, default: 14}
    responses:
      201: {description: Order created.}
      400: {description: Invalid customer or books.}
      404: {description: Customer or book not found.}
      409: {description: Not enough copies in stock.}
      503: {description: Database busy after all retries.}
    """
    data = json_body()
    order = services().orders.create(
        data.get('customerId'),
        data.get('books'),
        loan_amount=data.get('loan') or 0,
        return_days=data.get('returnDays'),
    )
    return no_store(jsonify({
        'message': 'Order created successfully',
        'order': order.to_dict(include_details=True)
    })), 201


@orders_bp.route('/<order_id>', methods=['GET'])
@token_required
def get_order(order_id):
    """
    Get an order with the fee owed for its pending books
    ---
    tags: [Orders]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: order_id, in: path, type: integer, required: true}
    responses:
      200: {description: The order with totalPayment.}
      404: {description: Order not found.}
    """
    order, fee = services().orders.quote(order_id)
    data = order.to_dict(include_details=True)
    data.update({
        'daysElapsed': fee.days_elapsed,
        'feePerBook': fee.fee_per_book,
        'pendingCount': fee.pending_count,
        'totalPayment': fee.total,
        'currentPayment': 0
    })
    return no_store(jsonify(data))


@orders_bp.route('/<order_id>/complete', methods=['POST'])
@token_required
def complete_order(order_id):
    """
    Return some or all pending books of an order
    ---
    tags: [Orders]
    security:
      - APIKeyHeader: []
    parameters:
      - {name: order_id, in: path, type: integer, required: true}
      - name: body
        in: body
        required: true
        schema:
          id: Completion
          required: [selectedBooks]
          properties:
            selectedBooks: {type: array, items: {type: integer}}
            currentPayment: {type: number, description: Computed from the fee tiers when omitted.}
    responses:
      200: {description: Books returned and payment recorded.}
      400: {description: No books selected.}
      404: {description: Order not found.}
      409: {description: A selected book is not pending on this order.}
    """
    data = json_body()
    result = services().orders.complete(
        order_id, data.get('selectedBooks'), current_payment=data.get('currentPayment'))
    return no_store(jsonify({
        'success': True,
        'message': 'Order completed successfully' if result.order_completed
                   else 'Selected books returned',
        'remainingPendingBooks': result.remaining_pending,
        'completedBooks': result.completed_book_ids,
        'orderFullyCompleted': result.order_completed,
        'amountCharged': result.amount_charged,
        'paymentTotal': result.payment_total
    }))
