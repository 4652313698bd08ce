"""
Orders Routes Blueprint

Order lifecycle for the tailoring shop:
- /api/orders: list (filters, pagination) and create (JSON or multipart with images)
- /api/orders/<id>: detail, full update, partial update, delete
- /api/orders/<id>/status, /measurements: targeted updates
- /api/orders/<id>/special-requirements, /trial-notes: notes with images
- /api/orders/<id>/items/<item_id>/cost, /additional-services/<service_id>/cost
"""

import logging
from flask import Blueprint, request, jsonify, current_app

from auth import protect_blueprint, current_user_id
from database.connection import get_db_session
from services.orders_repository import OrdersRepository
from services.messaging_service import MessagingService
from services.invoice_service import InvoiceService
from services.storage_service import get_storage_service
from validators import (
    ORDER_STATUSES, ValidationError, validate_order, validate_order_patch, validate_status_update,
    validate_cost_update, validate_uuid
)
from app.utils.helpers import (
    get_pagination, pagination_info, get_json_body, parse_date_args, parse_order_payload, parse_note_payload
)

logger = logging.getLogger(__name__)

# Create blueprint
orders_bp = protect_blueprint(Blueprint('orders_bp', __name__))


def _not_found():
    return jsonify({'error': 'Order not found'}), 404


def _store_requirement_images(files_by_index):
    if not files_by_index:
        return {}
    storage = get_storage_service()
    return {index: storage.save_images(files, 'requirements') for index, files in files_by_index.items()}


def _record_order_received(session, order):
    """Log the automatic confirmation; a failure never fails the order request."""
    try:
        with session.begin_nested():
            MessagingService(session, shop_name=current_app.config['SHOP_NAME']) \
                .create_order_received_message(order, user_id=current_user_id())
    except Exception as e:
        logger.error(f"Failed to record confirmation message for order {order.order_number}: {e}")


# ============================================================================
# LIST / DETAIL
# ============================================================================

@orders_bp.route('', methods=['GET'])
@orders_bp.route('/', methods=['GET'])
def list_orders():
    """List orders, newest first"""
    page, limit = get_pagination(default_limit=20)
    start_date, end_date = parse_date_args()
    status = request.args.get('status')
    if status and status not in ORDER_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}", field='status')

    with get_db_session() as session:
        orders, total = OrdersRepository(session).list_orders(
            status=status,
            client_id=request.args.get('client_id'),
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit
        )
    return jsonify({'orders': orders, 'pagination': pagination_info(page, limit, total)})


@orders_bp.route('/<order_id>', methods=['GET'])
def get_order(order_id):
    order_id = validate_uuid(order_id, 'id')
    with get_db_session() as session:
        order = OrdersRepository(session).get_order(order_id)
    if not order:
        return _not_found()
    return jsonify({'order': order})


# ============================================================================
# CREATE / UPDATE
# ============================================================================

@orders_bp.route('', methods=['POST'])
@orders_bp.route('/', methods=['POST'])
def create_order():
    """Create an order from JSON or multipart form data"""
    raw, files = parse_order_payload()
    data = validate_order(raw)
    images = _store_requirement_images(files)

    with get_db_session() as session:
        order = OrdersRepository(session, user_id=current_user_id()).create_order(data, images)
        _record_order_received(session, order)
        return jsonify({'message': 'Order created successfully', 'order': order.to_dict()}), 201


@orders_bp.route('/<order_id>', methods=['PUT'])
def update_order(order_id):
    """Update an order; provided collections replace the existing ones"""
    order_id = validate_uuid(order_id, 'id')
    raw, files = parse_order_payload()
    data = validate_order(raw, partial=True)
    images = _store_requirement_images(files)

    with get_db_session() as session:
        order = OrdersRepository(session, user_id=current_user_id()).update_order(order_id, data, images)
        if not order:
            return _not_found()
        return jsonify({'message': 'Order updated successfully', 'order': order.to_dict()})


@orders_bp.route('/<order_id>', methods=['PATCH'])
def patch_order(order_id):
    order_id = validate_uuid(order_id, 'id')
    data = validate_order_patch(get_json_body())

    with get_db_session() as session:
        order = OrdersRepository(session).patch_order(order_id, data)
        if not order:
            return _not_found()
        return jsonify({'message': 'Order updated successfully', 'order': order.to_dict()})


@orders_bp.route('/<order_id>/status', methods=['PATCH'])
def update_order_status(order_id):
    order_id = validate_uuid(order_id, 'id')
    data = validate_status_update(get_json_body())

    with get_db_session() as session:
        order = OrdersRepository(session).update_status(
            order_id,
            data['status'],
            cancellation_reason=data.get('cancellation_reason'),
            final_amount=data.get('final_amount')
        )
        if not order:
            return _not_found()
        return jsonify({'message': 'Order status updated successfully', 'order': order.to_dict()})


@orders_bp.route('/<order_id>/measurements', methods=['PUT'])
def update_measurements(order_id):
    order_id = validate_uuid(order_id, 'id')
    measurements = get_json_body()

    with get_db_session() as session:
        order = OrdersRepository(session).replace_measurements(order_id, measurements)
        if not order:
            return _not_found()
        return jsonify({'message': 'Measurements updated successfully', 'order': order.to_dict()})


# ============================================================================
# COSTS
# ============================================================================

@orders_bp.route('/<order_id>/items/<item_id>/cost', methods=['PATCH'])
def update_item_cost(order_id, item_id):
    order_id = validate_uuid(order_id, 'id')
    item_id = validate_uuid(item_id, 'item_id')
    cost = validate_cost_update(get_json_body())

    with get_db_session() as session:
        order = OrdersRepository(session).update_item_cost(order_id, item_id, cost)
        if not order:
            return _not_found()
        return jsonify({'message': 'Item cost updated successfully', 'order': order.to_dict()})


@orders_bp.route('/<order_id>/additional-services/<service_id>/cost', methods=['PATCH'])
def update_service_cost(order_id, service_id):
    order_id = validate_uuid(order_id, 'id')
    service_id = validate_uuid(service_id, 'service_id')
    cost = validate_cost_update(get_json_body())

    with get_db_session() as session:
        order = OrdersRepository(session).update_service_cost(order_id, service_id, cost)
        if not order:
            return _not_found()
        return jsonify({'message': 'Service cost updated successfully', 'order': order.to_dict()})


# ============================================================================
# SPECIAL REQUIREMENTS & TRIAL NOTES
# ============================================================================

@orders_bp.route('/<order_id>/special-requirements', methods=['POST'])
def add_special_requirement(order_id):
    order_id = validate_uuid(order_id, 'id')
    note, files = parse_note_payload()
    if not note:
        return jsonify({'error': 'Note is required'}), 400
    images = get_storage_service().save_images(files, 'requirements')

    with get_db_session() as session:
        order = OrdersRepository(session).add_special_requirement(order_id, note, images)
        if not order:
            return _not_found()
        return jsonify({'message': 'Special requirement added successfully', 'order': order.to_dict()}), 201


@orders_bp.route('/<order_id>/trial-notes', methods=['POST'])
def add_trial_note(order_id):
    order_id = validate_uuid(order_id, 'id')
    note, files = parse_note_payload()
    if not note:
        return jsonify({'error': 'Note is required'}), 400
    images = get_storage_service().save_images(files, 'trial-notes')

    with get_db_session() as session:
        order = OrdersRepository(session).add_trial_note(order_id, note, images)
        if not order:
            return _not_found()
        return jsonify({'message': 'Trial note added successfully', 'order': order.to_dict()}), 201


@orders_bp.route('/<order_id>/trial-notes/<note_id>', methods=['PATCH'])
def update_trial_note(order_id, note_id):
    order_id = validate_uuid(order_id, 'id')
    note_id = validate_uuid(note_id, 'note_id')
    note, files = parse_note_payload()
    if not note and not files:
        raise ValidationError('Note or images are required', field='note')
    images = get_storage_service().save_images(files, 'trial-notes')

    with get_db_session() as session:
        order = OrdersRepository(session).update_trial_note(order_id, note_id, note or None, images)
        if not order:
            return _not_found()
        return jsonify({'message': 'Trial note updated successfully', 'order': order.to_dict()})


@orders_bp.route('/<order_id>/trial-notes/<note_id>', methods=['DELETE'])
def delete_trial_note(order_id, note_id):
    order_id = validate_uuid(order_id, 'id')
    note_id = validate_uuid(note_id, 'note_id')

    with get_db_session() as session:
        result = OrdersRepository(session).delete_trial_note(order_id, note_id)
        if not result:
            return _not_found()
        order, trial_note = result
        storage = get_storage_service()
        for image in trial_note.images or []:
            storage.delete_stored(s3_key=image.get('s3_key'), local_path=image.get('url'))
        return jsonify({'message': 'Trial note deleted successfully', 'order': order.to_dict()})


# ============================================================================
# DELETE
# ============================================================================

@orders_bp.route('/<order_id>', methods=['DELETE'])
def delete_order(order_id):
    """Delete an order with its child rows, invoice record and invoice file"""
    order_id = validate_uuid(order_id, 'id')

    with get_db_session() as session:
        repo = OrdersRepository(session)
        order = repo.get_order_model(order_id, with_children=False)
        if not order:
            return _not_found()
        if order.invoice is not None:
            InvoiceService(session, get_storage_service(), current_app.config).delete_invoice_file(order.invoice)
        repo.delete_order(order_id)
    return jsonify({'message': 'Order deleted successfully'})
