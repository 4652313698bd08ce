"""
Messages Routes Blueprint

Message log and WhatsApp link actions:
- /api/messages: list and create
- /api/messages/client/<client_id>: a client's history
- /api/messages/<id>/status: delivery status updates
- /api/messages/post-delivery/<order_id>, /re-engagement/<client_id>,
  /payment-reminder/<client_id>: wa.me links with a Pending message
- /api/messages/inactive-clients: clients without recent orders
"""

import logging
from flask import Blueprint, request, jsonify, current_app

from auth import protect_blueprint, current_user_id
from database.connection import get_db_session
from services.message_repository import MessageRepository
from services.messaging_service import MessagingService
from services.orders_repository import OrdersRepository
from validators import validate_message, validate_message_status, validate_uuid
from app.utils.helpers import get_pagination, pagination_info, get_json_body

logger = logging.getLogger(__name__)

# Create blueprint
messages_bp = protect_blueprint(Blueprint('messages_bp', __name__))


def get_messaging(session):
    return MessagingService(session, shop_name=current_app.config['SHOP_NAME'], user_id=current_user_id())


# ============================================================================
# MESSAGE LOG
# ============================================================================

@messages_bp.route('', methods=['GET'])
@messages_bp.route('/', methods=['GET'])
def list_messages():
    page, limit = get_pagination(default_limit=50)
    with get_db_session() as session:
        messages, total = MessageRepository(session).list_messages(
            status=request.args.get('status'),
            message_type=request.args.get('type'),
            client_id=request.args.get('client_id'),
            page=page,
            limit=limit
        )
    return jsonify({'messages': messages, 'pagination': pagination_info(page, limit, total)})


@messages_bp.route('/client/<client_id>', methods=['GET'])
def client_messages(client_id):
    client_id = validate_uuid(client_id, 'client_id')
    with get_db_session() as session:
        messages = MessageRepository(session).client_history(client_id)
    return jsonify({'messages': messages})


@messages_bp.route('', methods=['POST'])
@messages_bp.route('/', methods=['POST'])
def create_message():
    data = validate_message(get_json_body())
    with get_db_session() as session:
        message = MessageRepository(session, user_id=current_user_id()).create_message(data)
    return jsonify({'message': 'Message created successfully', 'data': message}), 201


@messages_bp.route('/<message_id>/status', methods=['PATCH'])
def update_message_status(message_id):
    message_id = validate_uuid(message_id, 'id')
    data = validate_message_status(get_json_body())
    with get_db_session() as session:
        message = MessageRepository(session).update_status(message_id, data['status'], data.get('metadata'))
    if not message:
        return jsonify({'error': 'Message not found'}), 404
    return jsonify({'message': 'Message status updated successfully', 'data': message})


# ============================================================================
# WHATSAPP ACTIONS
# ============================================================================

@messages_bp.route('/post-delivery/<order_id>', methods=['POST'])
def post_delivery(order_id):
    """Thank-you message after an order is delivered"""
    order_id = validate_uuid(order_id, 'order_id')
    with get_db_session() as session:
        order = OrdersRepository(session).get_order_model(order_id)
        if not order:
            return jsonify({'error': 'Order not found'}), 404
        result = get_messaging(session).send_post_delivery_message(order)
    return jsonify(result)


@messages_bp.route('/re-engagement/<client_id>', methods=['POST'])
def re_engagement(client_id):
    client_id = validate_uuid(client_id, 'client_id')
    with get_db_session() as session:
        result = get_messaging(session).send_re_engagement_message(client_id)
    return jsonify(result)


@messages_bp.route('/payment-reminder/<client_id>', methods=['POST'])
def payment_reminder(client_id):
    """Reminder for the client's outstanding balance across open orders"""
    client_id = validate_uuid(client_id, 'client_id')
    with get_db_session() as session:
        result = get_messaging(session).send_payment_reminder(client_id)
    if result is None:
        return jsonify({'error': 'No outstanding payments'}), 400
    return jsonify(result)


@messages_bp.route('/inactive-clients', methods=['GET'])
def inactive_clients():
    with get_db_session() as session:
        messaging = get_messaging(session)
        clients = [messaging.inactive_client_summary(c) for c in messaging.find_inactive_clients()]
    return jsonify({'clients': clients, 'count': len(clients)})
