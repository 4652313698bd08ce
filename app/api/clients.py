"""
Clients Routes Blueprint

Client management with pagination and search:
- /api/clients: list and create
- /api/clients/<id>: detail with order stats, update, delete
"""

import logging
from flask import Blueprint, request, jsonify

from auth import protect_blueprint
from database.connection import get_db_session
from services.clients_repository import ClientsRepository
from validators import validate_client, validate_uuid
from app.utils.helpers import get_pagination, pagination_info, get_json_body

logger = logging.getLogger(__name__)

# Create blueprint
clients_bp = protect_blueprint(Blueprint('clients_bp', __name__))


@clients_bp.route('', methods=['GET'])
@clients_bp.route('/', methods=['GET'])
def list_clients():
    """List clients, each with an order summary"""
    page, limit = get_pagination(default_limit=1000)
    sort_order = 'asc' if request.args.get('sort_order') == 'asc' else 'desc'

    with get_db_session() as session:
        clients, total = ClientsRepository(session).list_clients(
            page=page,
            limit=limit,
            search=request.args.get('search'),
            sort_by=request.args.get('sort_by', 'created_at'),
            sort_order=sort_order
        )
    return jsonify({'clients': clients, 'pagination': pagination_info(page, limit, total)})


@clients_bp.route('/<client_id>', methods=['GET'])
def get_client(client_id):
    """Get a client with recent orders and stats"""
    client_id = validate_uuid(client_id, 'id')
    with get_db_session() as session:
        client = ClientsRepository(session).get_client(client_id)
    if not client:
        return jsonify({'error': 'Client not found'}), 404
    return jsonify({'client': client})


@clients_bp.route('', methods=['POST'])
@clients_bp.route('/', methods=['POST'])
def create_client():
    data = validate_client(get_json_body())
    with get_db_session() as session:
        client = ClientsRepository(session).create_client(data)
    return jsonify({'message': 'Client created successfully', 'client': client}), 201


@clients_bp.route('/<client_id>', methods=['PUT'])
def update_client(client_id):
    client_id = validate_uuid(client_id, 'id')
    data = validate_client(get_json_body())
    with get_db_session() as session:
        client = ClientsRepository(session).update_client(client_id, data)
    if not client:
        return jsonify({'error': 'Client not found'}), 404
    return jsonify({'message': 'Client updated successfully', 'client': client})


@clients_bp.route('/<client_id>', methods=['DELETE'])
def delete_client(client_id):
    """Delete a client that has no orders"""
    client_id = validate_uuid(client_id, 'id')
    with get_db_session() as session:
        repo = ClientsRepository(session)
        order_count = repo.count_orders(client_id)
        if order_count:
            return jsonify({
                'error': 'Cannot delete client with existing orders',
                'order_count': order_count
            }), 400
        if not repo.delete_client(client_id):
            return jsonify({'error': 'Client not found'}), 404
    return jsonify({'message': 'Client deleted successfully'})
