"""
Garments Routes Blueprint

Garment catalog (types, prices, costs):
- /api/garments: list and create
- /api/garments/<id>: detail with usage count, update, delete
- /api/garments/stats/profitability: active garments by margin
"""

import logging
from flask import Blueprint, request, jsonify

from auth import protect_blueprint
from database.connection import get_db_session
from services.garments_repository import GarmentsRepository
from services.analytics_service import AnalyticsService
from validators import validate_garment, validate_uuid
from app.utils.helpers import get_json_body, parse_bool_arg

logger = logging.getLogger(__name__)

# Create blueprint
garments_bp = protect_blueprint(Blueprint('garments_bp', __name__))


@garments_bp.route('', methods=['GET'])
@garments_bp.route('/', methods=['GET'])
def list_garments():
    with get_db_session() as session:
        garments = GarmentsRepository(session).list_garments(
            category=request.args.get('category'),
            is_active=parse_bool_arg('is_active')
        )
    return jsonify({'garments': garments})


@garments_bp.route('/stats/profitability', methods=['GET'])
def garment_profitability():
    """Active garments sorted by profit margin percentage"""
    with get_db_session() as session:
        garments = AnalyticsService(session).garment_profitability()
    return jsonify({'garments': garments})


@garments_bp.route('/<garment_id>', methods=['GET'])
def get_garment(garment_id):
    garment_id = validate_uuid(garment_id, 'id')
    with get_db_session() as session:
        garment = GarmentsRepository(session).get_garment(garment_id)
    if not garment:
        return jsonify({'error': 'Garment type not found'}), 404
    return jsonify({'garment': garment})


@garments_bp.route('', methods=['POST'])
@garments_bp.route('/', methods=['POST'])
def create_garment():
    data = validate_garment(get_json_body())
    with get_db_session() as session:
        garment = GarmentsRepository(session).create_garment(data)
    return jsonify({'message': 'Garment type created successfully', 'garment': garment}), 201


@garments_bp.route('/<garment_id>', methods=['PUT'])
def update_garment(garment_id):
    garment_id = validate_uuid(garment_id, 'id')
    data = validate_garment(get_json_body())
    with get_db_session() as session:
        garment = GarmentsRepository(session).update_garment(garment_id, data)
    if not garment:
        return jsonify({'error': 'Garment type not found'}), 404
    return jsonify({'message': 'Garment type updated successfully', 'garment': garment})


@garments_bp.route('/<garment_id>', methods=['DELETE'])
def delete_garment(garment_id):
    """Delete a garment type that no order uses, along with its measurement templates"""
    garment_id = validate_uuid(garment_id, 'id')
    with get_db_session() as session:
        repo = GarmentsRepository(session)
        usage_count = repo.usage_count(garment_id)
        if usage_count:
            return jsonify({
                'error': 'Cannot delete garment type that is used in orders',
                'usage_count': usage_count,
                'suggestion': 'Consider marking it as inactive instead'
            }), 400
        if not repo.delete_garment(garment_id):
            return jsonify({'error': 'Garment type not found'}), 404
    return jsonify({'message': 'Garment type deleted successfully'})
