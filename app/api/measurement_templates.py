"""
Measurement Templates Routes Blueprint

Saved measurement sets per client and garment type.
"""

import logging
from flask import Blueprint, request, jsonify

from auth import protect_blueprint
from database.connection import get_db_session
from services.measurement_repository import MeasurementRepository
from validators import validate_measurement_template, validate_uuid
from app.utils.helpers import get_json_body

logger = logging.getLogger(__name__)

# Create blueprint
measurement_templates_bp = protect_blueprint(Blueprint('measurement_templates_bp', __name__))


def _not_found():
    return jsonify({'error': 'Measurement template not found'}), 404


@measurement_templates_bp.route('', methods=['GET'])
@measurement_templates_bp.route('/', methods=['GET'])
def list_templates():
    with get_db_session() as session:
        templates = MeasurementRepository(session).list_templates(
            client_id=request.args.get('client_id'),
            garment_type_id=request.args.get('garment_type_id')
        )
    return jsonify({'templates': templates})


@measurement_templates_bp.route('/client/<client_id>', methods=['GET'])
def client_templates(client_id):
    """A client's templates, most recently used first"""
    client_id = validate_uuid(client_id, 'client_id')
    with get_db_session() as session:
        templates = MeasurementRepository(session).client_templates(client_id)
    return jsonify({'templates': templates})


@measurement_templates_bp.route('/<template_id>', methods=['GET'])
def get_template(template_id):
    template_id = validate_uuid(template_id, 'id')
    with get_db_session() as session:
        template = MeasurementRepository(session).get_template(template_id)
    if not template:
        return _not_found()
    return jsonify({'template': template})


@measurement_templates_bp.route('', methods=['POST'])
@measurement_templates_bp.route('/', methods=['POST'])
def create_template():
    data = validate_measurement_template(get_json_body())
    with get_db_session() as session:
        template = MeasurementRepository(session).create_template(data)
    return jsonify({'message': 'Measurement template created successfully', 'template': template}), 201


@measurement_templates_bp.route('/<template_id>', methods=['PUT'])
def update_template(template_id):
    template_id = validate_uuid(template_id, 'id')
    data = validate_measurement_template(get_json_body(), partial=True)
    with get_db_session() as session:
        template = MeasurementRepository(session).update_template(template_id, data)
    if not template:
        return _not_found()
    return jsonify({'message': 'Measurement template updated successfully', 'template': template})


@measurement_templates_bp.route('/<template_id>', methods=['DELETE'])
def delete_template(template_id):
    template_id = validate_uuid(template_id, 'id')
    with get_db_session() as session:
        deleted = MeasurementRepository(session).delete_template(template_id)
    if not deleted:
        return _not_found()
    return jsonify({'message': 'Measurement template deleted successfully'})


@measurement_templates_bp.route('/<template_id>/use', methods=['POST'])
def use_template(template_id):
    template_id = validate_uuid(template_id, 'id')
    with get_db_session() as session:
        template = MeasurementRepository(session).record_usage(template_id)
    if not template:
        return _not_found()
    return jsonify({'message': 'Usage recorded', 'template': template})
