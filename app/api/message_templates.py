"""
Message Templates Routes Blueprint

Reusable message texts with {{variable}} placeholders.
"""

import logging
from flask import Blueprint, request, jsonify

from auth import protect_blueprint
from database.connection import get_db_session
from services.message_repository import MessageTemplateRepository
from validators import validate_message_template, validate_uuid
from app.utils.helpers import get_json_body, parse_bool_arg

logger = logging.getLogger(__name__)

# Create blueprint
message_templates_bp = protect_blueprint(Blueprint('message_templates_bp', __name__))


def _not_found():
    return jsonify({'error': 'Message template not found'}), 404


@message_templates_bp.route('', methods=['GET'])
@message_templates_bp.route('/', methods=['GET'])
def list_templates():
    with get_db_session() as session:
        templates = MessageTemplateRepository(session).list_templates(
            template_type=request.args.get('type'),
            is_active=parse_bool_arg('is_active')
        )
    return jsonify({'templates': templates})


@message_templates_bp.route('/<template_id>', methods=['GET'])
def get_template(template_id):
    template_id = validate_uuid(template_id, 'id')
    with get_db_session() as session:
        template = MessageTemplateRepository(session).get_template(template_id)
    if not template:
        return _not_found()
    return jsonify({'template': template})


@message_templates_bp.route('', methods=['POST'])
@message_templates_bp.route('/', methods=['POST'])
def create_template():
    data = validate_message_template(get_json_body())
    with get_db_session() as session:
        template = MessageTemplateRepository(session).create_template(data)
    return jsonify({'message': 'Message template created successfully', 'template': template}), 201


@message_templates_bp.route('/<template_id>', methods=['PUT'])
def update_template(template_id):
    template_id = validate_uuid(template_id, 'id')
    data = validate_message_template(get_json_body(), partial=True)
    with get_db_session() as session:
        template = MessageTemplateRepository(session).update_template(template_id, data)
    if not template:
        return _not_found()
    return jsonify({'message': 'Message template updated successfully', 'template': template})


@message_templates_bp.route('/<template_id>', methods=['DELETE'])
def delete_template(template_id):
    template_id = validate_uuid(template_id, 'id')
    with get_db_session() as session:
        deleted = MessageTemplateRepository(session).delete_template(template_id)
    if not deleted:
        return _not_found()
    return jsonify({'message': 'Message template deleted successfully'})


@message_templates_bp.route('/<template_id>/render', methods=['POST'])
def render_template(template_id):
    """Fill the template's placeholders from the posted data map"""
    template_id = validate_uuid(template_id, 'id')
    data = get_json_body()
    with get_db_session() as session:
        result = MessageTemplateRepository(session).render_template(template_id, data)
    if result is None:
        return _not_found()
    return jsonify(result)
