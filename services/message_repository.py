"""
Message Repository - Database access layer for messages and message templates.
"""

import logging
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session, joinedload

from database.models import Message, MessageTemplate, Client, Order
from validators import NotFoundError, validate_uuid

logger = logging.getLogger(__name__)


class MessageRepository:
    """Repository for message log operations."""

    def __init__(self, session: Session, user_id: str = None):
        self.session = session
        self.user_id = user_id

    def list_messages(self, status: str = None, message_type: str = None, client_id: str = None,
                      page: int = 1, limit: int = 50) -> Tuple[List[Dict], int]:
        query = self.session.query(Message).options(joinedload(Message.client), joinedload(Message.order))
        if status:
            query = query.filter(Message.status == status)
        if message_type:
            query = query.filter(Message.type == message_type)
        if client_id:
            query = query.filter(Message.client_id == validate_uuid(client_id, 'client_id'))
        total = query.order_by(None).count()
        messages = query.order_by(Message.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return [m.to_dict() for m in messages], total

    def client_history(self, client_id: str) -> List[Dict]:
        messages = (self.session.query(Message)
                    .options(joinedload(Message.order))
                    .filter(Message.client_id == client_id)
                    .order_by(Message.created_at.desc())
                    .all())
        return [m.to_dict() for m in messages]

    def create_message(self, data: Dict) -> Dict:
        client_id = validate_uuid(data['client_id'], 'client_id')
        if not self.session.query(Client.id).filter(Client.id == client_id).first():
            raise NotFoundError('Client')
        order_id = None
        if data.get('order_id'):
            order_id = validate_uuid(data['order_id'], 'order_id')
            if not self.session.query(Order.id).filter(Order.id == order_id).first():
                raise NotFoundError('Order')

        message = Message(
            client_id=client_id,
            order_id=order_id,
            type=data['type'],
            content=data['content'],
            message_metadata=data.get('metadata') or {},
            sent_by=self.user_id
        )
        message.status = data.get('status') or 'Pending'
        self.session.add(message)
        self.session.flush()
        logger.info(f"Created {message.type} message {message.id}")
        return message.to_dict()

    def update_status(self, message_id: str, status: str, metadata: Dict = None) -> Optional[Dict]:
        message = self.session.query(Message).filter(Message.id == message_id).first()
        if not message:
            return None
        message.status = status
        if metadata:
            message.message_metadata = {**(message.message_metadata or {}), **metadata}
        self.session.flush()
        logger.info(f"Message {message_id} status -> {status}")
        return message.to_dict()


class MessageTemplateRepository:
    """Repository for message template operations."""

    def __init__(self, session: Session):
        self.session = session

    def _get(self, template_id: str) -> Optional[MessageTemplate]:
        return self.session.query(MessageTemplate).filter(MessageTemplate.id == template_id).first()

    def list_templates(self, template_type: str = None, is_active: Optional[bool] = None) -> List[Dict]:
        query = self.session.query(MessageTemplate)
        if template_type:
            query = query.filter(MessageTemplate.type == template_type)
        if is_active is not None:
            query = query.filter(MessageTemplate.is_active == is_active)
        return [t.to_dict() for t in query.order_by(MessageTemplate.name).all()]

    def get_template(self, template_id: str) -> Optional[Dict]:
        template = self._get(template_id)
        return template.to_dict() if template else None

    def _deactivate_others(self, template: MessageTemplate):
        (self.session.query(MessageTemplate)
         .filter(MessageTemplate.type == template.type, MessageTemplate.id != template.id)
         .update({MessageTemplate.is_active: False}, synchronize_session='fetch'))

    def create_template(self, data: Dict) -> Dict:
        template = MessageTemplate(
            name=data['name'],
            type=data['type'],
            content=data['content'],
            is_active=data.get('is_active', True)
        )
        self.session.add(template)
        self.session.flush()
        logger.info(f"Created message template: {template.id} ({template.name})")
        return template.to_dict()

    def update_template(self, template_id: str, data: Dict) -> Optional[Dict]:
        """Update a template; activating it deactivates the others of its type."""
        template = self._get(template_id)
        if not template:
            return None
        for key in ('name', 'type', 'content', 'is_active'):
            if key in data and data[key] is not None:
                setattr(template, key, data[key])
        self.session.flush()
        if data.get('is_active') is True:
            self._deactivate_others(template)
        logger.info(f"Updated message template: {template_id}")
        return template.to_dict()

    def delete_template(self, template_id: str) -> bool:
        template = self._get(template_id)
        if not template:
            return False
        self.session.delete(template)
        self.session.flush()
        logger.info(f"Deleted message template: {template_id}")
        return True

    def render_template(self, template_id: str, data: Dict) -> Optional[Dict]:
        template = self._get(template_id)
        if not template:
            return None
        rendered = template.render(data)
        template.record_usage()
        self.session.flush()
        return {'rendered': rendered, 'variables': template.variables or []}
