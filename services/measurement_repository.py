"""
Measurement Repository - saved measurement templates per client and garment.
"""

import logging
from typing import Dict, List, Optional
from sqlalchemy.orm import Session, joinedload

from database.models import MeasurementTemplate, Client, GarmentType
from validators import NotFoundError, validate_uuid

logger = logging.getLogger(__name__)


class MeasurementRepository:
    """Repository for measurement template operations."""

    def __init__(self, session: Session):
        self.session = session

    def _query(self):
        return self.session.query(MeasurementTemplate).options(
            joinedload(MeasurementTemplate.client),
            joinedload(MeasurementTemplate.garment_type),
        )

    def _get(self, template_id: str) -> Optional[MeasurementTemplate]:
        return self._query().filter(MeasurementTemplate.id == template_id).first()

    def _check_references(self, data: Dict) -> Dict:
        if 'client_id' in data:
            data['client_id'] = validate_uuid(data['client_id'], 'client_id')
            if not self.session.query(Client.id).filter(Client.id == data['client_id']).first():
                raise NotFoundError('Client')
        if 'garment_type_id' in data:
            data['garment_type_id'] = validate_uuid(data['garment_type_id'], 'garment_type_id')
            if not self.session.query(GarmentType.id).filter(GarmentType.id == data['garment_type_id']).first():
                raise NotFoundError('Garment type')
        return data

    def list_templates(self, client_id: str = None, garment_type_id: str = None) -> List[Dict]:
        query = self._query()
        if client_id:
            query = query.filter(MeasurementTemplate.client_id == validate_uuid(client_id, 'client_id'))
        if garment_type_id:
            query = query.filter(MeasurementTemplate.garment_type_id ==
                                 validate_uuid(garment_type_id, 'garment_type_id'))
        return [t.to_dict() for t in query.order_by(MeasurementTemplate.created_at.desc()).all()]

    def client_templates(self, client_id: str) -> List[Dict]:
        """Most recently used first; never-used templates last, newest first."""
        templates = (self._query()
                     .filter(MeasurementTemplate.client_id == client_id)
                     .order_by(MeasurementTemplate.last_used_at.is_(None),
                               MeasurementTemplate.last_used_at.desc(),
                               MeasurementTemplate.created_at.desc())
                     .all())
        return [t.to_dict() for t in templates]

    def get_template(self, template_id: str) -> Optional[Dict]:
        template = self._get(template_id)
        return template.to_dict() if template else None

    def create_template(self, data: Dict) -> Dict:
        data = self._check_references(dict(data))
        template = MeasurementTemplate(**data)
        self.session.add(template)
        self.session.flush()
        logger.info(f"Created measurement template: {template.id}")
        return template.to_dict()

    def update_template(self, template_id: str, data: Dict) -> Optional[Dict]:
        template = self._get(template_id)
        if not template:
            return None
        data = self._check_references(dict(data))
        for key in ('name', 'client_id', 'garment_type_id', 'measurements', 'is_default', 'notes'):
            if key in data:
                setattr(template, key, data[key])
        self.session.flush()
        self.session.refresh(template)
        logger.info(f"Updated measurement template: {template_id}")
        return template.to_dict()

    def delete_template(self, template_id: str) -> bool:
        template = self._get(template_id)
        if not template:
            return False
        self.session.delete(template)
        self.session.flush()
        logger.info(f"Deleted measurement template: {template_id}")
        return True

    def record_usage(self, template_id: str) -> Optional[Dict]:
        template = self._get(template_id)
        if not template:
            return None
        template.record_usage()
        self.session.flush()
        return template.to_dict()
