"""
Garments Repository - Database access layer for the garment catalog.
"""

import logging
from typing import Dict, List, Optional
from sqlalchemy import func, distinct
from sqlalchemy.orm import Session

from database.models import GarmentType, OrderItem

logger = logging.getLogger(__name__)


class GarmentsRepository:
    """Repository for garment type database operations."""

    def __init__(self, session: Session):
        self.session = session

    def _get(self, garment_id: str) -> Optional[GarmentType]:
        return self.session.query(GarmentType).filter(GarmentType.id == garment_id).first()

    def list_garments(self, category: str = None, is_active: Optional[bool] = None) -> List[Dict]:
        query = self.session.query(GarmentType)
        if category:
            query = query.filter(GarmentType.category == category)
        if is_active is not None:
            query = query.filter(GarmentType.is_active == is_active)
        return [g.to_dict() for g in query.order_by(GarmentType.name).all()]

    def usage_count(self, garment_id: str) -> int:
        """Number of orders containing this garment."""
        return (self.session.query(func.count(distinct(OrderItem.order_id)))
                .filter(OrderItem.garment_type_id == garment_id)
                .scalar()) or 0

    def get_garment(self, garment_id: str) -> Optional[Dict]:
        garment = self._get(garment_id)
        if not garment:
            return None
        data = garment.to_dict()
        data['usage_count'] = self.usage_count(garment_id)
        return data

    def create_garment(self, data: Dict) -> Dict:
        garment = GarmentType(**data)
        self.session.add(garment)
        self.session.flush()
        logger.info(f"Created garment type: {garment.id} ({garment.name})")
        return garment.to_dict()

    def update_garment(self, garment_id: str, data: Dict) -> Optional[Dict]:
        garment = self._get(garment_id)
        if not garment:
            return None
        for key in ('name', 'price', 'cost', 'description', 'category', 'is_active'):
            if key in data:
                setattr(garment, key, data[key])
        self.session.flush()
        logger.info(f"Updated garment type: {garment_id}")
        return garment.to_dict()

    def delete_garment(self, garment_id: str) -> bool:
        garment = self._get(garment_id)
        if not garment:
            return False
        template_count = len(garment.measurement_templates)
        self.session.delete(garment)
        self.session.flush()
        logger.info(f"Deleted garment type: {garment_id} ({template_count} measurement templates)")
        return True
