"""
Orders Repository - Database access layer for orders and their child records.
Handles line items, additional services, special requirements and trial notes.
"""

import logging
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session, selectinload, joinedload

from database.models import (
    Order, OrderItem, AdditionalService, SpecialRequirement, TrialNote,
    Client, GarmentType
)
from services.numbering import allocate_with_retry, next_order_number
from validators import NotFoundError, ValidationError, check_final_amount, validate_uuid

logger = logging.getLogger(__name__)

SCALAR_FIELDS = ('total_amount', 'final_amount', 'advance', 'trial_date', 'delivery_date', 'measurements')


class OrdersRepository:
    """Repository for order database operations."""

    def __init__(self, session: Session, user_id: str = None):
        self.session = session
        self.user_id = user_id

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_order_model(self, order_id: str, with_children: bool = True) -> Optional[Order]:
        query = self.session.query(Order)
        if with_children:
            query = query.options(
                joinedload(Order.client),
                selectinload(Order.items).joinedload(OrderItem.garment_type),
                selectinload(Order.additional_services),
                selectinload(Order.special_requirements),
                selectinload(Order.trial_notes),
            )
        return query.filter(Order.id == order_id).first()

    def get_order(self, order_id: str) -> Optional[Dict]:
        order = self.get_order_model(order_id)
        return order.to_dict() if order else None

    def list_orders(self, status: str = None, client_id: str = None, start_date=None, end_date=None,
                    page: int = 1, limit: int = 20) -> Tuple[List[Dict], int]:
        query = self.session.query(Order).options(
            joinedload(Order.client),
            selectinload(Order.items).joinedload(OrderItem.garment_type),
            selectinload(Order.additional_services),
            selectinload(Order.special_requirements),
            selectinload(Order.trial_notes),
        )
        if status:
            query = query.filter(Order.status == status)
        if client_id:
            query = query.filter(Order.client_id == validate_uuid(client_id, 'client_id'))
        if start_date:
            query = query.filter(Order.created_at >= start_date)
        if end_date:
            query = query.filter(Order.created_at <= end_date)

        total = query.order_by(None).count()
        orders = query.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return [o.to_dict() for o in orders], total

    def _require_client(self, client_id: str) -> Client:
        client = self.session.query(Client).filter(Client.id == validate_uuid(client_id, 'client_id')).first()
        if not client:
            raise NotFoundError('Client')
        return client

    def _require_garment(self, garment_type_id: str) -> GarmentType:
        garment_id = validate_uuid(garment_type_id, 'garment_type_id')
        garment = self.session.query(GarmentType).filter(GarmentType.id == garment_id).first()
        if not garment:
            raise NotFoundError('Garment type')
        return garment

    # =========================================================================
    # CHILD COLLECTIONS
    # =========================================================================

    def _build_items(self, items: List[Dict]) -> List[OrderItem]:
        built = []
        for position, item in enumerate(items):
            garment = self._require_garment(item['garment_type_id'])
            built.append(OrderItem(
                garment_type_id=garment.id,
                garment_type=garment,
                position=position,
                quantity=item['quantity'],
                price=item['price'],
                cost=item.get('cost') or 0,
                subtotal=item['subtotal']
            ))
        return built

    @staticmethod
    def _build_services(services: List[Dict]) -> List[AdditionalService]:
        return [
            AdditionalService(position=position, description=s['description'],
                              amount=s['amount'], cost=s.get('cost') or 0)
            for position, s in enumerate(services)
        ]

    @staticmethod
    def _build_requirements(requirements: List[Dict], images: Dict[int, List[Dict]] = None) -> List[SpecialRequirement]:
        images = images or {}
        built = []
        for position, req in enumerate(requirements):
            requirement = SpecialRequirement(
                position=position,
                note=req['note'],
                image_url=req.get('image_url'),
                s3_key=req.get('s3_key'),
                images=list(req.get('images') or [])
            )
            requirement.add_images(images.get(position))
            built.append(requirement)
        return built

    def _apply_collections(self, order: Order, data: Dict, requirement_images: Dict[int, List[Dict]] = None):
        if data.get('items') is not None:
            order.items = self._build_items(data['items'])
        if data.get('additional_services') is not None:
            order.additional_services = self._build_services(data['additional_services'])
        if data.get('special_requirements') is not None:
            order.special_requirements = self._build_requirements(data['special_requirements'], requirement_images)

    # =========================================================================
    # CREATE / UPDATE
    # =========================================================================

    def create_order(self, data: Dict, requirement_images: Dict[int, List[Dict]] = None) -> Order:
        """
        Create an order with an allocated TD-YYYY-NNNN number.

        Args:
            data: Cleaned payload from validate_order
            requirement_images: Stored images keyed by special requirement index
        """
        client = self._require_client(data['client_id'])
        check_final_amount(data.get('total_amount'), data.get('final_amount'))

        def build(attempt):
            order = Order(
                order_number=next_order_number(self.session, attempt),
                client_id=client.id,
                client=client,
                status='Pending',
                measurements=data.get('measurements') or {},
                total_amount=data['total_amount'],
                final_amount=data.get('final_amount'),
                advance=data.get('advance') or 0,
                trial_date=data.get('trial_date'),
                delivery_date=data.get('delivery_date'),
                created_by=self.user_id
            )
            self._apply_collections(order, data, requirement_images)
            self.session.add(order)
            return order

        order = allocate_with_retry(self.session, build, 'order_number')
        logger.info(f"Created order {order.order_number} ({order.id}) for client {client.id}")
        return order

    def update_order(self, order_id: str, data: Dict, requirement_images: Dict[int, List[Dict]] = None) -> Optional[Order]:
        """Full update; provided collections replace the existing ones."""
        order = self.get_order_model(order_id)
        if not order:
            return None
        if data.get('client_id'):
            client = self._require_client(data['client_id'])
            order.client_id = client.id
            order.client = client
        for key in SCALAR_FIELDS:
            if key in data and (key != 'total_amount' or data[key] is not None):
                setattr(order, key, data[key] if key != 'advance' else (data[key] or 0))
        self._apply_collections(order, data, requirement_images)
        order.check_amounts()
        self.session.flush()
        logger.info(f"Updated order: {order_id}")
        return order

    def patch_order(self, order_id: str, data: Dict) -> Optional[Order]:
        """Partial update of scalar fields."""
        order = self.get_order_model(order_id)
        if not order:
            return None
        for key in SCALAR_FIELDS + ('status',):
            if key in data:
                setattr(order, key, data[key] if key != 'advance' else (data[key] or 0))
        order.check_amounts()
        self.session.flush()
        logger.info(f"Patched order {order_id}: {', '.join(sorted(data))}")
        return order

    def update_status(self, order_id: str, status: str, cancellation_reason: str = None,
                      final_amount: float = None) -> Optional[Order]:
        order = self.get_order_model(order_id)
        if not order:
            return None
        order.status = status
        if status == 'Cancelled' and cancellation_reason:
            order.cancellation_reason = cancellation_reason
        if final_amount is not None:
            order.final_amount = final_amount
        order.check_amounts()
        self.session.flush()
        logger.info(f"Order {order.order_number} status -> {status}")
        return order

    def replace_measurements(self, order_id: str, measurements: Dict) -> Optional[Order]:
        order = self.get_order_model(order_id)
        if not order:
            return None
        order.measurements = dict(measurements or {})
        self.session.flush()
        return order

    def update_item_cost(self, order_id: str, item_id: str, cost: float) -> Optional[Order]:
        return self._update_child_cost(order_id, item_id, cost, 'items', 'Item')

    def update_service_cost(self, order_id: str, service_id: str, cost: float) -> Optional[Order]:
        return self._update_child_cost(order_id, service_id, cost, 'additional_services', 'Service')

    def _update_child_cost(self, order_id, child_id, cost, collection, label):
        order = self.get_order_model(order_id)
        if not order:
            return None
        child = next((c for c in getattr(order, collection) if c.id == child_id), None)
        if child is None:
            raise NotFoundError(label)
        child.cost = cost
        self.session.flush()
        logger.info(f"Updated {label.lower()} cost on order {order.order_number}: {child_id} -> {cost}")
        return order

    # =========================================================================
    # NOTES
    # =========================================================================

    def add_special_requirement(self, order_id: str, note: str, images: List[Dict] = None) -> Optional[Order]:
        order = self.get_order_model(order_id)
        if not order:
            return None
        requirement = SpecialRequirement(note=note, position=len(order.special_requirements), images=[])
        requirement.add_images(images)
        order.special_requirements.append(requirement)
        self.session.flush()
        return order

    def add_trial_note(self, order_id: str, note: str, images: List[Dict] = None) -> Optional[Order]:
        order = self.get_order_model(order_id)
        if not order:
            return None
        trial_note = TrialNote(note=note, images=[])
        trial_note.add_images(images)
        order.trial_notes.append(trial_note)
        self.session.flush()
        return order

    def _get_trial_note(self, order: Order, note_id: str) -> TrialNote:
        trial_note = next((n for n in order.trial_notes if n.id == note_id), None)
        if trial_note is None:
            raise NotFoundError('Trial note')
        return trial_note

    def update_trial_note(self, order_id: str, note_id: str, note: str = None,
                          images: List[Dict] = None) -> Optional[Order]:
        if not note and not images:
            raise ValidationError('Note or images are required', field='note')
        order = self.get_order_model(order_id)
        if not order:
            return None
        trial_note = self._get_trial_note(order, note_id)
        if note:
            trial_note.note = note
        trial_note.add_images(images)
        self.session.flush()
        return order

    def delete_trial_note(self, order_id: str, note_id: str) -> Optional[Tuple[Order, TrialNote]]:
        order = self.get_order_model(order_id)
        if not order:
            return None
        trial_note = self._get_trial_note(order, note_id)
        order.trial_notes.remove(trial_note)
        self.session.flush()
        return order, trial_note

    # =========================================================================
    # DELETE
    # =========================================================================

    def delete_order(self, order_id: str) -> Optional[Order]:
        """Delete an order with its child rows and invoice record; returns the deleted order."""
        order = self.get_order_model(order_id)
        if not order:
            return None
        self.session.delete(order)
        self.session.flush()
        logger.info(f"Deleted order {order.order_number} ({order_id})")
        return order
