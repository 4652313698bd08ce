"""
Clients Repository - Database access layer for shop clients.
"""

import logging
from typing import Dict, Optional, Tuple
from sqlalchemy import or_, func
from sqlalchemy.orm import Session, selectinload

from database.models import Client, Order

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    'created_at': Client.created_at,
    'updated_at': Client.updated_at,
    'name': Client.name,
    'phone': Client.phone,
    'email': Client.email,
}
DETAIL_ORDER_LIMIT = 50


class ClientsRepository:
    """Repository for client database operations."""

    def __init__(self, session: Session):
        self.session = session

    def _get(self, client_id: str) -> Optional[Client]:
        return self.session.query(Client).filter(Client.id == client_id).first()

    def list_clients(self, page: int = 1, limit: int = 1000, search: str = None,
                     sort_by: str = 'created_at', sort_order: str = 'desc') -> Tuple[list, int]:
        """List clients with an order summary each; returns (clients, total)."""
        query = self.session.query(Client).options(selectinload(Client.orders))
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(Client.name).like(pattern),
                func.lower(Client.phone).like(pattern),
                func.lower(Client.email).like(pattern),
            ))

        total = query.count()
        column = SORTABLE_FIELDS.get(sort_by, Client.created_at)
        query = query.order_by(column.asc() if sort_order == 'asc' else column.desc())
        clients = query.offset((page - 1) * limit).limit(limit).all()
        return [c.to_dict(include_orders=True) for c in clients], total

    def get_client(self, client_id: str) -> Optional[Dict]:
        """Get a client with recent orders and lifetime stats."""
        client = self._get(client_id)
        if not client:
            return None

        orders = (self.session.query(Order)
                  .filter(Order.client_id == client_id)
                  .order_by(Order.created_at.desc())
                  .all())

        data = client.to_dict()
        data['orders'] = [o.to_dict(include_client=False) for o in orders[:DETAIL_ORDER_LIMIT]]
        data['stats'] = {
            'total_orders': len(orders),
            'total_spent': sum(o.effective_amount for o in orders),
            'pending_balance': sum(o.balance for o in orders),
            'completed_orders': sum(1 for o in orders if o.status in ('Completed', 'Delivered')),
        }
        return data

    def create_client(self, data: Dict) -> Dict:
        """Create a new client."""
        client = Client(**data)
        self.session.add(client)
        self.session.flush()
        logger.info(f"Created client: {client.id}")
        return client.to_dict()

    def update_client(self, client_id: str, data: Dict) -> Optional[Dict]:
        """Update a client."""
        client = self._get(client_id)
        if not client:
            return None
        for key in ('name', 'phone', 'email', 'address', 'notes', 'tags'):
            if key in data:
                setattr(client, key, data[key])
        self.session.flush()
        logger.info(f"Updated client: {client_id}")
        return client.to_dict()

    def count_orders(self, client_id: str) -> int:
        return self.session.query(Order).filter(Order.client_id == client_id).count()

    def delete_client(self, client_id: str) -> bool:
        """Delete a client; the caller must check for orders first."""
        client = self._get(client_id)
        if not client:
            return False
        self.session.delete(client)
        self.session.flush()
        logger.info(f"Deleted client: {client_id}")
        return True
