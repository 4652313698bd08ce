"""
Invoices Repository - Database access layer for generated invoices.
"""

import logging
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session, joinedload

from database.models import Invoice, Order

logger = logging.getLogger(__name__)


class InvoicesRepository:
    """Repository for invoice database operations."""

    def __init__(self, session: Session):
        self.session = session

    def _query(self):
        return self.session.query(Invoice).options(joinedload(Invoice.order).joinedload(Order.client))

    def list_invoices(self, page: int = 1, limit: int = 20) -> Tuple[List[Dict], int]:
        total = self.session.query(Invoice).count()
        invoices = (self._query()
                    .order_by(Invoice.created_at.desc())
                    .offset((page - 1) * limit)
                    .limit(limit)
                    .all())
        return [i.to_dict() for i in invoices], total

    def get_invoice_model(self, invoice_id: str) -> Optional[Invoice]:
        return self._query().filter(Invoice.id == invoice_id).first()

    def get_invoice(self, invoice_id: str) -> Optional[Dict]:
        invoice = self.get_invoice_model(invoice_id)
        return invoice.to_dict(include_order=True) if invoice else None

    def get_for_order(self, order_id: str) -> Optional[Invoice]:
        return self.session.query(Invoice).filter(Invoice.order_id == order_id).first()

    def delete_invoice(self, invoice: Invoice):
        self.session.delete(invoice)
        self.session.flush()
        logger.info(f"Deleted invoice {invoice.invoice_number} ({invoice.id})")
