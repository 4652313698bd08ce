"""
Messaging Service - builds client messages, records them and returns wa.me links.

Built-in texts are used unless an active template of the same type exists.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import Client, Order, Message, MessageTemplate, Invoice, utcnow
from services.whatsapp_service import generate_whatsapp_link
from validators import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_SHOP_NAME = 'The Darji'
INACTIVE_DAYS = 30


def _money(value) -> str:
    return f"{value or 0:.2f}"


def _date(value) -> Optional[str]:
    return value.strftime('%d/%m/%Y') if value else None


class MessagingService:
    """Creates Message records for outbound WhatsApp communication."""

    def __init__(self, session: Session, shop_name: str = DEFAULT_SHOP_NAME, user_id: str = None):
        self.session = session
        self.shop_name = shop_name
        self.user_id = user_id

    # =========================================================================
    # HELPERS
    # =========================================================================

    def build_variables(self, client: Client, order: Order = None, balance: float = None) -> Dict[str, str]:
        """Values available to {{placeholders}} in message templates."""
        variables = {
            'client_name': client.name,
            'shop_name': self.shop_name,
        }
        if order is not None:
            variables.update({
                'order_number': order.order_number,
                'total_amount': _money(order.effective_amount),
                'balance': _money(order.balance),
                'trial_date': _date(order.trial_date),
                'delivery_date': _date(order.delivery_date),
            })
        if balance is not None:
            variables['balance'] = _money(balance)
        return variables

    def active_template(self, message_type: str) -> Optional[MessageTemplate]:
        return (self.session.query(MessageTemplate)
                .filter(MessageTemplate.type == message_type, MessageTemplate.is_active == True)
                .order_by(MessageTemplate.updated_at.desc())
                .first())

    def compose(self, message_type: str, variables: Dict[str, str], default_text: str) -> Tuple[str, Optional[MessageTemplate]]:
        """Render the active template for ``message_type``, or fall back to the default text."""
        template = self.active_template(message_type)
        if template is None:
            return default_text, None
        template.record_usage()
        return template.render(variables), template

    def record(self, client: Client, message_type: str, content: str, status: str = 'Pending',
               order: Order = None, metadata: Dict = None) -> Message:
        message = Message(
            client_id=client.id,
            order_id=order.id if order is not None else None,
            type=message_type,
            content=content,
            message_metadata=metadata or {},
            sent_by=self.user_id
        )
        message.status = status
        self.session.add(message)
        self.session.flush()
        logger.info(f"Recorded {message_type} message {message.id} for client {client.id} ({status})")
        return message

    def _result(self, message: Message, client: Client, invoice_path: str = None) -> Dict:
        link = generate_whatsapp_link(client.phone, message.content, invoice_path)
        return {'message': message.to_dict(), **link}

    def _get_client(self, client_id: str) -> Client:
        client = self.session.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise NotFoundError('Client')
        return client

    # =========================================================================
    # MESSAGES
    # =========================================================================

    def send_order_confirmation(self, order: Order, invoice: Invoice = None) -> Dict:
        """Pending confirmation carrying the order total, linked to the invoice PDF."""
        client = order.client
        default_text = (
            f"Thank you for choosing {self.shop_name}!\n\n"
            f"We have received your order #{order.order_number} and will soon start working on it with care.\n\n"
            f"Your invoice is ready. Total Amount: Rs {order.total_amount:.2f}\n\n"
            f"We look forward to creating something special for you!"
        )
        content, _ = self.compose('OrderConfirmation', self.build_variables(client, order), default_text)
        message = self.record(client, 'OrderConfirmation', content, order=order,
                              metadata={'invoice_number': invoice.invoice_number} if invoice else None)
        return self._result(message, client, invoice.pdf_path if invoice else None)

    def create_order_received_message(self, order: Order, user_id: str = None) -> Message:
        """Automatic confirmation logged as Sent when an order is created."""
        client = order.client
        default_text = (
            f"We have received your order #{order.order_number}. Kindly check your invoice. "
            f"Thank you for choosing {self.shop_name}!"
        )
        variables = {'client_name': client.name, 'order_number': order.order_number, 'shop_name': self.shop_name}
        content, _ = self.compose('OrderConfirmation', variables, default_text)
        if user_id:
            self.user_id = user_id
        return self.record(client, 'OrderConfirmation', content, status='Sent', order=order)

    def send_post_delivery_message(self, order: Order) -> Dict:
        client = order.client
        default_text = (
            f"Thank you for trusting {self.shop_name}!\n\n"
            f"We hope you love your custom-stitched outfit from order #{order.order_number}.\n\n"
            f"Your satisfaction is our priority. We look forward to serving you again!\n\n"
            f"- Team {self.shop_name}"
        )
        content, _ = self.compose('PostDelivery', self.build_variables(client, order), default_text)
        message = self.record(client, 'PostDelivery', content, order=order)
        return self._result(message, client)

    def send_re_engagement_message(self, client_id: str) -> Dict:
        client = self._get_client(client_id)
        default_text = (
            f"Hello from {self.shop_name}!\n\n"
            f"It's been a while since we crafted something special for you. "
            f"Time to refresh your wardrobe with new custom outfits?\n\n"
            f"We'd love to create something amazing for you again!\n\n"
            f"Reply to this message or visit us to discuss your next masterpiece.\n\n"
            f"- Team {self.shop_name}"
        )
        # ReEngagement has no template type; InactiveClient templates stand in for it
        content, _ = self.compose('InactiveClient', self.build_variables(client), default_text)
        message = self.record(client, 'ReEngagement', content)
        return self._result(message, client)

    def outstanding_balance(self, client: Client) -> float:
        return sum(order.balance for order in client.orders if order.status != 'Cancelled')

    def send_payment_reminder(self, client_id: str) -> Optional[Dict]:
        """Reminder for the client's total dues; None when nothing is outstanding."""
        client = self._get_client(client_id)
        balance = self.outstanding_balance(client)
        if balance <= 0:
            return None
        default_text = (
            f"Hello {client.name}, this is a gentle reminder from {self.shop_name}. "
            f"You have an outstanding balance of ₹{balance:.2f}. "
            f"Please clear your dues at your earliest convenience. Thank you!"
        )
        content, _ = self.compose('PaymentReminder', self.build_variables(client, balance=balance), default_text)
        message = self.record(client, 'PaymentReminder', content, metadata={'outstanding_balance': balance})
        result = self._result(message, client)
        result['outstanding_balance'] = balance
        return result

    def find_inactive_clients(self, days: int = INACTIVE_DAYS) -> List[Client]:
        """Clients whose most recent order is older than ``days``; clients without orders are skipped."""
        cutoff = utcnow() - timedelta(days=days)
        last_order = (self.session.query(Order.client_id, func.max(Order.created_at).label('last_order_at'))
                      .group_by(Order.client_id)
                      .subquery())
        return (self.session.query(Client)
                .join(last_order, last_order.c.client_id == Client.id)
                .filter(last_order.c.last_order_at < cutoff)
                .order_by(last_order.c.last_order_at)
                .all())

    def inactive_client_summary(self, client: Client) -> Dict:
        last_order = client.orders[0] if client.orders else None
        data = client.to_dict()
        data['last_order_date'] = last_order.created_at.isoformat() if last_order else None
        data['last_order_number'] = last_order.order_number if last_order else None
        return data
