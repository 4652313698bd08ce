"""
Reminder Service - automated trial, delivery and re-engagement reminders.

Run by the background scheduler. Each check records Pending messages that
staff then send through their wa.me links.
"""

import logging
from typing import Dict, List, Optional
from datetime import date, datetime, timedelta
from sqlalchemy.orm import Session, joinedload

from database.models import Order, Message, utcnow
from services.messaging_service import MessagingService, INACTIVE_DAYS

logger = logging.getLogger(__name__)


# Reminder types and their configurations
REMINDER_CONFIGS = {
    'trial': {
        'description': 'Trial fittings coming up',
        'date_field': 'trial_date',
        'message_type': 'TrialReminder',
        'days_ahead': 2,
    },
    'delivery': {
        'description': 'Deliveries coming up',
        'date_field': 'delivery_date',
        'message_type': 'DeliveryReminder',
        'days_ahead': 2,
    },
}

RE_ENGAGEMENT_COOLDOWN_DAYS = 30


class ReminderService:
    """Service for checking and generating automated reminders."""

    def __init__(self, session: Session, shop_name: str = 'The Darji'):
        self.session = session
        self.messaging = MessagingService(session, shop_name=shop_name)

    def _orders_due_on(self, date_field: str, day: date) -> List[Order]:
        column = getattr(Order, date_field)
        start = datetime.combine(day, datetime.min.time())
        end = start + timedelta(days=1)
        return (self.session.query(Order)
                .options(joinedload(Order.client))
                .filter(column >= start, column < end, Order.status != 'Delivered')
                .order_by(column)
                .all())

    def _already_reminded(self, order: Order, message_type: str, today: date) -> bool:
        start = datetime.combine(today, datetime.min.time())
        return self.session.query(Message.id).filter(
            Message.order_id == order.id,
            Message.type == message_type,
            Message.created_at >= start,
            Message.created_at < start + timedelta(days=1)
        ).first() is not None

    def _reminder_text(self, reminder_type: str, order: Order) -> str:
        shop = self.messaging.shop_name
        if reminder_type == 'trial':
            return (f"Dear {order.client.name}, this is a reminder that the trial fitting for your order "
                    f"#{order.order_number} is on {order.trial_date.strftime('%d/%m/%Y')}. "
                    f"We look forward to seeing you at {shop}!")
        return (f"Dear {order.client.name}, your order #{order.order_number} is scheduled for delivery on "
                f"{order.delivery_date.strftime('%d/%m/%Y')}. Balance due: Rs {order.balance:.2f}. "
                f"Thank you for choosing {shop}!")

    def check_reminder_type(self, reminder_type: str, today: date) -> List[Dict]:
        config = REMINDER_CONFIGS[reminder_type]
        target_day = today + timedelta(days=config['days_ahead'])
        orders = self._orders_due_on(config['date_field'], target_day)
        results = []

        for order in orders:
            due = getattr(order, config['date_field'])
            logger.info(f"Upcoming {reminder_type}: {order.order_number} for {order.client.name} on {due:%Y-%m-%d}")
            if not self._already_reminded(order, config['message_type'], today):
                content, _ = self.messaging.compose(
                    config['message_type'],
                    self.messaging.build_variables(order.client, order),
                    self._reminder_text(reminder_type, order)
                )
                self.messaging.record(order.client, config['message_type'], content, order=order)
            results.append({
                'order_id': order.id,
                'order_number': order.order_number,
                'client_name': order.client.name,
                'client_phone': order.client.phone,
                config['date_field']: due.isoformat(),
            })
        return results

    def check_upcoming_reminders(self, today: Optional[date] = None) -> Dict[str, List[Dict]]:
        """
        Find trials and deliveries two days out and record one reminder per order per day.

        ``today`` defaults to the current UTC date, the clock stored dates and
        created_at use.

        Returns:
            {'upcoming_trials': [...], 'upcoming_deliveries': [...]}
        """
        today = today or utcnow().date()
        reminders = {
            'upcoming_trials': self.check_reminder_type('trial', today),
            'upcoming_deliveries': self.check_reminder_type('delivery', today),
        }
        logger.info(f"Reminder check for {today}: {len(reminders['upcoming_trials'])} trials, "
                    f"{len(reminders['upcoming_deliveries'])} deliveries")
        return reminders

    def run_re_engagement_campaign(self, days: int = INACTIVE_DAYS) -> List[Dict]:
        """Queue a ReEngagement message for inactive clients not contacted recently."""
        cooldown_start = utcnow() - timedelta(days=RE_ENGAGEMENT_COOLDOWN_DAYS)
        clients = self.messaging.find_inactive_clients(days)
        contacted = []

        for client in clients:
            recent = self.session.query(Message.id).filter(
                Message.client_id == client.id,
                Message.type == 'ReEngagement',
                Message.created_at >= cooldown_start
            ).first()
            if recent:
                logger.debug(f"Skipping re-engagement for {client.id}, contacted recently")
                continue
            self.messaging.send_re_engagement_message(client.id)
            contacted.append(self.messaging.inactive_client_summary(client))

        logger.info(f"Re-engagement campaign queued {len(contacted)} of {len(clients)} inactive clients")
        return contacted
