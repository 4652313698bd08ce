"""
Database seeding for The Darji back office.
Creates the default admin, garment catalog, sample client and message templates
when they are missing.
"""

import os
import logging
from werkzeug.security import generate_password_hash
from database.connection import get_db_session
from database.models import User, GarmentType, Client, MessageTemplate

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_NAME = "Administrator"
DEFAULT_ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'admin123')

DEFAULT_GARMENTS = [
    {'name': 'Formal Trousers', 'price': 800, 'description': 'Custom formal trousers', 'category': 'Men'},
    {'name': 'Casual Pants', 'price': 600, 'description': 'Casual pants', 'category': 'Unisex'},
    {'name': 'Formal Shirt', 'price': 700, 'description': 'Custom formal shirt', 'category': 'Men'},
    {'name': 'Casual Shirt', 'price': 500, 'description': 'Casual shirt', 'category': 'Unisex'},
    {'name': 'Blazer', 'price': 2500, 'description': 'Custom blazer', 'category': 'Men'},
    {'name': 'Suit', 'price': 5000, 'description': 'Complete suit (3-piece)', 'category': 'Men'},
    {'name': 'Kurta', 'price': 800, 'description': 'Traditional kurta', 'category': 'Unisex'},
    {'name': 'Sherwani', 'price': 4000, 'description': 'Wedding/Special occasion sherwani', 'category': 'Men'},
]

SAMPLE_CLIENT = {
    'name': 'Sample Client',
    'phone': '+919999999999',
    'email': 'sample@example.com',
    'address': '123 Sample Street, Sample City',
}

DEFAULT_TEMPLATES = [
    {
        'name': 'Order Confirmation',
        'type': 'OrderConfirmation',
        'content': (
            "Dear {{client_name}},\n\n"
            "Thank you for choosing {{shop_name}}! Your order {{order_number}} has been confirmed.\n"
            "Total Amount: Rs {{total_amount}}\n"
            "Balance Due: Rs {{balance}}\n"
            "Expected Delivery: {{delivery_date}}\n\n"
            "Your invoice is attached for your records."
        ),
    },
    {
        'name': 'Trial Reminder',
        'type': 'TrialReminder',
        'content': (
            "Dear {{client_name}},\n\n"
            "This is a friendly reminder that the trial fitting for order {{order_number}} "
            "is scheduled on {{trial_date}}.\n\n"
            "We look forward to seeing you at {{shop_name}}!"
        ),
    },
    {
        'name': 'Delivery Reminder',
        'type': 'DeliveryReminder',
        'content': (
            "Dear {{client_name}},\n\n"
            "Your order {{order_number}} will be ready for delivery on {{delivery_date}}.\n"
            "Balance Due: Rs {{balance}}\n\n"
            "Thank you for trusting {{shop_name}}!"
        ),
    },
    {
        'name': 'Payment Reminder',
        'type': 'PaymentReminder',
        'content': (
            "Hello {{client_name}}, this is a gentle reminder from {{shop_name}}. "
            "You have an outstanding balance of Rs {{balance}}. "
            "Please clear your dues at your earliest convenience. Thank you!"
        ),
    },
    {
        'name': 'Post Delivery Thank You',
        'type': 'PostDelivery',
        'content': (
            "Dear {{client_name}},\n\n"
            "Thank you for collecting order {{order_number}} from {{shop_name}}. "
            "We hope you love your new outfit! Alterations are accepted within 7 days of delivery."
        ),
    },
]


def seed_default_admin(session):
    """Create default admin user if none exists."""
    admin = session.query(User).filter_by(role='admin').first()
    if admin:
        logger.info(f"Admin user already exists: {admin.username}")
        return admin

    admin = User(
        username=DEFAULT_ADMIN_USERNAME,
        password_hash=generate_password_hash(DEFAULT_ADMIN_PASSWORD, method='pbkdf2:sha256'),
        name=DEFAULT_ADMIN_NAME,
        role='admin',
        is_active=True
    )
    session.add(admin)
    session.flush()
    logger.info(f"Created default admin user: {admin.username}")
    return admin


def seed_garment_types(session):
    """Insert the default garment catalog, skipping names that already exist."""
    existing = {name for (name,) in session.query(GarmentType.name).all()}
    created = 0
    for garment in DEFAULT_GARMENTS:
        if garment['name'] in existing:
            continue
        session.add(GarmentType(**garment))
        created += 1
    session.flush()
    logger.info(f"Seeded {created} garment types")
    return created


def seed_sample_client(session):
    """Create the sample client if its phone number is unused."""
    client = session.query(Client).filter_by(phone=SAMPLE_CLIENT['phone']).first()
    if client:
        return client
    client = Client(**SAMPLE_CLIENT)
    session.add(client)
    session.flush()
    logger.info("Created sample client")
    return client


def seed_message_templates(session):
    """Insert the default message templates, skipping names that already exist."""
    existing = {name for (name,) in session.query(MessageTemplate.name).all()}
    created = 0
    for template in DEFAULT_TEMPLATES:
        if template['name'] in existing:
            continue
        session.add(MessageTemplate(is_active=True, **template))
        created += 1
    session.flush()
    logger.info(f"Seeded {created} message templates")
    return created


def seed_database(include_sample_client=True):
    """
    Seed the database with default data if empty.
    Call this at application startup.
    """
    try:
        with get_db_session() as session:
            seed_default_admin(session)
            seed_garment_types(session)
            if include_sample_client:
                seed_sample_client(session)
            seed_message_templates(session)
        logger.info("Database seeding completed successfully")
        return True
    except Exception as e:
        logger.error(f"Database seeding failed: {e}")
        return False


if __name__ == '__main__':
    from database.connection import configure_database, init_db
    logging.basicConfig(level=logging.INFO)
    configure_database()
    init_db()
    seed_database()
