"""
Database package for The Darji back office.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    configure_database,
    get_db_session,
    init_db,
    check_db_connection
)

from database.models import (
    User,
    Client,
    GarmentType,
    Order,
    OrderItem,
    AdditionalService,
    SpecialRequirement,
    TrialNote,
    Invoice,
    Message,
    MessageTemplate,
    MeasurementTemplate
)

__all__ = [
    # Connection
    'Base',
    'configure_database',
    'get_db_session',
    'init_db',
    'check_db_connection',
    # Models
    'User',
    'Client',
    'GarmentType',
    'Order',
    'OrderItem',
    'AdditionalService',
    'SpecialRequirement',
    'TrialNote',
    'Invoice',
    'Message',
    'MessageTemplate',
    'MeasurementTemplate'
]
