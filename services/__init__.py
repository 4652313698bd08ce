"""
Services package for The Darji back office.
Contains repository classes for database access and the business services.
"""

from services.users_repository import UsersRepository
from services.clients_repository import ClientsRepository
from services.garments_repository import GarmentsRepository
from services.orders_repository import OrdersRepository
from services.invoices_repository import InvoicesRepository
from services.message_repository import MessageRepository, MessageTemplateRepository
from services.measurement_repository import MeasurementRepository

__all__ = [
    'UsersRepository',
    'ClientsRepository',
    'GarmentsRepository',
    'OrdersRepository',
    'InvoicesRepository',
    'MessageRepository',
    'MessageTemplateRepository',
    'MeasurementRepository',
]
