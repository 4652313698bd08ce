"""
SQLAlchemy models for The Darji back office.
Defines users, clients, garment catalog, orders, invoices and messaging tables.
"""

import re
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, DateTime,
    ForeignKey, JSON, Index, event
)
from sqlalchemy.orm import relationship, validates
from database.connection import Base
from validators import ValidationError, check_final_amount

TEMPLATE_VARIABLE_PATTERN = re.compile(r'{{(\w+)}}')


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def utcnow():
    """Naive UTC timestamp (all DateTime columns store UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


# =============================================================================
# USERS & AUTHENTICATION
# =============================================================================

class User(TimestampMixin, Base):
    """Staff accounts that can sign in to the back office."""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    username = Column(String(30), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(String(20), default='user', nullable=False)  # admin, user
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime)

    def to_dict(self, include_sensitive=False):
        data = {
            'id': self.id,
            'username': self.username,
            'name': self.name,
            'role': self.role,
            'is_active': self.is_active,
            'last_login': _iso(self.last_login),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_sensitive:
            data['password_hash'] = self.password_hash
        return data


# =============================================================================
# CLIENTS & CATALOG
# =============================================================================

class Client(TimestampMixin, Base):
    """Shop customers, identified by phone number."""
    __tablename__ = 'clients'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), unique=True, nullable=False)
    email = Column(String(254))
    address = Column(String(500))
    notes = Column(Text)
    tags = Column(JSON, default=list)

    orders = relationship("Order", back_populates="client", order_by="Order.created_at.desc()")
    messages = relationship("Message", back_populates="client", cascade="all, delete-orphan")
    measurement_templates = relationship("MeasurementTemplate", back_populates="client",
                                         cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_clients_name', 'name'),
    )

    @validates('email')
    def _lowercase_email(self, key, value):
        return value.strip().lower() if value else None

    def to_summary(self):
        return {'id': self.id, 'name': self.name, 'phone': self.phone, 'email': self.email}

    def to_dict(self, include_orders=False):
        data = {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'notes': self.notes,
            'tags': self.tags or [],
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_orders:
            data['orders'] = [order.to_summary() for order in self.orders]
        return data


class GarmentType(TimestampMixin, Base):
    """Stitching catalog entry with list price and making cost."""
    __tablename__ = 'garment_types'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False)
    price = Column(Float, nullable=False)
    cost = Column(Float, default=0, nullable=False)
    description = Column(String(500))
    category = Column(String(20), default='Unisex', nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    measurement_templates = relationship("MeasurementTemplate", back_populates="garment_type",
                                         cascade="all, delete-orphan")

    @property
    def profit_margin(self):
        return (self.price or 0) - (self.cost or 0)

    @property
    def profit_margin_percentage(self):
        if not self.cost:
            return 100
        return round((self.price - self.cost) / self.cost * 100, 2)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'cost': self.cost or 0,
            'description': self.description,
            'category': self.category,
            'is_active': self.is_active,
            'profit_margin': self.profit_margin,
            'profit_margin_percentage': self.profit_margin_percentage,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# ORDERS
# =============================================================================

class Order(TimestampMixin, Base):
    """A stitching order with line items, services and notes."""
    __tablename__ = 'orders'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_number = Column(String(20), unique=True, nullable=False)
    client_id = Column(String(36), ForeignKey('clients.id'), nullable=False)
    status = Column(String(20), default='Pending', nullable=False)
    measurements = Column(JSON, default=dict)
    total_amount = Column(Float, nullable=False)
    final_amount = Column(Float)
    advance = Column(Float, default=0, nullable=False)
    trial_date = Column(DateTime)
    delivery_date = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(Text)
    created_by = Column(String(36), ForeignKey('users.id'))

    client = relationship("Client", back_populates="orders")
    creator = relationship("User")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan",
                         order_by="OrderItem.position")
    additional_services = relationship("AdditionalService", back_populates="order",
                                       cascade="all, delete-orphan", order_by="AdditionalService.position")
    special_requirements = relationship("SpecialRequirement", back_populates="order",
                                        cascade="all, delete-orphan", order_by="SpecialRequirement.position")
    trial_notes = relationship("TrialNote", back_populates="order", cascade="all, delete-orphan",
                               order_by="TrialNote.created_at")
    invoice = relationship("Invoice", back_populates="order", uselist=False, cascade="all, delete-orphan")
    messages = relationship("Message", back_populates="order")

    __table_args__ = (
        Index('ix_orders_client', 'client_id'),
        Index('ix_orders_status', 'status'),
        Index('ix_orders_created_at', 'created_at'),
    )

    @validates('status')
    def _stamp_status(self, key, value):
        if value == 'Completed' and not self.completed_at:
            self.completed_at = utcnow()
        elif value == 'Cancelled' and not self.cancelled_at:
            self.cancelled_at = utcnow()
        return value

    @property
    def effective_amount(self):
        return self.final_amount if self.final_amount else (self.total_amount or 0)

    @property
    def balance(self):
        return self.effective_amount - (self.advance or 0)

    @property
    def items_total(self):
        return sum(item.subtotal or 0 for item in self.items)

    @property
    def services_total(self):
        return sum(service.amount or 0 for service in self.additional_services)

    @property
    def total_cost(self):
        items_cost = sum((item.cost or 0) * (item.quantity or 0) for item in self.items)
        services_cost = sum(service.cost or 0 for service in self.additional_services)
        return items_cost + services_cost

    @property
    def profit(self):
        return self.effective_amount - self.total_cost

    def check_amounts(self):
        """Enforce amount rules before the row is written."""
        check_final_amount(self.total_amount, self.final_amount)
        if (self.advance or 0) < 0:
            raise ValidationError('Advance cannot be negative', field='advance')

    def to_summary(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'total_amount': self.total_amount,
            'final_amount': self.final_amount,
            'advance': self.advance,
            'status': self.status,
            'balance': self.balance,
            'created_at': _iso(self.created_at)
        }

    def to_dict(self, include_client=True):
        data = {
            'id': self.id,
            'order_number': self.order_number,
            'client_id': self.client_id,
            'status': self.status,
            'items': [item.to_dict() for item in self.items],
            'additional_services': [service.to_dict() for service in self.additional_services],
            'special_requirements': [req.to_dict() for req in self.special_requirements],
            'trial_notes': [note.to_dict() for note in self.trial_notes],
            'measurements': self.measurements or {},
            'total_amount': self.total_amount,
            'final_amount': self.final_amount,
            'advance': self.advance,
            'effective_amount': self.effective_amount,
            'balance': self.balance,
            'items_total': self.items_total,
            'services_total': self.services_total,
            'total_cost': self.total_cost,
            'profit': self.profit,
            'trial_date': _iso(self.trial_date),
            'delivery_date': _iso(self.delivery_date),
            'completed_at': _iso(self.completed_at),
            'cancelled_at': _iso(self.cancelled_at),
            'cancellation_reason': self.cancellation_reason,
            'created_by': self.created_by,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_client:
            data['client'] = self.client.to_summary() if self.client else None
        return data


@event.listens_for(Order, 'before_insert')
@event.listens_for(Order, 'before_update')
def _validate_order_amounts(mapper, connection, target):
    target.check_amounts()


class OrderItem(Base):
    """One garment line on an order."""
    __tablename__ = 'order_items'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    garment_type_id = Column(String(36), ForeignKey('garment_types.id'), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    cost = Column(Float, default=0, nullable=False)
    subtotal = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")
    garment_type = relationship("GarmentType")

    __table_args__ = (
        Index('ix_order_items_order', 'order_id'),
        Index('ix_order_items_garment', 'garment_type_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'garment_type_id': self.garment_type_id,
            'garment_type': self.garment_type.to_dict() if self.garment_type else None,
            'quantity': self.quantity,
            'price': self.price,
            'cost': self.cost or 0,
            'subtotal': self.subtotal
        }


class AdditionalService(Base):
    """Extra chargeable work on an order (e.g. embroidery, urgent delivery)."""
    __tablename__ = 'additional_services'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    description = Column(String(200), nullable=False)
    amount = Column(Float, nullable=False)
    cost = Column(Float, default=0, nullable=False)

    order = relationship("Order", back_populates="additional_services")

    def to_dict(self):
        return {
            'id': self.id,
            'description': self.description,
            'amount': self.amount,
            'cost': self.cost or 0
        }


class OrderNoteMixin(TimestampMixin):
    """Shared shape of special requirements and trial notes."""
    id = Column(String(36), primary_key=True, default=generate_uuid)
    note = Column(Text, nullable=False)
    image_url = Column(String(1024))
    s3_key = Column(String(1024))
    images = Column(JSON, default=list)

    def add_images(self, stored_files):
        """Append stored files; the first one also becomes the primary image."""
        if not stored_files:
            return
        self.images = list(self.images or []) + [
            {'url': f['url'], 's3_key': f.get('s3_key')} for f in stored_files
        ]
        if not self.image_url:
            self.image_url = stored_files[0]['url']
            self.s3_key = stored_files[0].get('s3_key')

    def to_dict(self):
        return {
            'id': self.id,
            'note': self.note,
            'image_url': self.image_url,
            's3_key': self.s3_key,
            'images': self.images or [],
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class SpecialRequirement(OrderNoteMixin, Base):
    __tablename__ = 'special_requirements'

    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, default=0, nullable=False)

    order = relationship("Order", back_populates="special_requirements")


class TrialNote(OrderNoteMixin, Base):
    __tablename__ = 'trial_notes'

    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)

    order = relationship("Order", back_populates="trial_notes")


# =============================================================================
# INVOICES
# =============================================================================

class Invoice(TimestampMixin, Base):
    """Generated PDF invoice, one per order."""
    __tablename__ = 'invoices'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    invoice_number = Column(String(20), unique=True, nullable=False)
    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), unique=True, nullable=False)
    pdf_path = Column(String(512))
    s3_key = Column(String(512))
    pdf_url = Column(String(1024))
    generated_by = Column(String(36), ForeignKey('users.id'))

    order = relationship("Order", back_populates="invoice")

    @property
    def storage_type(self):
        if self.s3_key:
            return 'S3'
        if self.pdf_path:
            return 'Local'
        return None

    def to_dict(self, include_order=False):
        data = {
            'id': self.id,
            'invoice_number': self.invoice_number,
            'order_id': self.order_id,
            'pdf_path': self.pdf_path,
            's3_key': self.s3_key,
            'pdf_url': self.pdf_url,
            'storage_type': self.storage_type,
            'generated_by': self.generated_by,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if self.order is not None:
            data['order_number'] = self.order.order_number
            data['client'] = self.order.client.to_summary() if self.order.client else None
            if include_order:
                data['order'] = self.order.to_dict()
        return data


# =============================================================================
# MESSAGING
# =============================================================================

class Message(TimestampMixin, Base):
    """Outbound WhatsApp message log."""
    __tablename__ = 'messages'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    order_id = Column(String(36), ForeignKey('orders.id', ondelete='SET NULL'))
    type = Column(String(30), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String(20), default='Pending', nullable=False)
    sent_at = Column(DateTime)
    delivered_at = Column(DateTime)
    read_at = Column(DateTime)
    message_metadata = Column('metadata', JSON, default=dict)
    sent_by = Column(String(36), ForeignKey('users.id'))

    client = relationship("Client", back_populates="messages")
    order = relationship("Order", back_populates="messages")

    __table_args__ = (
        Index('ix_messages_client', 'client_id'),
        Index('ix_messages_status', 'status'),
        Index('ix_messages_created_at', 'created_at'),
    )

    STATUS_TIMESTAMPS = {'Sent': 'sent_at', 'Delivered': 'delivered_at', 'Read': 'read_at'}

    @validates('status')
    def _stamp_status(self, key, value):
        stamp = self.STATUS_TIMESTAMPS.get(value)
        if stamp and not getattr(self, stamp):
            setattr(self, stamp, utcnow())
        return value

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'client': self.client.to_summary() if self.client else None,
            'order_id': self.order_id,
            'order_number': self.order.order_number if self.order else None,
            'type': self.type,
            'content': self.content,
            'status': self.status,
            'sent_at': _iso(self.sent_at),
            'delivered_at': _iso(self.delivered_at),
            'read_at': _iso(self.read_at),
            'metadata': self.message_metadata or {},
            'sent_by': self.sent_by,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class MessageTemplate(TimestampMixin, Base):
    """Reusable message text with {{variable}} placeholders."""
    __tablename__ = 'message_templates'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False)
    type = Column(String(30), nullable=False)
    content = Column(Text, nullable=False)
    variables = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    last_used_at = Column(DateTime)

    @validates('content')
    def _extract_variables(self, key, value):
        self.variables = TEMPLATE_VARIABLE_PATTERN.findall(value or '')
        return value

    def render(self, data):
        """Substitute {{var}} placeholders; missing or empty values leave the placeholder."""
        data = data or {}

        def substitute(match):
            value = data.get(match.group(1))
            return str(value) if value else match.group(0)

        return TEMPLATE_VARIABLE_PATTERN.sub(substitute, self.content or '')

    def record_usage(self):
        self.usage_count = (self.usage_count or 0) + 1
        self.last_used_at = utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'content': self.content,
            'variables': self.variables or [],
            'is_active': self.is_active,
            'usage_count': self.usage_count or 0,
            'last_used_at': _iso(self.last_used_at),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class MeasurementTemplate(TimestampMixin, Base):
    """Saved measurement set for a client and garment type."""
    __tablename__ = 'measurement_templates'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    client_id = Column(String(36), ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    garment_type_id = Column(String(36), ForeignKey('garment_types.id', ondelete='CASCADE'), nullable=False)
    measurements = Column(JSON, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    last_used_at = Column(DateTime)
    notes = Column(Text)

    client = relationship("Client", back_populates="measurement_templates")
    garment_type = relationship("GarmentType", back_populates="measurement_templates")

    __table_args__ = (
        Index('ix_measurement_templates_client_garment', 'client_id', 'garment_type_id'),
    )

    def record_usage(self):
        self.usage_count = (self.usage_count or 0) + 1
        self.last_used_at = utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'client_id': self.client_id,
            'client': self.client.to_summary() if self.client else None,
            'garment_type_id': self.garment_type_id,
            'garment_type': {'id': self.garment_type.id, 'name': self.garment_type.name}
            if self.garment_type else None,
            'measurements': self.measurements or {},
            'is_default': self.is_default,
            'usage_count': self.usage_count or 0,
            'last_used_at': _iso(self.last_used_at),
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
