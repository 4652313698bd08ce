"""Initial database schema

Revision ID: 001
Revises: 
Create Date: 2026-10-17

Creates all tables for The Darji back office.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    # Users table
    op.create_table('users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('username', sa.String(30), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )

    # Clients table
    op.create_table('clients',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('email', sa.String(254)),
        sa.Column('address', sa.String(500)),
        sa.Column('notes', sa.Text()),
        sa.Column('tags', sa.JSON()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone')
    )
    op.create_index('ix_clients_name', 'clients', ['name'])

    # Garment catalog
    op.create_table('garment_types',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('cost', sa.Float(), nullable=False, server_default='0'),
        sa.Column('description', sa.String(500)),
        sa.Column('category', sa.String(20), nullable=False, server_default='Unisex'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Orders table
    op.create_table('orders',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('order_number', sa.String(20), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('measurements', sa.JSON()),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('final_amount', sa.Float()),
        sa.Column('advance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('trial_date', sa.DateTime()),
        sa.Column('delivery_date', sa.DateTime()),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('cancellation_reason', sa.Text()),
        sa.Column('created_by', sa.String(36)),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number')
    )
    op.create_index('ix_orders_client', 'orders', ['client_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    # Order line items
    op.create_table('order_items',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('order_id', sa.String(36), nullable=False),
        sa.Column('garment_type_id', sa.String(36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('cost', sa.Float(), nullable=False, server_default='0'),
        sa.Column('subtotal', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['garment_type_id'], ['garment_types.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_items_order', 'order_items', ['order_id'])
    op.create_index('ix_order_items_garment', 'order_items', ['garment_type_id'])

    # Additional services
    op.create_table('additional_services',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('order_id', sa.String(36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.String(200), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('cost', sa.Float(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    # Special requirements and trial notes share the note columns
    for table, extra in (('special_requirements', [sa.Column('position', sa.Integer(), nullable=False,
                                                             server_default='0')]),
                         ('trial_notes', [])):
        op.create_table(table,
            sa.Column('id', sa.String(36), nullable=False),
            sa.Column('order_id', sa.String(36), nullable=False),
            *extra,
            sa.Column('note', sa.Text(), nullable=False),
            sa.Column('image_url', sa.String(1024)),
            sa.Column('s3_key', sa.String(1024)),
            sa.Column('images', sa.JSON()),
            *_timestamps(),
            sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )

    # Invoices table
    op.create_table('invoices',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('invoice_number', sa.String(20), nullable=False),
        sa.Column('order_id', sa.String(36), nullable=False),
        sa.Column('pdf_path', sa.String(512)),
        sa.Column('s3_key', sa.String(512)),
        sa.Column('pdf_url', sa.String(1024)),
        sa.Column('generated_by', sa.String(36)),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['generated_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_number'),
        sa.UniqueConstraint('order_id')
    )

    # Messages table
    op.create_table('messages',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('order_id', sa.String(36)),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('sent_at', sa.DateTime()),
        sa.Column('delivered_at', sa.DateTime()),
        sa.Column('read_at', sa.DateTime()),
        sa.Column('metadata', sa.JSON()),
        sa.Column('sent_by', sa.String(36)),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['sent_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_messages_client', 'messages', ['client_id'])
    op.create_index('ix_messages_status', 'messages', ['status'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])

    # Message templates
    op.create_table('message_templates',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('variables', sa.JSON()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_used_at', sa.DateTime()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Measurement templates
    op.create_table('measurement_templates',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('garment_type_id', sa.String(36), nullable=False),
        sa.Column('measurements', sa.JSON(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_used_at', sa.DateTime()),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['garment_type_id'], ['garment_types.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_measurement_templates_client_garment', 'measurement_templates',
                    ['client_id', 'garment_type_id'])


def downgrade() -> None:
    op.drop_table('measurement_templates')
    op.drop_table('message_templates')
    op.drop_table('messages')
    op.drop_table('invoices')
    op.drop_table('trial_notes')
    op.drop_table('special_requirements')
    op.drop_table('additional_services')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('garment_types')
    op.drop_table('clients')
    op.drop_table('users')
