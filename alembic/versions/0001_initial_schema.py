"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Postgres-перечисления хранят имена членов Enum, как их пишет SQLModel
ENUMS = {
    'servicetype': ('INDOOR_EVENTS', 'CLOUD_KITCHEN', 'HOMEMADE'),
    'orderstatus': ('PENDING', 'CONFIRMED', 'PREPARING', 'READY', 'OUT_FOR_DELIVERY', 'DELIVERED', 'CANCELLED'),
    'cookstatus': ('PENDING', 'ACCEPTED', 'PREPARING', 'COOKED', 'READY', 'REJECTED', 'AUTO_REJECTED'),
    'cookassignmentstatus': ('PENDING', 'ACCEPTED', 'REJECTED', 'AUTO_REJECTED'),
    'deliverystatus': ('PENDING', 'ASSIGNED', 'PICKED_UP', 'DELIVERED'),
    'margintype': ('PERCENT', 'FIXED'),
    'role': ('CUSTOMER', 'COOK', 'DELIVERY', 'ADMIN'),
    'deliverystafftype': ('FIXED_SALARY', 'REGISTERED_PARTNER'),
    'transactiontype': ('COLLECTION', 'EARNING', 'SETTLEMENT'),
    'transactionstatus': ('PENDING', 'APPROVED', 'REJECTED'),
    'settlementstatus': ('PENDING', 'APPROVED'),
    'referralstatus': ('PENDING', 'APPROVED', 'PAID'),
}


def enum(name: str) -> postgresql.ENUM:
    # Типы создаются заранее, таблицы только ссылаются на них
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def money() -> sa.Numeric:
    return sa.Numeric(12, 2)


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'profiles',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.VARCHAR(255)),
        sa.Column('mobile_number', sa.VARCHAR(32)),
        sa.PrimaryKeyConstraint('user_id'),
    )
    op.create_table(
        'cooks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kitchen_name', sa.VARCHAR(255)),
        sa.Column('mobile_number', sa.VARCHAR(32)),
        sa.Column('panchayat_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('total_orders', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'delivery_staff',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.VARCHAR(255)),
        sa.Column('mobile_number', sa.VARCHAR(32)),
        sa.Column('vehicle_type', sa.String(), nullable=False),
        sa.Column('vehicle_number', sa.String(), nullable=True),
        sa.Column('panchayat_id', sa.Integer(), nullable=True),
        sa.Column('assigned_panchayat_ids', postgresql.JSONB(), nullable=False),
        sa.Column('assigned_wards', postgresql.JSONB(), nullable=False),
        sa.Column('staff_type', enum('deliverystafftype'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('is_approved', sa.Boolean(), nullable=False),
        sa.Column('total_deliveries', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'food_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.VARCHAR(255)),
        sa.Column('price', money(), nullable=False),
        sa.Column('platform_margin_type', enum('margintype'), nullable=True),
        sa.Column('platform_margin_value', money(), nullable=True),
        sa.Column('service_type', enum('servicetype'), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'cook_dishes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cook_id', sa.Integer(), sa.ForeignKey('cooks.id'), nullable=False),
        sa.Column('food_item_id', sa.Integer(), sa.ForeignKey('food_items.id'), nullable=False),
        sa.Column('custom_price', money(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cook_id', 'food_item_id'),
    )
    op.create_index('ix_cook_dishes_cook_id', 'cook_dishes', ['cook_id'])
    op.create_index('ix_cook_dishes_food_item_id', 'cook_dishes', ['food_item_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(32), nullable=False, unique=True),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('service_type', enum('servicetype'), nullable=False),
        sa.Column('status', enum('orderstatus'), nullable=False),
        sa.Column('cook_assignment_status', enum('cookassignmentstatus'), nullable=False),
        sa.Column('cook_status', enum('cookstatus'), nullable=False),
        sa.Column('delivery_status', enum('deliverystatus'), nullable=False),
        sa.Column('total_amount', money(), nullable=False),
        sa.Column('delivery_amount', money(), nullable=True),
        sa.Column('panchayat_id', sa.Integer(), nullable=False),
        sa.Column('ward_number', sa.Integer(), nullable=False),
        sa.Column('delivery_address', sa.String(), nullable=True),
        sa.Column('delivery_instructions', sa.String(), nullable=True),
        sa.Column('assigned_cook_id', sa.Integer(), sa.ForeignKey('cooks.id'), nullable=True),
        sa.Column('assigned_delivery_id', sa.Integer(), sa.ForeignKey('delivery_staff.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('preparing_at', sa.DateTime(), nullable=True),
        sa.Column('ready_at', sa.DateTime(), nullable=True),
        sa.Column('out_for_delivery_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('delivery_offered_at', sa.DateTime(), nullable=True),
        sa.Column('delivery_escalated_at', sa.DateTime(), nullable=True),
        sa.Column('delivery_assigned_at', sa.DateTime(), nullable=True),
        sa.Column('picked_up_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('orders_delivery_pool_idx', 'orders', ['panchayat_id', 'delivery_status', 'cook_status'])

    op.create_table(
        'cook_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('cook_id', sa.Integer(), sa.ForeignKey('cooks.id'), nullable=False),
        sa.Column('cook_status', enum('cookstatus'), nullable=False),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cook_assignments_order_id', 'cook_assignments', ['order_id'])
    op.create_index('ix_cook_assignments_cook_id', 'cook_assignments', ['cook_id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('food_item_id', sa.Integer(), sa.ForeignKey('food_items.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('base_price', money(), nullable=False),
        sa.Column('platform_margin', money(), nullable=False),
        sa.Column('unit_price', money(), nullable=False),
        sa.Column('total_price', money(), nullable=False),
        sa.Column('special_instructions', sa.String(), nullable=True),
        sa.Column('selected_cook_id', sa.Integer(), sa.ForeignKey('cooks.id'), nullable=True),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('cook_assignments.id'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'delivery_wallets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('delivery_staff_id', sa.Integer(), sa.ForeignKey('delivery_staff.id'), nullable=False, unique=True),
        sa.Column('collected_amount', money(), nullable=False),
        sa.Column('job_earnings', money(), nullable=False),
        sa.Column('total_settled', money(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'settlements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('user_role', enum('role'), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=True),
        sa.Column('amount', money(), nullable=False),
        sa.Column('status', enum('settlementstatus'), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('panchayat_id', sa.Integer(), nullable=True),
        sa.Column('ward_number', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_settlements_user_id', 'settlements', ['user_id'])

    op.create_table(
        'wallet_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('delivery_staff_id', sa.Integer(), sa.ForeignKey('delivery_staff.id'), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=True),
        sa.Column('settlement_id', sa.Integer(), sa.ForeignKey('settlements.id'), nullable=True),
        sa.Column('transaction_type', enum('transactiontype'), nullable=False),
        sa.Column('amount', money(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('status', enum('transactionstatus'), nullable=False),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'transaction_type'),
    )
    op.create_index('ix_wallet_transactions_delivery_staff_id', 'wallet_transactions', ['delivery_staff_id'])

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False, unique=True),
        sa.Column('commission_percent', sa.Numeric(5, 2), nullable=False),
        sa.Column('commission_amount', money(), nullable=False),
        sa.Column('status', enum('referralstatus'), nullable=False),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'referrals', 'wallet_transactions', 'settlements', 'delivery_wallets', 'order_items',
        'cook_assignments', 'orders', 'cook_dishes', 'food_items', 'delivery_staff', 'cooks', 'profiles',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
