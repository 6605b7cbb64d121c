"""Initial schema for accounts, production, dispatch, inventory, ERP mirror and quality

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def upgrade() -> None:
    # Accounts
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('station_assignment', sa.String(100), nullable=True),
        sa.Column('branch_slugs', postgresql.JSONB(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'token_blacklist',
        sa.Column('token_hash', sa.String(64), primary_key=True),
        sa.Column('token_type', sa.String(10), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE')),
        sa.Column('blacklisted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_token_blacklist_expires', 'token_blacklist', ['expires_at'])

    # Kitchen production
    op.create_table(
        'production_schedules',
        sa.Column('schedule_id', sa.String(100), primary_key=True),
        sa.Column('week_start', sa.String(10), nullable=False),
        sa.Column('schedule_data', postgresql.JSONB(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_production_schedules_week_start', 'production_schedules', ['week_start'])

    op.create_table(
        'recipes',
        sa.Column('recipe_id', sa.String(255), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('recipe_data', postgresql.JSONB(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_recipes_name', 'recipes', ['name'])

    op.create_table(
        'recipe_instructions',
        sa.Column('instruction_id', sa.String(255), primary_key=True),
        sa.Column('recipe_name', sa.String(255), nullable=False),
        sa.Column('instruction_data', postgresql.JSONB(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
    )

    # Logistics
    op.create_table(
        'dispatches',
        sa.Column('id', sa.String(150), primary_key=True),
        sa.Column('created_date', sa.String(40), nullable=False),
        sa.Column('delivery_date', sa.String(10), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('branch_dispatches', postgresql.JSONB(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='primary'),
        sa.Column('parent_dispatch_id', sa.String(150), nullable=True),
        sa.Column('follow_up_dispatch_ids', postgresql.JSONB(), nullable=False),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_by', sa.String(255), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_dispatches_delivery_date', 'dispatches', ['delivery_date'])
    op.create_index('idx_dispatches_parent', 'dispatches', ['parent_dispatch_id'])

    # Inventory
    op.create_table(
        'branch_inventory',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('inventory_date', sa.Date(), nullable=False),
        sa.Column('branch', sa.String(100), nullable=False),
        sa.Column('item', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=True),
        sa.Column('unit', sa.String(50), nullable=True),
        sa.Column('unit_cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('total_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('last_synced', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('inventory_date', 'branch', 'item', name='uq_branch_inventory'),
    )
    op.create_index('idx_branch_inventory_branch', 'branch_inventory', ['branch'])

    op.create_table(
        'ingredient_mappings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('recipe_ingredient_name', sa.String(255), nullable=False, unique=True),
        sa.Column('inventory_item_name', sa.String(255), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )

    op.create_table(
        'inventory_checks',
        sa.Column('check_id', sa.String(150), primary_key=True),
        sa.Column('schedule_id', sa.String(100), nullable=False),
        sa.Column('check_date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('production_dates', postgresql.JSONB(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='COMPLETED'),
        sa.Column('total_ingredients_required', sa.Integer(), server_default='0'),
        sa.Column('missing_ingredients_count', sa.Integer(), server_default='0'),
        sa.Column('partial_ingredients_count', sa.Integer(), server_default='0'),
        sa.Column('sufficient_ingredients_count', sa.Integer(), server_default='0'),
        sa.Column('overall_status', sa.String(30), nullable=False),
        sa.Column('checked_by', sa.String(255), nullable=True),
        sa.Column('check_type', sa.String(20), server_default='MANUAL'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('idx_inventory_checks_schedule', 'inventory_checks', ['schedule_id'])

    op.create_table(
        'ingredient_shortages',
        sa.Column('shortage_id', sa.String(200), primary_key=True),
        sa.Column('check_id', sa.String(150), sa.ForeignKey('inventory_checks.check_id', ondelete='CASCADE'), nullable=False),
        sa.Column('schedule_id', sa.String(100), nullable=False),
        sa.Column('production_date', sa.String(10), nullable=False),
        sa.Column('ingredient_name', sa.String(255), nullable=False),
        sa.Column('inventory_item_name', sa.String(255), nullable=True),
        sa.Column('required_quantity', sa.Numeric(14, 2), nullable=False),
        sa.Column('available_quantity', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('shortfall_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('affected_recipes', postgresql.JSONB(), nullable=True),
        sa.Column('affected_production_items', postgresql.JSONB(), nullable=True),
        sa.Column('resolution_status', sa.String(20), server_default='PENDING'),
        sa.Column('resolution_action', sa.String(30), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('resolved_by', sa.String(255), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_shortages_check', 'ingredient_shortages', ['check_id'])
    op.create_index('idx_shortages_resolution_status', 'ingredient_shortages', ['resolution_status'])
    op.create_index('idx_shortages_schedule', 'ingredient_shortages', ['schedule_id'])

    op.create_table(
        'ingredient_alerts',
        sa.Column('alert_id', sa.String(100), primary_key=True),
        sa.Column('production_item_id', sa.String(150), nullable=False),
        sa.Column('schedule_id', sa.String(100), nullable=False),
        sa.Column('recipe_id', sa.String(150), nullable=True),
        sa.Column('recipe_name', sa.String(255), nullable=False),
        sa.Column('scheduled_date', sa.String(10), nullable=False),
        sa.Column('reported_by', sa.String(255), nullable=False),
        sa.Column('reported_by_name', sa.String(255), nullable=True),
        sa.Column('reported_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('missing_ingredients', postgresql.JSONB(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('acknowledged_by', sa.String(255), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by', sa.String(255), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
    )
    op.create_index('idx_ingredient_alerts_schedule', 'ingredient_alerts', ['schedule_id'])
    op.create_index('idx_ingredient_alerts_status', 'ingredient_alerts', ['status'])

    # ERP mirror, written by the sync job
    op.create_table(
        'odoo_sales',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_number', sa.String(100), nullable=True),
        sa.Column('order_type', sa.String(50), nullable=True),
        sa.Column('branch', sa.String(100), nullable=True),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('client', sa.String(255), nullable=True),
        sa.Column('items', sa.Text(), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('qty', sa.Numeric(12, 3), nullable=True),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('price_subtotal', sa.Numeric(12, 2), nullable=True),
        sa.Column('price_subtotal_with_tax', sa.Numeric(12, 2), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('idx_odoo_sales_date', 'odoo_sales', ['date'])
    op.create_index('idx_odoo_sales_branch', 'odoo_sales', ['branch'])

    op.create_table(
        'odoo_waste',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('branch', sa.String(100), nullable=True),
        sa.Column('item', sa.String(255), nullable=True),
        sa.Column('qty', sa.Numeric(12, 3), nullable=True),
        sa.Column('unit', sa.String(50), nullable=True),
        sa.Column('cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('idx_odoo_waste_date', 'odoo_waste', ['date'])

    op.create_table(
        'odoo_transfer',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('effective_date', sa.Date(), nullable=True),
        sa.Column('from_branch', sa.String(255), nullable=True),
        sa.Column('to_branch', sa.String(255), nullable=True),
        sa.Column('item', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=True),
        sa.Column('unit', sa.String(50), nullable=True),
        sa.Column('cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('idx_odoo_transfer_date', 'odoo_transfer', ['effective_date'])

    op.create_table(
        'odoo_recipe',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('item', sa.String(255), nullable=False),
        sa.Column('ingredient_name', sa.String(255), nullable=False),
        sa.Column('item_type', sa.String(20), nullable=True),
        sa.Column('quantity', sa.Numeric(14, 4), nullable=True),
        sa.Column('unit', sa.String(50), nullable=True),
        sa.Column('ingredient_cost', sa.Numeric(12, 4), nullable=True),
        sa.Column('recipe_total_cost', sa.Numeric(12, 4), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('idx_odoo_recipe_item', 'odoo_recipe', ['item'])

    op.create_table(
        'odoo_manufacturing',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('scheduled_date', sa.Date(), nullable=True),
        sa.Column('product', sa.String(255), nullable=True),
        sa.Column('quantity_to_produce', sa.Numeric(12, 3), nullable=True),
        sa.Column('state', sa.String(30), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )

    # Communication & quality
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False, server_default='normal'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('preview', sa.Text(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(255), server_default='admin'),
        sa.Column('related_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_notifications_active', 'notifications', ['is_active', 'expires_at'])

    op.create_table(
        'notification_reads',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('notification_id', sa.Integer(), sa.ForeignKey('notifications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('notification_id', 'user_id', name='uq_notification_read'),
    )

    op.create_table(
        'quality_checks',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('branch_slug', sa.String(100), nullable=False),
        sa.Column('submitted_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('submission_date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('meal_service', sa.String(20), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('section', sa.String(50), nullable=False),
        sa.Column('taste_score', sa.Integer(), nullable=False),
        sa.Column('appearance_score', sa.Integer(), nullable=False),
        sa.Column('portion_qty_gm', sa.Numeric(10, 2), nullable=True),
        sa.Column('temp_celsius', sa.Numeric(5, 2), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.CheckConstraint('taste_score BETWEEN 1 AND 5', name='ck_quality_taste_score'),
        sa.CheckConstraint('appearance_score BETWEEN 1 AND 5', name='ck_quality_appearance_score'),
    )
    op.create_index('idx_quality_checks_branch', 'quality_checks', ['branch_slug'])

    op.create_table(
        'quality_likes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('quality_check_id', sa.Integer(), sa.ForeignKey('quality_checks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('given_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('note', sa.String(200), nullable=True),
        sa.Column('tags', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('quality_check_id', 'given_by', name='uq_quality_like_per_user'),
    )
    op.create_index('idx_quality_likes_check_id', 'quality_likes', ['quality_check_id'])


def downgrade() -> None:
    op.drop_table('quality_likes')
    op.drop_table('quality_checks')
    op.drop_table('notification_reads')
    op.drop_table('notifications')
    op.drop_table('odoo_manufacturing')
    op.drop_table('odoo_recipe')
    op.drop_table('odoo_transfer')
    op.drop_table('odoo_waste')
    op.drop_table('odoo_sales')
    op.drop_table('ingredient_alerts')
    op.drop_table('ingredient_shortages')
    op.drop_table('inventory_checks')
    op.drop_table('ingredient_mappings')
    op.drop_table('branch_inventory')
    op.drop_table('dispatches')
    op.drop_table('recipe_instructions')
    op.drop_table('recipes')
    op.drop_table('production_schedules')
    op.drop_table('token_blacklist')
    op.drop_table('users')
