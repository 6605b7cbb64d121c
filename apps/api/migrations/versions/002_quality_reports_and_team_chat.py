"""Quality feedback and form fields, sales product columns and team chat

Revision ID: 002_quality_reports_and_team_chat
Revises: 001_initial_schema
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '002_quality_reports_and_team_chat'
down_revision: Union[str, None] = '001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


CORE_FIELDS = [
    {'field_key': 'taste_score', 'label': 'Taste', 'field_type': 'rating', 'is_required': True,
     'min_value': 1, 'max_value': 5, 'icon': 'utensils', 'placeholder': None},
    {'field_key': 'appearance_score', 'label': 'Appearance', 'field_type': 'rating', 'is_required': True,
     'min_value': 1, 'max_value': 5, 'icon': 'eye', 'placeholder': None},
    {'field_key': 'portion_qty_gm', 'label': 'Portion (g)', 'field_type': 'number', 'is_required': False,
     'min_value': None, 'max_value': None, 'icon': 'scale', 'placeholder': 'e.g. 250'},
    {'field_key': 'temp_celsius', 'label': 'Temperature (°C)', 'field_type': 'number', 'is_required': False,
     'min_value': None, 'max_value': None, 'icon': 'thermometer', 'placeholder': 'e.g. 65'},
]

QUICK_REPLIES = [
    ('On my way!', '🏃'),
    ('Dispatch received ✅', '📦'),
    ('Need help!', '🆘'),
    ('Running low on stock', '📉'),
    ('All done!', '✅'),
    ('Thanks!', '🙏'),
]


def upgrade() -> None:
    # ERP mirror
    op.add_column('odoo_sales', sa.Column('product_group', sa.String(100), nullable=True))
    op.add_column('odoo_sales', sa.Column('barcode', sa.String(100), nullable=True))
    op.add_column('odoo_sales', sa.Column('unit_of_measure', sa.String(50), nullable=True))

    # Quality
    op.add_column('quality_checks', sa.Column('custom_fields', postgresql.JSONB(), nullable=True))

    op.create_table(
        'quality_feedback',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('quality_check_id', sa.Integer(), sa.ForeignKey('quality_checks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('feedback_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('feedback_text', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('idx_quality_feedback_by', 'quality_feedback', ['feedback_by'])
    op.create_index('idx_quality_feedback_check_id', 'quality_feedback', ['quality_check_id'])

    field_config = op.create_table(
        'quality_check_field_config',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('field_key', sa.String(50), nullable=False, unique=True),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('field_type', sa.String(20), nullable=False),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('options', postgresql.JSONB(), nullable=True),
        sa.Column('min_value', sa.Numeric(10, 2), nullable=True),
        sa.Column('max_value', sa.Numeric(10, 2), nullable=True),
        sa.Column('placeholder', sa.String(255), nullable=True),
        sa.Column('notes_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('section', sa.String(20), nullable=False, server_default='custom'),
        sa.Column('icon', sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_quality_field_config_sort', 'quality_check_field_config', ['sort_order'])
    op.bulk_insert(
        field_config,
        [dict(field, section='core', sort_order=index) for index, field in enumerate(CORE_FIELDS, start=1)],
    )

    # Team chat
    channels = op.create_table(
        'chat_channels',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_read_only', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('icon', sa.String(50), nullable=False, server_default='hash'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('channel_id', sa.Integer(), sa.ForeignKey('chat_channels.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('is_urgent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('idx_chat_messages_channel_id', 'chat_messages', ['channel_id'])
    op.create_index('idx_chat_messages_created_at', 'chat_messages', ['created_at'])
    op.create_index('idx_chat_messages_user_id', 'chat_messages', ['user_id'])

    op.create_table(
        'chat_members',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('channel_id', sa.Integer(), sa.ForeignKey('chat_channels.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('last_read_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('is_muted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('channel_id', 'user_id', name='uq_chat_member'),
    )
    op.create_index('idx_chat_members_user_id', 'chat_members', ['user_id'])

    op.create_table(
        'chat_reactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('message_id', sa.Integer(), sa.ForeignKey('chat_messages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('emoji', sa.String(50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('message_id', 'user_id', 'emoji', name='uq_chat_reaction'),
    )
    op.create_index('idx_chat_reactions_message_id', 'chat_reactions', ['message_id'])

    quick_replies = op.create_table(
        'chat_quick_replies',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('text', sa.String(100), nullable=False),
        sa.Column('emoji', sa.String(20), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )

    op.bulk_insert(
        channels,
        [{'name': 'General', 'slug': 'general', 'description': 'Main chat channel for everyone', 'icon': 'users'}],
    )
    op.bulk_insert(
        quick_replies,
        [
            {'text': text, 'emoji': emoji, 'sort_order': index}
            for index, (text, emoji) in enumerate(QUICK_REPLIES, start=1)
        ],
    )


def downgrade() -> None:
    op.drop_table('chat_quick_replies')
    op.drop_table('chat_reactions')
    op.drop_table('chat_members')
    op.drop_table('chat_messages')
    op.drop_table('chat_channels')
    op.drop_table('quality_check_field_config')
    op.drop_table('quality_feedback')
    op.drop_column('quality_checks', 'custom_fields')
    op.drop_column('odoo_sales', 'unit_of_measure')
    op.drop_column('odoo_sales', 'barcode')
    op.drop_column('odoo_sales', 'product_group')
