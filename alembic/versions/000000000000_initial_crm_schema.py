"""initial_crm_schema

Revision ID: 000000000000
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '000000000000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEAD_STATUS = ('NEW', 'CONTACTED', 'QUALIFIED', 'UNDER_CONTRACT', 'CLOSED', 'LOST')
TASK_PRIORITY = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')
TASK_STATUS = ('PENDING', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED')
OFFER_STATUS = ('DRAFT', 'SENT', 'ACCEPTED', 'REJECTED', 'EXPIRED')

json_list = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='Timestamp when record was created'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='Timestamp when record was last updated'),
    ]


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False, comment='ADMIN, ACQUISITIONS or DISPOSITIONS'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email')
    )

    # Create leads table
    op.create_table(
        'leads',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('status', sa.Enum(*LEAD_STATUS, name='lead_status'), nullable=False),
        sa.Column('timeline', sa.String(length=100), nullable=True),
        sa.Column('motivation', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('assigned_to_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['assigned_to_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_leads_status', 'leads', ['status'], unique=False)
    op.create_index('idx_leads_assigned_to', 'leads', ['assigned_to_id'], unique=False)

    # Create properties table (1:1 with leads)
    op.create_table(
        'properties',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('lead_id', sa.Integer(), nullable=False, comment='References leads table'),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=50), nullable=False),
        sa.Column('zip_code', sa.String(length=10), nullable=True),
        sa.Column('property_type', sa.String(length=100), nullable=True),
        sa.Column('price', sa.Numeric(precision=14, scale=2), nullable=True, comment='Asking / contract price used for buyer matching'),
        sa.Column('estimated_value', sa.Numeric(precision=14, scale=2), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('lead_id'),
        sa.CheckConstraint('price IS NULL OR price >= 0', name='check_property_price_positive')
    )
    op.create_index('idx_properties_city', 'properties', ['city'], unique=False)

    # Create buyers table
    op.create_table(
        'buyers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('company', sa.String(length=200), nullable=True),
        sa.Column('cash_buyer', sa.Boolean(), nullable=False),
        sa.Column('proof_of_funds', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    # Create buyer_preferences table
    op.create_table(
        'buyer_preferences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('min_price', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('max_price', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('areas', json_list, nullable=False, comment='Free-text city/region tokens'),
        sa.Column('property_types', json_list, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['buyer_id'], ['buyers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_buyer_preferences_buyer_id', 'buyer_preferences', ['buyer_id'], unique=False)

    # Create offers table
    op.create_table(
        'offers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('lead_id', sa.Integer(), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('offer_amount', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('status', sa.Enum(*OFFER_STATUS, name='offer_status'), nullable=False),
        sa.Column('terms', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id']),
        sa.ForeignKeyConstraint(['buyer_id'], ['buyers.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('offer_amount >= 0', name='check_offer_amount_positive')
    )
    op.create_index('idx_offers_lead_id', 'offers', ['lead_id'], unique=False)
    op.create_index('idx_offers_buyer_id', 'offers', ['buyer_id'], unique=False)

    # Create tasks table
    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('lead_id', sa.Integer(), nullable=True),
        sa.Column('buyer_id', sa.Integer(), nullable=True),
        sa.Column('assigned_to_id', sa.Integer(), nullable=True),
        sa.Column('priority', sa.Enum(*TASK_PRIORITY, name='task_priority'), nullable=False),
        sa.Column('status', sa.Enum(*TASK_STATUS, name='task_status'), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id']),
        sa.ForeignKeyConstraint(['buyer_id'], ['buyers.id']),
        sa.ForeignKeyConstraint(['assigned_to_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('lead_id IS NOT NULL OR buyer_id IS NOT NULL', name='check_task_has_subject')
    )
    op.create_index('idx_tasks_status_due_date', 'tasks', ['status', 'due_date'], unique=False)
    op.create_index('idx_tasks_assigned_to', 'tasks', ['assigned_to_id'], unique=False)
    op.create_index('idx_tasks_lead_id', 'tasks', ['lead_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_tasks_lead_id', table_name='tasks')
    op.drop_index('idx_tasks_assigned_to', table_name='tasks')
    op.drop_index('idx_tasks_status_due_date', table_name='tasks')
    op.drop_table('tasks')
    op.drop_index('idx_offers_buyer_id', table_name='offers')
    op.drop_index('idx_offers_lead_id', table_name='offers')
    op.drop_table('offers')
    op.drop_index('idx_buyer_preferences_buyer_id', table_name='buyer_preferences')
    op.drop_table('buyer_preferences')
    op.drop_table('buyers')
    op.drop_index('idx_properties_city', table_name='properties')
    op.drop_table('properties')
    op.drop_index('idx_leads_assigned_to', table_name='leads')
    op.drop_index('idx_leads_status', table_name='leads')
    op.drop_table('leads')
    op.drop_table('users')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in ('task_status', 'task_priority', 'offer_status', 'lead_status'):
            op.execute(f'DROP TYPE IF EXISTS {enum_name}')
