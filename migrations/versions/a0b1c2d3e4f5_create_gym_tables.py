"""create gym tables

Revision ID: a0b1c2d3e4f5
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = 'a0b1c2d3e4f5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'person',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(32), nullable=False),
    )
    op.create_unique_constraint('uq_person_full_name', 'person', ['full_name'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('freeze_days', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'person_subscriptions',
        sa.Column('number', sa.String(64), primary_key=True),
        sa.Column('person_id', sa.Integer(), sa.ForeignKey('person.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('subscription_id', sa.Integer(), sa.ForeignKey('subscriptions.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('subscription_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('discount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('final_price', sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint('end_date >= start_date', name='ck_person_sub_dates'),
    )
    op.create_index('ix_person_subscriptions_person_id', 'person_subscriptions', ['person_id'])
    op.create_index('ix_person_subscriptions_start_date', 'person_subscriptions', ['start_date'])
    op.create_index('ix_person_subscriptions_end_date', 'person_subscriptions', ['end_date'])

    op.create_table(
        'subscription_freeze',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            'subscription_number', sa.String(64),
            sa.ForeignKey('person_subscriptions.number', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('freeze_start', sa.Date(), nullable=False),
        sa.Column('freeze_end', sa.Date(), nullable=True),
        sa.Column('days_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_subscription_freeze_subscription_number', 'subscription_freeze', ['subscription_number'])
    # At most one open interval per subscription
    op.create_index(
        'uq_subscription_freeze_open',
        'subscription_freeze',
        ['subscription_number'],
        unique=True,
        postgresql_where=sa.text('freeze_end IS NULL'),
    )

    op.create_table(
        'single_visits',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('visit_date', sa.Date(), nullable=False),
        sa.Column('final_price', sa.Numeric(12, 2), nullable=False),
    )
    op.create_index('ix_single_visits_visit_date', 'single_visits', ['visit_date'])


def downgrade():
    op.drop_index('ix_single_visits_visit_date', table_name='single_visits')
    op.drop_table('single_visits')
    op.drop_index('uq_subscription_freeze_open', table_name='subscription_freeze')
    op.drop_index('ix_subscription_freeze_subscription_number', table_name='subscription_freeze')
    op.drop_table('subscription_freeze')
    op.drop_index('ix_person_subscriptions_end_date', table_name='person_subscriptions')
    op.drop_index('ix_person_subscriptions_start_date', table_name='person_subscriptions')
    op.drop_index('ix_person_subscriptions_person_id', table_name='person_subscriptions')
    op.drop_table('person_subscriptions')
    op.drop_table('subscriptions')
    op.drop_constraint('uq_person_full_name', 'person', type_='unique')
    op.drop_table('person')
