"""create webhook tables

Revision ID: a1c3e5f7b9d1
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d1'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

delivery_status = postgresql.ENUM(
    'pending', 'success', 'retrying', 'failed',
    name='webhookdeliverystatus',
)


def upgrade() -> None:
    """Upgrade database schema."""
    delivery_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'webhook_subscriptions',
        sa.Column('vendor_id', sa.Integer(), nullable=False, comment='Owning vendor'),
        sa.Column(
            'endpoint_url',
            sa.String(length=2048),
            nullable=False,
            comment='HTTPS URL receiving deliveries',
        ),
        sa.Column(
            'secret',
            sa.String(length=128),
            nullable=False,
            comment='Hex-encoded HMAC secret',
        ),
        sa.Column(
            'event_types',
            postgresql.ARRAY(sa.String(length=100)),
            nullable=False,
            comment='Event types this subscription receives',
        ),
        sa.Column('enabled', sa.Boolean(), nullable=False, comment='Whether deliveries are sent'),
        sa.Column('id', sa.Uuid(), nullable=False, comment='UUID v4 primary key'),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
            comment='Timestamp of record creation',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
            comment='Timestamp of last update',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_webhook_subscriptions')),
    )
    op.create_index(
        op.f('ix_webhook_subscriptions_vendor_id'),
        'webhook_subscriptions',
        ['vendor_id'],
        unique=False,
    )

    op.create_table(
        'webhook_deliveries',
        sa.Column(
            'subscription_id',
            sa.Uuid(),
            nullable=False,
            comment='Subscription this delivery targets',
        ),
        sa.Column(
            'event_type',
            sa.String(length=100),
            nullable=False,
            comment='Type of event being delivered',
        ),
        sa.Column('vendor_id', sa.Integer(), nullable=False, comment='Vendor that raised the event'),
        sa.Column(
            'event_correlation_id',
            sa.Integer(),
            nullable=True,
            comment='Domain identifier of the triggering object',
        ),
        sa.Column(
            'payload',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment='Event data embedded in the delivered body',
        ),
        sa.Column(
            'status',
            postgresql.ENUM(name='webhookdeliverystatus', create_type=False),
            nullable=False,
            comment='Delivery status: pending, success, retrying, failed',
        ),
        sa.Column(
            'attempt_count',
            sa.Integer(),
            nullable=False,
            comment='Number of delivery attempts made',
        ),
        sa.Column(
            'response_code',
            sa.Integer(),
            nullable=True,
            comment='Last HTTP status code (0 when no response)',
        ),
        sa.Column(
            'response_body',
            sa.Text(),
            nullable=True,
            comment='Last response body or error text (truncated)',
        ),
        sa.Column(
            'next_retry_at',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Scheduled time for next attempt while retrying',
        ),
        sa.Column(
            'delivered_at',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Time of successful delivery',
        ),
        sa.Column('id', sa.Uuid(), nullable=False, comment='UUID v4 primary key'),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
            comment='Timestamp of record creation',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
            comment='Timestamp of last update',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_webhook_deliveries')),
    )

    # Retry sweep lookup
    op.create_index(
        'ix_webhook_deliveries_status_next_retry_at',
        'webhook_deliveries',
        ['status', 'next_retry_at'],
        unique=False,
    )
    op.create_index(
        op.f('ix_webhook_deliveries_subscription_id'),
        'webhook_deliveries',
        ['subscription_id'],
        unique=False,
    )
    op.create_index(
        op.f('ix_webhook_deliveries_event_type'),
        'webhook_deliveries',
        ['event_type'],
        unique=False,
    )
    op.create_index(
        op.f('ix_webhook_deliveries_vendor_id'),
        'webhook_deliveries',
        ['vendor_id'],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index(op.f('ix_webhook_deliveries_vendor_id'), table_name='webhook_deliveries')
    op.drop_index(op.f('ix_webhook_deliveries_event_type'), table_name='webhook_deliveries')
    op.drop_index(op.f('ix_webhook_deliveries_subscription_id'), table_name='webhook_deliveries')
    op.drop_index('ix_webhook_deliveries_status_next_retry_at', table_name='webhook_deliveries')
    op.drop_table('webhook_deliveries')
    op.drop_index(op.f('ix_webhook_subscriptions_vendor_id'), table_name='webhook_subscriptions')
    op.drop_table('webhook_subscriptions')
    delivery_status.drop(op.get_bind(), checkfirst=True)
