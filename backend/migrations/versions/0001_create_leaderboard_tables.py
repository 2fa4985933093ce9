"""create leaderboard tables

Revision ID: 0001_leaderboard
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_leaderboard'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'startups',
        sa.Column('id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('website_url', sa.String(500), nullable=False),
        sa.Column('country', sa.String(2), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_startups_slug', 'startups', ['slug'], unique=True)
    op.create_index('ix_startups_country', 'startups', ['country'])
    op.create_index('ix_startups_category', 'startups', ['category'])

    op.create_table(
        'provider_connections',
        sa.Column('id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('startup_id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('provider_account_id', sa.String(255), nullable=False),
        sa.Column(
            'status',
            sa.Enum('connected', 'revoked', 'error', name='connectionstatus', create_type=True),
            nullable=False,
        ),
        sa.Column('connected_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['startup_id'], ['startups.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('startup_id', 'provider', name='uq_provider_connections_startup_provider'),
    )
    op.create_index('ix_provider_connections_startup_id', 'provider_connections', ['startup_id'])
    op.create_index('ix_provider_connections_provider', 'provider_connections', ['provider'])

    op.create_table(
        'provider_tokens',
        sa.Column('id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('provider_connection_id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('scope', sa.String(500), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['provider_connection_id'], ['provider_connections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('provider_connection_id'),
    )

    op.create_table(
        'startup_metrics_current',
        sa.Column('id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('startup_id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('mrr', sa.BigInteger(), nullable=False),
        sa.Column('total_revenue', sa.BigInteger(), nullable=False),
        sa.Column('last_30d_revenue', sa.BigInteger(), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('provider_last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['startup_id'], ['startups.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('startup_id'),
    )
    op.create_index('ix_startup_metrics_current_provider', 'startup_metrics_current', ['provider'])

    op.create_table(
        'startup_metrics_history',
        sa.Column('id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('startup_id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('mrr', sa.BigInteger(), nullable=False),
        sa.Column('total_revenue', sa.BigInteger(), nullable=False),
        sa.Column('last_30d_revenue', sa.BigInteger(), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['startup_id'], ['startups.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('startup_id', 'snapshot_date', name='uq_metrics_history_startup_date'),
    )
    op.create_index('ix_startup_metrics_history_startup_id', 'startup_metrics_history', ['startup_id'])
    op.create_index('ix_startup_metrics_history_snapshot_date', 'startup_metrics_history', ['snapshot_date'])

    op.create_table(
        'sponsorships',
        sa.Column('id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column('startup_id', sa.UUID(as_uuid=False), nullable=False),
        sa.Column(
            'type',
            sa.Enum('featured_listing', 'category_hero', 'homepage_sponsor', name='sponsorshiptype', create_type=True),
            nullable=False,
        ),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column(
            'status',
            sa.Enum('pending', 'active', 'cancelled', 'expired', name='sponsorshipstatus', create_type=True),
            nullable=False,
        ),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True),
        sa.Column('stripe_price_id', sa.String(255), nullable=True),
        sa.Column('stripe_checkout_session_id', sa.String(255), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['startup_id'], ['startups.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sponsorships_startup_id', 'sponsorships', ['startup_id'])
    op.create_index('ix_sponsorships_status', 'sponsorships', ['status'])
    op.create_index('ix_sponsorships_stripe_subscription_id', 'sponsorships', ['stripe_subscription_id'])
    op.create_index('ix_sponsorships_stripe_checkout_session_id', 'sponsorships', ['stripe_checkout_session_id'])


def downgrade() -> None:
    op.drop_table('sponsorships')
    op.drop_table('startup_metrics_history')
    op.drop_table('startup_metrics_current')
    op.drop_table('provider_tokens')
    op.drop_table('provider_connections')
    op.drop_table('startups')
    op.execute("DROP TYPE IF EXISTS sponsorshipstatus")
    op.execute("DROP TYPE IF EXISTS sponsorshiptype")
    op.execute("DROP TYPE IF EXISTS connectionstatus")
