"""initial

Creates the proposal, milestone and time_session tables.  The partial
index uq_time_session_active_actor allows one active timer per actor.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'proposal',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('influencer_id', sa.String(length=64), nullable=False),
        sa.Column('proposed_compensation', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_proposal_influencer_id', 'proposal', ['influencer_id'])

    op.create_table(
        'milestone',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('proposal_id', sa.Integer(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=30), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('estimated_hours', sa.Numeric(6, 2), nullable=False),
        sa.Column('actual_hours', sa.Numeric(8, 2), nullable=True),
        sa.Column('payment_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['proposal_id'], ['proposal.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('proposal_id', 'order', name='uq_milestone_proposal_order'),
        sa.UniqueConstraint('proposal_id', 'type', name='uq_milestone_proposal_type'),
        sa.CheckConstraint('estimated_hours >= 0', name='ck_milestone_estimated_hours'),
        sa.CheckConstraint(
            'payment_percentage IS NULL OR '
            '(payment_percentage >= 0 AND payment_percentage <= 100)',
            name='ck_milestone_payment_percentage',
        ),
    )
    op.create_index('ix_milestone_proposal_id', 'milestone', ['proposal_id'])

    op.create_table(
        'time_session',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('milestone_id', sa.Integer(), nullable=False),
        sa.Column('proposal_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['milestone_id'], ['milestone.id']),
        sa.ForeignKeyConstraint(['proposal_id'], ['proposal.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'duration_seconds IS NULL OR duration_seconds >= 0',
            name='ck_time_session_duration',
        ),
    )
    op.create_index('ix_time_session_milestone_id', 'time_session', ['milestone_id'])
    op.create_index('ix_time_session_proposal_id', 'time_session', ['proposal_id'])

    # One active timer per actor
    op.create_index(
        'uq_time_session_active_actor',
        'time_session',
        ['actor_id'],
        unique=True,
        postgresql_where=sa.text('end_time IS NULL'),
        sqlite_where=sa.text('end_time IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('uq_time_session_active_actor', table_name='time_session')
    op.drop_index('ix_time_session_proposal_id', table_name='time_session')
    op.drop_index('ix_time_session_milestone_id', table_name='time_session')
    op.drop_table('time_session')
    op.drop_index('ix_milestone_proposal_id', table_name='milestone')
    op.drop_table('milestone')
    op.drop_index('ix_proposal_influencer_id', table_name='proposal')
    op.drop_table('proposal')
