"""Add user preferences, analysis history and risk alerts

Revision ID: add_user_tables
Revises: add_clause_library
Create Date: 2026-10-02 14:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'add_user_tables'
down_revision: Union[str, None] = 'add_clause_library'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user_preferences',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('preferences', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table(
        'user_analysis_history',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.Column('tos_analysis_cache_id', sa.String(length=36), nullable=True),
        sa.Column('personalized_risk_score', sa.Integer(), nullable=True),
        sa.Column('violated_preferences', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('personalized_warnings', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('user_recommendation', sa.String(length=16), nullable=True),
        sa.Column('analysis_requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_decision', sa.String(length=16), nullable=True),
        sa.Column('decision_made_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tos_analysis_cache_id'], ['tos_analysis_cache.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_user_history_user_site', 'user_analysis_history', ['user_id', 'site_id'], unique=False)
    op.create_index('idx_user_history_requested_at', 'user_analysis_history', ['analysis_requested_at'], unique=False)

    op.create_table(
        'risk_alerts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=True),
        sa.Column('alert_type', sa.String(length=32), nullable=False),
        sa.Column('risk_score', sa.Integer(), nullable=True),
        sa.Column('violated_preferences', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('action_taken', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_risk_alerts_user_read', 'risk_alerts', ['user_id', 'is_read'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_risk_alerts_user_read', table_name='risk_alerts')
    op.drop_table('risk_alerts')
    op.drop_index('idx_user_history_requested_at', table_name='user_analysis_history')
    op.drop_index('idx_user_history_user_site', table_name='user_analysis_history')
    op.drop_table('user_analysis_history')
    op.drop_table('user_preferences')
