"""Add ToS analysis cache table

Revision ID: add_tos_analysis_cache
Revises: add_sites_tables
Create Date: 2026-09-28 10:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'add_tos_analysis_cache'
down_revision: Union[str, None] = 'add_sites_tables'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'tos_analysis_cache',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=True),
        sa.Column('content_hash', sa.String(length=64), nullable=False),
        sa.Column('content_type', sa.String(length=32), nullable=False),
        sa.Column('content_length', sa.Integer(), nullable=True),
        sa.Column('language', sa.String(length=8), nullable=False, server_default='en'),
        sa.Column('overall_risk_score', sa.Integer(), nullable=False),
        sa.Column('risk_analysis', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('detected_clauses', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('risk_explanations', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('recommendation_summary', sa.Text(), nullable=True),
        sa.Column('ai_model_used', sa.String(length=64), nullable=True),
        sa.Column('analysis_version', sa.String(length=32), nullable=True),
        sa.Column('tokens_used', sa.Integer(), nullable=True),
        sa.Column('analysis_duration_ms', sa.Integer(), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('analyzed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_accessed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('access_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_stale', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('content_hash', 'content_type', name='uq_tos_cache_hash_type')
    )
    op.create_index('idx_tos_cache_site_id', 'tos_analysis_cache', ['site_id'], unique=False)
    op.create_index('idx_tos_cache_analyzed_at', 'tos_analysis_cache', ['analyzed_at'], unique=False)
    op.create_index('idx_tos_cache_last_accessed_at', 'tos_analysis_cache', ['last_accessed_at'], unique=False)
    op.create_index('idx_tos_cache_is_stale', 'tos_analysis_cache', ['is_stale'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_tos_cache_is_stale', table_name='tos_analysis_cache')
    op.drop_index('idx_tos_cache_last_accessed_at', table_name='tos_analysis_cache')
    op.drop_index('idx_tos_cache_analyzed_at', table_name='tos_analysis_cache')
    op.drop_index('idx_tos_cache_site_id', table_name='tos_analysis_cache')
    op.drop_table('tos_analysis_cache')
