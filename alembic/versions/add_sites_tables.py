"""Add sites, site risk analyses and document versions

Revision ID: add_sites_tables
Revises:
Create Date: 2026-09-28 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'add_sites_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'sites',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('tos_url', sa.Text(), nullable=True),
        sa.Column('privacy_policy_url', sa.Text(), nullable=True),
        sa.Column('last_crawled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('domain')
    )

    op.create_table(
        'site_risk_analyses',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.Column('overall_risk_score', sa.Integer(), nullable=False),
        sa.Column('risk_level', sa.String(length=16), nullable=False),
        sa.Column('risk_color', sa.String(length=16), nullable=True),
        sa.Column('category_scores', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('content_hash', sa.String(length=64), nullable=True),
        sa.Column('content_type', sa.String(length=32), nullable=True),
        sa.Column('analysis_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ai_model_version', sa.String(length=64), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('recommendation_summary', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('site_id')
    )
    op.create_index('idx_site_risk_analysis_date', 'site_risk_analyses', ['analysis_date'], unique=False)

    op.create_table(
        'tos_versions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.Column('version_hash', sa.String(length=64), nullable=False),
        sa.Column('content_type', sa.String(length=32), nullable=False),
        sa.Column('content_length', sa.Integer(), nullable=True),
        sa.Column('detected_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_current', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_tos_versions_site_type', 'tos_versions', ['site_id', 'content_type'], unique=False)
    op.create_index('idx_tos_versions_is_current', 'tos_versions', ['is_current'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_tos_versions_is_current', table_name='tos_versions')
    op.drop_index('idx_tos_versions_site_type', table_name='tos_versions')
    op.drop_table('tos_versions')
    op.drop_index('idx_site_risk_analysis_date', table_name='site_risk_analyses')
    op.drop_table('site_risk_analyses')
    op.drop_table('sites')
