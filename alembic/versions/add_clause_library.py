"""Add clause library and site clause associations

Revision ID: add_clause_library
Revises: add_tos_analysis_cache
Create Date: 2026-09-29 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'add_clause_library'
down_revision: Union[str, None] = 'add_tos_analysis_cache'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'clause_library',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('clause_hash', sa.String(length=64), nullable=False),
        sa.Column('clause_text', sa.Text(), nullable=False),
        sa.Column('clause_summary', sa.Text(), nullable=True),
        sa.Column('risk_category', sa.String(length=64), nullable=False),
        sa.Column('risk_level', sa.String(length=16), nullable=False),
        sa.Column('risk_score', sa.Integer(), nullable=True),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('user_impact', sa.Text(), nullable=True),
        sa.Column('mitigation_advice', sa.Text(), nullable=True),
        sa.Column('clause_type', sa.String(length=64), nullable=True),
        sa.Column('keywords', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('language', sa.String(length=8), nullable=False, server_default='en'),
        sa.Column('found_in_sites_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('last_seen_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by_ai_model', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('clause_hash')
    )
    op.create_index('idx_clause_library_risk_category', 'clause_library', ['risk_category'], unique=False)
    op.create_index('idx_clause_library_risk_level', 'clause_library', ['risk_level'], unique=False)
    op.create_index('idx_clause_library_clause_type', 'clause_library', ['clause_type'], unique=False)

    op.create_table(
        'site_clause_associations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.Column('clause_id', sa.String(length=36), nullable=False),
        sa.Column('clause_position', sa.Integer(), nullable=True),
        sa.Column('section_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['clause_id'], ['clause_library.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('site_id', 'clause_id', name='uq_site_clause')
    )
    op.create_index('idx_site_clause_site_id', 'site_clause_associations', ['site_id'], unique=False)
    op.create_index('idx_site_clause_clause_id', 'site_clause_associations', ['clause_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_site_clause_clause_id', table_name='site_clause_associations')
    op.drop_index('idx_site_clause_site_id', table_name='site_clause_associations')
    op.drop_table('site_clause_associations')
    op.drop_index('idx_clause_library_clause_type', table_name='clause_library')
    op.drop_index('idx_clause_library_risk_level', table_name='clause_library')
    op.drop_index('idx_clause_library_risk_category', table_name='clause_library')
    op.drop_table('clause_library')
