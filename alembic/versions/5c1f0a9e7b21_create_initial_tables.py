"""create_initial_tables

Revision ID: 5c1f0a9e7b21
Revises:
Create Date: 2026-10-18 10:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = '5c1f0a9e7b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'source',
        sa.Column('url', sqlmodel.sql.sqltypes.AutoString(length=2048), nullable=False),
        sa.Column('title', sqlmodel.sql.sqltypes.AutoString(length=512), nullable=False),
        sa.Column(
            'category',
            sa.Enum(
                'Tutorial', 'Werkzeug', 'Material', 'Technik', 'Inspiration',
                'Community', 'Geschichte', 'Sonstiges',
                name='sourcecategory',
            ),
            nullable=False,
        ),
        sa.Column('summary', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('language', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=False),
        sa.Column('source_query', sqlmodel.sql.sqltypes.AutoString(length=512), nullable=True),
        sa.Column('relevance_score', sa.Integer(), nullable=False),
        sa.Column('corrected_score', sa.Integer(), nullable=True),
        sa.Column('star_rating', sa.Boolean(), nullable=False),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date_added', sa.DateTime(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_source_url'), 'source', ['url'], unique=True)
    op.create_index(op.f('ix_source_category'), 'source', ['category'], unique=False)
    op.create_index(op.f('ix_source_language'), 'source', ['language'], unique=False)
    op.create_index(op.f('ix_source_source_query'), 'source', ['source_query'], unique=False)
    op.create_index(op.f('ix_source_star_rating'), 'source', ['star_rating'], unique=False)
    op.create_index(op.f('ix_source_date_added'), 'source', ['date_added'], unique=False)

    op.create_table(
        'search_query',
        sa.Column('query', sqlmodel.sql.sqltypes.AutoString(length=512), nullable=False),
        sa.Column('is_ai_generated', sa.Boolean(), nullable=False),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('pending', 'processing', 'processed', 'failed', name='querystatus'),
            nullable=False,
        ),
        sa.Column('date_added', sa.DateTime(), nullable=False),
        sa.Column('date_processed', sa.DateTime(), nullable=True),
        sa.Column('error_message', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('results_count', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_search_query_query'), 'search_query', ['query'], unique=False)
    op.create_index(op.f('ix_search_query_is_ai_generated'), 'search_query', ['is_ai_generated'], unique=False)
    op.create_index(op.f('ix_search_query_status'), 'search_query', ['status'], unique=False)
    op.create_index(op.f('ix_search_query_date_added'), 'search_query', ['date_added'], unique=False)

    op.create_table(
        'tag_cooccurrence',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tag1', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('tag2', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tag1', 'tag2', name='uq_tag_cooccurrence_pair'),
    )
    op.create_index(op.f('ix_tag_cooccurrence_tag1'), 'tag_cooccurrence', ['tag1'], unique=False)
    op.create_index(op.f('ix_tag_cooccurrence_tag2'), 'tag_cooccurrence', ['tag2'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_tag_cooccurrence_tag2'), table_name='tag_cooccurrence')
    op.drop_index(op.f('ix_tag_cooccurrence_tag1'), table_name='tag_cooccurrence')
    op.drop_table('tag_cooccurrence')

    op.drop_index(op.f('ix_search_query_date_added'), table_name='search_query')
    op.drop_index(op.f('ix_search_query_status'), table_name='search_query')
    op.drop_index(op.f('ix_search_query_is_ai_generated'), table_name='search_query')
    op.drop_index(op.f('ix_search_query_query'), table_name='search_query')
    op.drop_table('search_query')

    op.drop_index(op.f('ix_source_date_added'), table_name='source')
    op.drop_index(op.f('ix_source_star_rating'), table_name='source')
    op.drop_index(op.f('ix_source_source_query'), table_name='source')
    op.drop_index(op.f('ix_source_language'), table_name='source')
    op.drop_index(op.f('ix_source_category'), table_name='source')
    op.drop_index(op.f('ix_source_url'), table_name='source')
    op.drop_table('source')
