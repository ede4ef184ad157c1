"""create access_databases and modules tables

Revision ID: 3c9e5a1f7b20
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3c9e5a1f7b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('access_databases',
        sa.Column('database_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('tables', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('queries', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('forms', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('reports', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.PrimaryKeyConstraint('database_id')
    )

    # One row per module version; intents holds the pipeline JSON state
    op.create_table('modules',
        sa.Column('module_id', sa.UUID(), nullable=False),
        sa.Column('database_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('vba_source', sa.Text(), nullable=True),
        sa.Column('cljs_source', sa.Text(), nullable=True),
        sa.Column('intents', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='imported'),
        sa.Column('is_current', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['database_id'], ['access_databases.database_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('module_id')
    )
    op.create_index('idx_modules_database_name_version', 'modules', ['database_id', 'name', 'version'], unique=False)
    op.create_index('idx_modules_current', 'modules', ['database_id', 'is_current'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_modules_current', table_name='modules')
    op.drop_index('idx_modules_database_name_version', table_name='modules')
    op.drop_table('modules')
    op.drop_table('access_databases')
