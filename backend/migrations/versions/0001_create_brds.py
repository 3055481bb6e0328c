"""create brds table

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # databases created before migrations were tracked already have the table
    if "brds" in sa.inspect(op.get_bind()).get_table_names():
        return
    op.create_table(
        'brds',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('transcription', sa.Text(), nullable=True),
        sa.Column('extra_notes', sa.Text(), nullable=True),
        sa.Column('final_doc_path', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_brds_created_at', 'brds', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_brds_created_at', table_name='brds')
    op.drop_table('brds')
