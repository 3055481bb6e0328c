"""add language to brds

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0003'
down_revision: Union[str, Sequence[str], None] = '0002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    columns = {c["name"] for c in sa.inspect(op.get_bind()).get_columns("brds")}
    if "language" in columns:
        return
    op.add_column(
        'brds',
        sa.Column('language', sa.String(2), nullable=False, server_default='en'),
    )


def downgrade() -> None:
    with op.batch_alter_table('brds') as batch:
        batch.drop_column('language')
