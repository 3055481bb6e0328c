"""create chat_messages table

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0002'
down_revision: Union[str, Sequence[str], None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if "chat_messages" in sa.inspect(op.get_bind()).get_table_names():
        return
    op.create_table(
        'chat_messages',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('brd_id', sa.String(36), sa.ForeignKey('brds.id'), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_chat_messages_brd_id', 'chat_messages', ['brd_id'])


def downgrade() -> None:
    op.drop_index('ix_chat_messages_brd_id', table_name='chat_messages')
    op.drop_table('chat_messages')
