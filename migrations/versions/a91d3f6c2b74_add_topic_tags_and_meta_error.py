"""Add topic tags and metadata failure markers to chat sessions

Revision ID: a91d3f6c2b74
Revises: 7c2e9a41d5b3
Create Date: 2026-03-02 09:15:41.204118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a91d3f6c2b74'
down_revision: Union[str, None] = '7c2e9a41d5b3'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('chat_sessions', sa.Column('topic_tags', postgresql.JSONB(astext_type=sa.Text()), nullable=True))
    op.add_column('chat_sessions', sa.Column('meta_error_at', sa.DateTime(), nullable=True))
    op.add_column('chat_sessions', sa.Column('meta_error_code', sa.String(length=64), nullable=True))


def downgrade() -> None:
    op.drop_column('chat_sessions', 'meta_error_code')
    op.drop_column('chat_sessions', 'meta_error_at')
    op.drop_column('chat_sessions', 'topic_tags')
