"""Add chat session tables

Revision ID: 7c2e9a41d5b3
Revises:
Create Date: 2026-02-11 10:42:08.517203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '7c2e9a41d5b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.Enum('student', 'parent', name='userrole'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'student_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('parent_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('invite_code', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.UniqueConstraint('invite_code'),
    )
    op.create_index('ix_student_profiles_parent_user_id', 'student_profiles', ['parent_user_id'])

    # Session metadata columns are derived from messages by the metadata pipeline
    op.create_table(
        'chat_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=255), server_default='새 대화', nullable=False),
        sa.Column('title_source', sa.String(length=16), server_default='none', nullable=False),
        sa.Column('title_updated_at', sa.DateTime(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('summary_updated_at', sa.DateTime(), nullable=True),
        sa.Column('risk_level', sa.String(length=16), server_default='normal', nullable=False),
        sa.Column('risk_reason', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("title_source IN ('none', 'fallback', 'ai', 'manual')", name='ck_chat_sessions_title_source'),
        sa.CheckConstraint("risk_level IN ('stable', 'normal', 'caution')", name='ck_chat_sessions_risk_level'),
    )
    op.create_index('ix_chat_sessions_student_id', 'chat_sessions', ['student_id'])
    op.create_index('ix_chat_sessions_started_at', 'chat_sessions', ['started_at'])

    op.create_table(
        'messages',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['chat_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_messages_session_created', 'messages', ['session_id', 'created_at'])

    op.create_table(
        'safety_alerts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('matched_keywords', sa.String(length=255), nullable=True),
        sa.Column('read', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['session_id'], ['chat_sessions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_safety_alerts_student_id', 'safety_alerts', ['student_id'])


def downgrade() -> None:
    op.drop_index('ix_safety_alerts_student_id', table_name='safety_alerts')
    op.drop_table('safety_alerts')
    op.drop_index('idx_messages_session_created', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_chat_sessions_started_at', table_name='chat_sessions')
    op.drop_index('ix_chat_sessions_student_id', table_name='chat_sessions')
    op.drop_table('chat_sessions')
    op.drop_index('ix_student_profiles_parent_user_id', table_name='student_profiles')
    op.drop_table('student_profiles')
    op.drop_table('users')
    op.execute('DROP TYPE userrole')
