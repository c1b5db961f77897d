"""Initial assistant metadata schema

Revision ID: 0001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from leadlines_assistant.db.types import GUID

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'owners',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('subject_id', sa.String(128), nullable=False, unique=True),
        sa.Column('email', sa.String(320), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'assistant_bindings',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('owner_id', GUID(), sa.ForeignKey('owners.id'), nullable=False, unique=True),
        sa.Column('assistant_id', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'threads',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('owner_id', GUID(), sa.ForeignKey('owners.id'), nullable=False, index=True),
        sa.Column('thread_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('owner_id', 'thread_id', name='uq_threads_owner_thread'),
    )
    op.create_index('ix_threads_owner_last_message', 'threads', ['owner_id', 'last_message_at'])

    op.create_table(
        'cached_messages',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('owner_id', GUID(), sa.ForeignKey('owners.id'), nullable=False),
        sa.Column('thread_id', sa.String(64), nullable=False),
        sa.Column('message_id', sa.String(64), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('run_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('owner_id', 'message_id', name='uq_cached_messages_owner_message'),
    )
    op.create_index('ix_cached_messages_owner_thread', 'cached_messages', ['owner_id', 'thread_id'])

    op.create_table(
        'file_bindings',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('owner_id', GUID(), sa.ForeignKey('owners.id'), nullable=False, index=True),
        sa.Column('assistant_id', sa.String(64), nullable=False),
        sa.Column('file_id', sa.String(64), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.String(127), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('owner_id', 'file_id', name='uq_file_bindings_owner_file'),
    )


def downgrade() -> None:
    op.drop_table('file_bindings')
    op.drop_index('ix_cached_messages_owner_thread', table_name='cached_messages')
    op.drop_table('cached_messages')
    op.drop_index('ix_threads_owner_last_message', table_name='threads')
    op.drop_table('threads')
    op.drop_table('assistant_bindings')
    op.drop_table('owners')
