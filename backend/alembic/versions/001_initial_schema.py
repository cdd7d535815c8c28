"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create subjects table
    op.create_table(
        'subjects',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(64), nullable=False),
        sa.Column('course_id', sa.String(64), nullable=True),
        sa.Column('has_embedding', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('handout_path', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subjects_code', 'subjects', ['code'], unique=True)

    # Create ai_chat_sessions table
    op.create_table(
        'ai_chat_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('code', sa.String(64), nullable=False),
        sa.Column(
            'stage',
            sa.Enum('UPLOAD', 'SUMMARY', 'CHAT', 'QUIZ', 'WEAK_TOPICS', name='chatstage'),
            nullable=False,
        ),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('weak_topics', sa.JSON(), nullable=False),
        sa.Column('exam_type', sa.Enum('MIDTERM', 'FINAL_TERM', name='examtype'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'code', name='uq_session_user_code')
    )
    op.create_index('ix_ai_chat_sessions_user_id', 'ai_chat_sessions', ['user_id'])
    op.create_index('ix_ai_chat_sessions_code', 'ai_chat_sessions', ['code'])
    op.create_index('ix_ai_chat_sessions_stage', 'ai_chat_sessions', ['stage'])


def downgrade() -> None:
    op.drop_table('ai_chat_sessions')
    op.drop_table('subjects')
    sa.Enum(name='examtype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='chatstage').drop(op.get_bind(), checkfirst=True)
