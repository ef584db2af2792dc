"""initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19 01:00:00.000000

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
    # --- users ---
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('nickname', sa.String(length=50), nullable=True),
        sa.Column('is_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('role', sa.String(length=16), server_default='user', nullable=False),
        sa.Column('status', sa.String(length=16), server_default='active', nullable=False),
        sa.Column('inactive_date', sa.DateTime(), nullable=True),
        sa.Column('friend_code', sa.String(length=7), nullable=False),
        sa.Column('avatar_name', sa.String(length=64), nullable=True),
        sa.Column('point', sa.Integer(), server_default='0', nullable=False),
        sa.Column('level', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('nickname', name='uq_users_nickname'),
        sa.UniqueConstraint('friend_code', name='uq_users_friend_code')
    )

    # --- friend_edges ---
    op.create_table(
        'friend_edges',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('requester_id', sa.String(length=64), nullable=False),
        sa.Column('addressee_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), server_default='ACCEPTED', nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('requester_id <> addressee_id', name='ck_friend_edges_not_self'),
        sa.ForeignKeyConstraint(['requester_id'], ['users.id'], name='fk_friend_edges_requester'),
        sa.ForeignKeyConstraint(['addressee_id'], ['users.id'], name='fk_friend_edges_addressee'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('requester_id', 'addressee_id', name='uq_friend_edges_pair')
    )
    op.create_index('idx_friend_edges_addressee', 'friend_edges', ['addressee_id', 'status'], unique=False)

    # --- today_study ---
    op.create_table(
        'today_study',
        sa.Column('study_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('progress_step1', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('progress_step2', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('progress_step3', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_today_study_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('study_id'),
        sa.UniqueConstraint('user_id', 'date', name='uq_today_study_user_date')
    )

    # --- prompts ---
    op.create_table(
        'prompts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('word', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # --- writings ---
    op.create_table(
        'writings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('prompt_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_published', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('custom_color', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_writings_user', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['prompt_id'], ['prompts.id'], name='fk_writings_prompt'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_writings_prompt_created', 'writings', ['prompt_id', 'created_at'], unique=False)

    # --- likes / scraps ---
    for table in ('likes', 'scraps'):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('user_id', sa.String(length=64), nullable=False),
            sa.Column('writing_id', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=f'fk_{table}_user', ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['writing_id'], ['writings.id'], name=f'fk_{table}_writing', ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'writing_id', name=f'uq_{table}_user_writing')
        )

    # --- copy_items ---
    op.create_table(
        'copy_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('author', sa.String(length=100), nullable=True),
        sa.Column('cover_url', sa.String(length=512), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # --- transcriptions ---
    op.create_table(
        'transcriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=16), server_default='copy', nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('custom_title', sa.String(length=255), nullable=True),
        sa.Column('custom_content', sa.Text(), nullable=True),
        sa.Column('typed_content', sa.Text(), nullable=False),
        sa.Column('custom_color', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_transcriptions_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_id'], ['copy_items.id'], name='fk_transcriptions_source'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_transcriptions_user_created', 'transcriptions', ['user_id', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('transcriptions')
    op.drop_table('copy_items')
    op.drop_table('scraps')
    op.drop_table('likes')
    op.drop_table('writings')
    op.drop_table('prompts')
    op.drop_table('today_study')
    op.drop_table('friend_edges')
    op.drop_table('users')
