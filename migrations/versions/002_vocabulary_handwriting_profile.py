"""vocabulary, handwriting and profile image

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('today_study', sa.Column('handwriting', sa.Text(), nullable=True))
    op.add_column('users', sa.Column('profile_image_url', sa.String(length=512), nullable=True))

    # --- vocabulary ---
    op.create_table(
        'vocabulary',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('study_id', sa.Integer(), nullable=False),
        sa.Column('word', sa.String(length=100), nullable=False),
        sa.Column('meaning', sa.Text(), nullable=False),
        sa.Column('example', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['study_id'], ['today_study.study_id'], name='fk_vocabulary_study', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('study_id', 'word', name='uq_vocabulary_study_word')
    )

    # --- vocabulary_likes ---
    op.create_table(
        'vocabulary_likes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('vocab_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_vocabulary_likes_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vocab_id'], ['vocabulary.id'], name='fk_vocabulary_likes_vocab', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'vocab_id', name='uq_vocabulary_likes_user_vocab')
    )
    op.create_index('idx_vocabulary_likes_user_created', 'vocabulary_likes', ['user_id', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_vocabulary_likes_user_created', table_name='vocabulary_likes')
    op.drop_table('vocabulary_likes')
    op.drop_table('vocabulary')
    op.drop_column('users', 'profile_image_url')
    op.drop_column('today_study', 'handwriting')
