"""Initial moderation schema

Revision ID: mod001_initial_schema
Revises:
Create Date: 2025-11-24

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'mod001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'authors',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(100), nullable=False, unique=True, index=True),
        sa.Column('reputation_score', sa.Integer, nullable=False, server_default='50'),
        sa.Column('account_age_days', sa.Integer, nullable=False, server_default='0'),
        sa.Column('previous_violations', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # contents doubles as the moderation queue
    op.create_table(
        'contents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('type', sa.String(20), nullable=False, server_default='comment'),
        sa.Column('text', sa.Text, nullable=False, server_default=''),
        sa.Column('author_id', sa.String(36), sa.ForeignKey('authors.id'), nullable=False, index=True),
        sa.Column('thread_id', sa.String(36), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='queued', index=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('claimed_at', sa.DateTime, nullable=True),
        sa.Column('processed_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_content_status_created', 'contents', ['status', 'created_at'])

    op.create_table(
        'content_images',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('content_id', sa.String(36), sa.ForeignKey('contents.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('file_path', sa.String(1024), nullable=True),
        sa.Column('mime_type', sa.String(100), nullable=True),
        sa.Column('file_size', sa.Integer, nullable=True),
        sa.Column('classification_label', sa.String(255), nullable=True),
        sa.Column('classification_confidence', sa.Float, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'contexts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('content_id', sa.String(36), sa.ForeignKey('contents.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('author_reputation', sa.Float, nullable=False),
        sa.Column('thread_sentiment', sa.Float, nullable=False, server_default='0'),
        sa.Column('engagement_level', sa.Float, nullable=False, server_default='0.5'),
        sa.Column('time_of_day', sa.Integer, nullable=False),
        sa.Column('day_of_week', sa.Integer, nullable=False),
        sa.Column('language', sa.String(10), nullable=False, server_default='en'),
        sa.Column('content_length', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'predictions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('content_id', sa.String(36), sa.ForeignKey('contents.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('spam_score', sa.Float, nullable=False),
        sa.Column('toxic_score', sa.Float, nullable=False),
        sa.Column('hate_score', sa.Float, nullable=False),
        sa.Column('offensive_score', sa.Float, nullable=False),
        sa.Column('final_score', sa.Float, nullable=False),
        sa.Column('decision', sa.String(10), nullable=False),
        sa.Column('confidence', sa.String(10), nullable=False),
        sa.Column('context_factors', sa.Text, nullable=True),
        sa.Column('model_version', sa.Integer, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now(), index=True),
    )

    op.create_table(
        'reviews',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('content_id', sa.String(36), sa.ForeignKey('contents.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('gold_label', sa.String(10), nullable=True),
        sa.Column('correct_decision', sa.Boolean, nullable=True),
        sa.Column('feedback', sa.Text, nullable=True),
        sa.Column('moderator_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('reviewed_at', sa.DateTime, nullable=True, index=True),
    )

    op.create_table(
        'system_settings',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('allow_threshold', sa.Float, nullable=False, server_default='0.3'),
        sa.Column('review_threshold', sa.Float, nullable=False, server_default='0.5'),
        sa.Column('block_threshold', sa.Float, nullable=False, server_default='0.7'),
        sa.Column('retrain_threshold', sa.Integer, nullable=False, server_default='10'),
        sa.Column('new_gold_since_last_train', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_retrain_date', sa.DateTime, nullable=True),
        sa.Column('retraining_enabled', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'model_versions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('version', sa.Integer, nullable=False, unique=True, index=True),
        sa.Column('accuracy', sa.Float, nullable=False, server_default='0'),
        sa.Column('precision', sa.Float, nullable=False, server_default='0'),
        sa.Column('recall', sa.Float, nullable=False, server_default='0'),
        sa.Column('f1_score', sa.Float, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.false(), index=True),
        sa.Column('model_path', sa.String(1024), nullable=False),
        sa.Column('trained_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('training_sample_count', sa.Integer, nullable=False, server_default='0'),
    )

    op.create_table(
        'blocked_words',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('word', sa.String(255), nullable=False),
        sa.Column('category', sa.String(50), nullable=False, index=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_blocked_word_category_active', 'blocked_words', ['category', 'is_active'])


def downgrade() -> None:
    op.drop_index('idx_blocked_word_category_active', table_name='blocked_words')
    op.drop_table('blocked_words')
    op.drop_table('model_versions')
    op.drop_table('system_settings')
    op.drop_table('reviews')
    op.drop_table('predictions')
    op.drop_table('contexts')
    op.drop_table('content_images')
    op.drop_index('idx_content_status_created', table_name='contents')
    op.drop_table('contents')
    op.drop_table('authors')
