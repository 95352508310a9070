"""Initial schema for podcasts, podcast items, job locks and settings

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
    # Create podcasts table
    op.create_table(
        'podcasts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('feed_url', sa.String(2048), unique=True, nullable=False),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('summary', sa.Text, nullable=True),
        sa.Column('author', sa.String(512), nullable=True),
        sa.Column('image_url', sa.String(2048), nullable=True),
        sa.Column('is_paused', sa.Boolean, default=False),
        sa.Column('last_episode', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_podcasts_feed_url', 'podcasts', ['feed_url'])

    # Create podcast_items table
    op.create_table(
        'podcast_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('podcast_id', sa.String(36), sa.ForeignKey('podcasts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('guid', sa.String(2048), nullable=False),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('summary', sa.Text, nullable=True),
        sa.Column('published_date', sa.DateTime, nullable=True),
        sa.Column('duration_seconds', sa.Integer, nullable=True),
        sa.Column('episode_type', sa.String(32), nullable=True),
        sa.Column('enclosure_url', sa.String(2048), nullable=False),
        sa.Column('image_url', sa.String(2048), nullable=True),
        sa.Column('download_status', sa.String(32), nullable=False, server_default='not_downloaded'),
        sa.Column('download_path', sa.String(1024), nullable=True),
        sa.Column('downloaded_at', sa.DateTime, nullable=True),
        sa.Column('download_error', sa.Text, nullable=True),
        sa.Column('file_size_bytes', sa.Integer, nullable=True),
        sa.Column('local_image_path', sa.String(1024), nullable=True),
        sa.Column('bookmarked_at', sa.DateTime, nullable=True),
        sa.Column('is_played', sa.Boolean, default=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('podcast_id', 'guid', name='uq_podcast_item_podcast_guid'),
    )
    op.create_index('ix_podcast_items_podcast_id', 'podcast_items', ['podcast_id'])
    op.create_index('ix_podcast_items_download_status', 'podcast_items', ['download_status'])
    op.create_index('ix_podcast_items_published_date', 'podcast_items', ['published_date'])

    # Create job_locks table
    op.create_table(
        'job_locks',
        sa.Column('name', sa.String(128), primary_key=True),
        sa.Column('is_locked', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('expires_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )

    # Create settings table (single row, id = 1)
    op.create_table(
        'settings',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('auto_download', sa.Boolean, default=True),
        sa.Column('download_on_add', sa.Boolean, default=True),
        sa.Column('initial_download_count', sa.Integer, default=5),
        sa.Column('max_download_concurrency', sa.Integer, default=5),
        sa.Column('append_date_to_filename', sa.Boolean, default=False),
        sa.Column('append_episode_number_to_filename', sa.Boolean, default=False),
        sa.Column('download_episode_images', sa.Boolean, default=False),
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('dont_download_deleted_from_disk', sa.Boolean, default=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )


def downgrade() -> None:
    op.drop_table('settings')
    op.drop_table('job_locks')
    op.drop_table('podcast_items')
    op.drop_table('podcasts')
