"""create_videos_and_import_jobs

Revision ID: a1c4e7f20b93
Revises:
Create Date: 2026-10-19 09:00:00.000000

Initial schema for the VOD catalog.

- videos: imported archive movies, unique per (source_id)
- import_jobs: history of collection import jobs
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7f20b93'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create videos and import_jobs tables."""
    op.create_table(
        'videos',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('source_type', sa.Enum('ARCHIVE', name='sourcetype'), nullable=False),
        sa.Column('source_id', sa.String(255), nullable=False),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(64), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('language', sa.String(64), nullable=True),
        sa.Column('video_url', sa.String(1024), nullable=False),
        sa.Column('thumbnail_url', sa.String(1024), nullable=True),
        sa.Column('has_subtitles', sa.Boolean(), nullable=True),
        sa.Column('subtitle_url', sa.String(1024), nullable=True),
        sa.Column('subtitle_language', sa.String(16), nullable=True),
        sa.Column('subtitle_synced', sa.Boolean(), nullable=True),
        sa.Column('subtitle_path', sa.String(1024), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_videos'),
        sa.UniqueConstraint('source_id', name='uq_videos_source_id'),
    )
    op.create_index('ix_videos_active_created', 'videos', ['is_active', 'created_at'])
    op.create_index('ix_videos_category', 'videos', ['category'])
    op.create_index('ix_videos_has_subtitles', 'videos', ['has_subtitles'])

    op.create_table(
        'import_jobs',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('collection_key', sa.String(255), nullable=False),
        sa.Column('status', sa.Enum(
            'QUEUED', 'RUNNING', 'COMPLETED', 'FAILED',
            name='importjobstatus'
        ), nullable=True),
        sa.Column('progress_percent', sa.Integer(), nullable=True),
        sa.Column('requested_limit', sa.Integer(), nullable=False),
        sa.Column('items_processed', sa.Integer(), nullable=True),
        sa.Column('imported_count', sa.Integer(), nullable=True),
        sa.Column('skipped_count', sa.Integer(), nullable=True),
        sa.Column('failed_count', sa.Integer(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('failures', sa.JSON(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_import_jobs'),
    )
    op.create_index('ix_import_jobs_started_at', 'import_jobs', ['started_at'])


def downgrade() -> None:
    """Drop videos and import_jobs tables."""
    op.drop_index('ix_import_jobs_started_at', table_name='import_jobs')
    op.drop_table('import_jobs')

    op.drop_index('ix_videos_has_subtitles', table_name='videos')
    op.drop_index('ix_videos_category', table_name='videos')
    op.drop_index('ix_videos_active_created', table_name='videos')
    op.drop_table('videos')
