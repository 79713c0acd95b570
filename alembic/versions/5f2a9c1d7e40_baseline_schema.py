"""Baseline schema for jobs and content tables

Revision ID: 5f2a9c1d7e40
Revises:
Create Date: 2026-10-12 09:14:22.418305

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5f2a9c1d7e40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "jobs",
    sa.Column("job_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("job_type", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("input_json", JSONType, nullable=False),
    sa.Column("output_json", JSONType, nullable=True),
    sa.Column("progress_json", JSONType, nullable=True),
    sa.Column("error_json", JSONType, nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("last_message", sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint("job_id"),
  )
  op.create_index("ix_jobs_user_id", "jobs", ["user_id"])
  op.create_index("ix_jobs_job_type", "jobs", ["job_type"])
  op.create_index("ix_jobs_status_created_at", "jobs", ["status", "created_at"])
  op.create_index("ix_jobs_user_created_at", "jobs", ["user_id", "created_at"])

  op.create_table(
    "topics",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("summary", sa.Text(), nullable=True),
    sa.Column("industry", sa.String(), nullable=True),
    sa.Column("sources_json", JSONType, nullable=False),
    sa.Column("relevance_score", sa.Float(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("metadata_json", JSONType, nullable=True),
    sa.Column("discovered_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_topics_user_id", "topics", ["user_id"])
  op.create_index("ix_topics_status", "topics", ["status"])

  op.create_table(
    "outlines",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("topic_id", sa.String(), nullable=False),
    sa.Column("structure_json", JSONType, nullable=False),
    sa.Column("article_type", sa.String(), nullable=False),
    sa.Column("target_length", sa.String(), nullable=False),
    sa.Column("tone", sa.String(), nullable=False),
    sa.Column("approved", sa.Boolean(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(["topic_id"], ["topics.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_outlines_user_id", "outlines", ["user_id"])
  op.create_index("ix_outlines_topic_id", "outlines", ["topic_id"])

  op.create_table(
    "articles",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("outline_id", sa.String(), nullable=True),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("slug", sa.String(), nullable=False),
    sa.Column("content", sa.Text(), nullable=False),
    sa.Column("content_html", sa.Text(), nullable=True),
    sa.Column("excerpt", sa.Text(), nullable=True),
    sa.Column("article_type", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("word_count", sa.Integer(), nullable=False),
    sa.Column("reading_time", sa.Integer(), nullable=False),
    sa.Column("seo_keywords_json", JSONType, nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(["outline_id"], ["outlines.id"], ondelete="SET NULL"),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("user_id", "slug", name="ux_articles_user_slug"),
  )
  op.create_index("ix_articles_user_id", "articles", ["user_id"])
  op.create_index("ix_articles_outline_id", "articles", ["outline_id"])
  op.create_index("ix_articles_status", "articles", ["status"])

  op.create_table(
    "article_links",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("source_article_id", sa.String(), nullable=False),
    sa.Column("target_article_id", sa.String(), nullable=False),
    sa.Column("anchor_text", sa.Text(), nullable=False),
    sa.Column("context", sa.Text(), nullable=True),
    sa.ForeignKeyConstraint(["source_article_id"], ["articles.id"], ondelete="CASCADE"),
    sa.ForeignKeyConstraint(["target_article_id"], ["articles.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_article_links_source_article_id", "article_links", ["source_article_id"])
  op.create_index("ix_article_links_target_article_id", "article_links", ["target_article_id"])

  op.create_table(
    "content_versions",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("entity_type", sa.String(), nullable=False),
    sa.Column("entity_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("version_number", sa.Integer(), nullable=False),
    sa.Column("snapshot_json", JSONType, nullable=False),
    sa.Column("edited_by", sa.String(), nullable=False),
    sa.Column("change_summary", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("entity_type", "entity_id", "version_number", name="ux_content_versions_entity_version"),
  )
  op.create_index("ix_content_versions_entity_id", "content_versions", ["entity_id"])
  op.create_index("ix_content_versions_user_id", "content_versions", ["user_id"])


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_table("content_versions")
  op.drop_table("article_links")
  op.drop_table("articles")
  op.drop_table("outlines")
  op.drop_table("topics")
  op.drop_table("jobs")
