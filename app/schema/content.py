from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.schema.jobs import JSONType


class Topic(Base):
  __tablename__ = "topics"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  summary: Mapped[str | None] = mapped_column(Text, nullable=True)
  industry: Mapped[str | None] = mapped_column(String, nullable=True)
  sources_json: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
  relevance_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
  status: Mapped[str] = mapped_column(String, nullable=False, default="pending", index=True)
  metadata_json: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
  discovered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Outline(Base):
  __tablename__ = "outlines"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  topic_id: Mapped[str] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
  structure_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
  article_type: Mapped[str] = mapped_column(String, nullable=False)
  target_length: Mapped[str] = mapped_column(String, nullable=False)
  tone: Mapped[str] = mapped_column(String, nullable=False)
  approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Article(Base):
  __tablename__ = "articles"
  __table_args__ = (UniqueConstraint("user_id", "slug", name="ux_articles_user_slug"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  outline_id: Mapped[str | None] = mapped_column(ForeignKey("outlines.id", ondelete="SET NULL"), nullable=True, index=True)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  slug: Mapped[str] = mapped_column(String, nullable=False)
  content: Mapped[str] = mapped_column(Text, nullable=False)
  content_html: Mapped[str | None] = mapped_column(Text, nullable=True)
  excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
  article_type: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="draft", index=True)
  word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  reading_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  seo_keywords_json: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ArticleLink(Base):
  __tablename__ = "article_links"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  source_article_id: Mapped[str] = mapped_column(ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
  target_article_id: Mapped[str] = mapped_column(ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
  anchor_text: Mapped[str] = mapped_column(Text, nullable=False)
  context: Mapped[str | None] = mapped_column(Text, nullable=True)


class ContentVersion(Base):
  __tablename__ = "content_versions"
  __table_args__ = (UniqueConstraint("entity_type", "entity_id", "version_number", name="ux_content_versions_entity_version"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  entity_type: Mapped[str] = mapped_column(String, nullable=False)
  entity_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  version_number: Mapped[int] = mapped_column(Integer, nullable=False)
  snapshot_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
  edited_by: Mapped[str] = mapped_column(String, nullable=False)
  change_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
