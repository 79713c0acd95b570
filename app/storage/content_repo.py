"""Storage interfaces for topics, outlines, articles and their history."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class TopicRecord:
  """A candidate subject for an article."""

  id: str
  user_id: str
  title: str
  summary: str | None = None
  industry: str | None = None
  sources: list[dict[str, Any]] = field(default_factory=list)
  relevance_score: float = 0.0
  status: str = "pending"
  metadata: dict[str, Any] | None = None
  discovered_at: str | None = None

  def to_api(self) -> dict[str, Any]:
    return {
      "id": self.id,
      "user_id": self.user_id,
      "title": self.title,
      "summary": self.summary,
      "industry": self.industry,
      "sources": self.sources,
      "relevance_score": self.relevance_score,
      "status": self.status,
      "metadata": self.metadata,
      "discovered_at": self.discovered_at,
    }


@dataclass
class OutlineRecord:
  """A structured plan for an article."""

  id: str
  user_id: str
  topic_id: str
  structure: dict[str, Any]
  article_type: str
  target_length: str
  tone: str
  approved: bool = False
  created_at: str | None = None

  def to_api(self) -> dict[str, Any]:
    return {
      "id": self.id,
      "user_id": self.user_id,
      "topic_id": self.topic_id,
      "structure": self.structure,
      "article_type": self.article_type,
      "target_length": self.target_length,
      "tone": self.tone,
      "approved": self.approved,
      "created_at": self.created_at,
    }


@dataclass
class ArticleRecord:
  """A written article."""

  id: str
  user_id: str
  title: str
  slug: str
  content: str
  article_type: str
  outline_id: str | None = None
  content_html: str | None = None
  excerpt: str | None = None
  status: str = "draft"
  word_count: int = 0
  reading_time: int = 0
  seo_keywords: list[str] = field(default_factory=list)
  created_at: str | None = None
  updated_at: str | None = None

  def to_api(self) -> dict[str, Any]:
    return {
      "id": self.id,
      "user_id": self.user_id,
      "outline_id": self.outline_id,
      "title": self.title,
      "slug": self.slug,
      "content": self.content,
      "content_html": self.content_html,
      "excerpt": self.excerpt,
      "article_type": self.article_type,
      "status": self.status,
      "word_count": self.word_count,
      "reading_time": self.reading_time,
      "seo_keywords": list(self.seo_keywords),
      "created_at": self.created_at,
      "updated_at": self.updated_at,
    }


@dataclass(frozen=True)
class ArticleLinkRecord:
  """An internal link from one article to another."""

  source_article_id: str
  target_article_id: str
  anchor_text: str
  context: str | None = None


@dataclass(frozen=True)
class VersionRecord:
  """A history entry written after each generation or edit."""

  entity_type: str
  entity_id: str
  user_id: str
  snapshot: dict[str, Any]
  edited_by: str
  change_summary: str | None = None
  version_number: int | None = None


class ContentRepository(Protocol):
  """Repository contract for the domain entities workers read and write."""

  async def get_topic(self, topic_id: str) -> TopicRecord | None:
    """Fetch a topic by identifier."""

  async def create_topics(self, topics: list[TopicRecord]) -> list[TopicRecord]:
    """Persist newly discovered topics."""

  async def update_topic_status(self, topic_id: str, status: str) -> None:
    """Set a topic's workflow status."""

  async def get_outline(self, outline_id: str) -> OutlineRecord | None:
    """Fetch an outline by identifier."""

  async def create_outline(self, outline: OutlineRecord) -> OutlineRecord:
    """Persist a drafted outline."""

  async def get_article(self, article_id: str) -> ArticleRecord | None:
    """Fetch an article by identifier."""

  async def list_related_articles(self, *, user_id: str, limit: int = 15) -> list[ArticleRecord]:
    """Return published articles that new text may link to."""

  async def create_article(self, article: ArticleRecord) -> ArticleRecord:
    """Persist a new article, adjusting the slug if it collides."""

  async def update_article(self, article_id: str, **fields: Any) -> ArticleRecord | None:
    """Apply partial updates to an article."""

  async def save_links(self, links: list[ArticleLinkRecord]) -> None:
    """Persist internal links."""

  async def add_version(self, version: VersionRecord) -> VersionRecord:
    """Append a history entry with the next version number."""
