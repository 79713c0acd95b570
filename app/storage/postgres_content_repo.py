"""Postgres-backed repository for topics, outlines, articles and history using SQLAlchemy."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_session_factory
from app.jobs.errors import PersistenceError
from app.schema.content import Article, ArticleLink, ContentVersion, Outline, Topic
from app.storage.content_repo import ArticleLinkRecord, ArticleRecord, ContentRepository, OutlineRecord, TopicRecord, VersionRecord

_ARTICLE_FIELDS = {"title", "slug", "content", "content_html", "excerpt", "status", "word_count", "reading_time"}


def _now() -> datetime:
  return datetime.now(UTC)


def _iso(value: datetime | None) -> str | None:
  if value is None:
    return None
  if value.tzinfo is None:
    value = value.replace(tzinfo=UTC)
  return value.isoformat().replace("+00:00", "Z")


class PostgresContentRepository(ContentRepository):
  """Persist content entities to Postgres using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_topic(self, topic_id: str) -> TopicRecord | None:
    try:
      async with self._session_factory() as session:
        row = await session.get(Topic, topic_id)
        return self._topic_to_record(row) if row is not None else None
    except SQLAlchemyError as exc:
      raise PersistenceError(f"Failed to load topic {topic_id}.", details={"operation": "get_topic"}) from exc

  async def create_topics(self, topics: list[TopicRecord]) -> list[TopicRecord]:
    now = _now()
    try:
      async with self._session_factory() as session:
        rows = [
          Topic(
            id=topic.id,
            user_id=topic.user_id,
            title=topic.title,
            summary=topic.summary,
            industry=topic.industry,
            sources_json=topic.sources,
            relevance_score=topic.relevance_score,
            status=topic.status,
            metadata_json=topic.metadata,
            discovered_at=now,
          )
          for topic in topics
        ]
        session.add_all(rows)
        await session.commit()
        return [self._topic_to_record(row) for row in rows]
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to save discovered topics.", details={"operation": "create_topics"}) from exc

  async def update_topic_status(self, topic_id: str, status: str) -> None:
    try:
      async with self._session_factory() as session:
        row = await session.get(Topic, topic_id)
        if row is None:
          return
        row.status = status
        await session.commit()
    except SQLAlchemyError as exc:
      raise PersistenceError(f"Failed to update topic {topic_id}.", details={"operation": "update_topic_status"}) from exc

  async def get_outline(self, outline_id: str) -> OutlineRecord | None:
    try:
      async with self._session_factory() as session:
        row = await session.get(Outline, outline_id)
        return self._outline_to_record(row) if row is not None else None
    except SQLAlchemyError as exc:
      raise PersistenceError(f"Failed to load outline {outline_id}.", details={"operation": "get_outline"}) from exc

  async def create_outline(self, outline: OutlineRecord) -> OutlineRecord:
    try:
      async with self._session_factory() as session:
        row = Outline(
          id=outline.id,
          user_id=outline.user_id,
          topic_id=outline.topic_id,
          structure_json=outline.structure,
          article_type=outline.article_type,
          target_length=outline.target_length,
          tone=outline.tone,
          approved=outline.approved,
          created_at=_now(),
        )
        session.add(row)
        await session.commit()
        return self._outline_to_record(row)
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to save outline.", details={"operation": "create_outline"}) from exc

  async def get_article(self, article_id: str) -> ArticleRecord | None:
    try:
      async with self._session_factory() as session:
        row = await session.get(Article, article_id)
        return self._article_to_record(row) if row is not None else None
    except SQLAlchemyError as exc:
      raise PersistenceError(f"Failed to load article {article_id}.", details={"operation": "get_article"}) from exc

  async def list_related_articles(self, *, user_id: str, limit: int = 15) -> list[ArticleRecord]:
    try:
      async with self._session_factory() as session:
        stmt = select(Article).where(Article.user_id == user_id, Article.status == "published").order_by(Article.updated_at.desc()).limit(limit)
        rows = (await session.execute(stmt)).scalars().all()
        return [self._article_to_record(row) for row in rows]
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to list related articles.", details={"operation": "list_related_articles"}) from exc

  async def create_article(self, article: ArticleRecord) -> ArticleRecord:
    now = _now()
    try:
      async with self._session_factory() as session:
        slug = await self._unique_slug(session, user_id=article.user_id, slug=article.slug)
        row = Article(
          id=article.id,
          user_id=article.user_id,
          outline_id=article.outline_id,
          title=article.title,
          slug=slug,
          content=article.content,
          content_html=article.content_html,
          excerpt=article.excerpt,
          article_type=article.article_type,
          status=article.status,
          word_count=article.word_count,
          reading_time=article.reading_time,
          seo_keywords_json=list(article.seo_keywords),
          created_at=now,
          updated_at=now,
        )
        session.add(row)
        await session.commit()
        return self._article_to_record(row)
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to save article.", details={"operation": "create_article"}) from exc

  async def update_article(self, article_id: str, **fields: Any) -> ArticleRecord | None:
    unknown = set(fields) - _ARTICLE_FIELDS - {"seo_keywords"}
    if unknown:
      raise ValueError(f"Unsupported article fields: {sorted(unknown)}")
    try:
      async with self._session_factory() as session:
        row = await session.get(Article, article_id)
        if row is None:
          return None
        for key, value in fields.items():
          if value is None:
            continue
          if key == "seo_keywords":
            row.seo_keywords_json = list(value)
          else:
            setattr(row, key, value)
        row.updated_at = _now()
        await session.commit()
        await session.refresh(row)
        return self._article_to_record(row)
    except SQLAlchemyError as exc:
      raise PersistenceError(f"Failed to update article {article_id}.", details={"operation": "update_article"}) from exc

  async def save_links(self, links: list[ArticleLinkRecord]) -> None:
    if not links:
      return
    try:
      async with self._session_factory() as session:
        session.add_all([ArticleLink(source_article_id=link.source_article_id, target_article_id=link.target_article_id, anchor_text=link.anchor_text, context=link.context) for link in links])
        await session.commit()
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to save internal links.", details={"operation": "save_links"}) from exc

  async def add_version(self, version: VersionRecord) -> VersionRecord:
    try:
      async with self._session_factory() as session:
        stmt = select(func.max(ContentVersion.version_number)).where(ContentVersion.entity_type == version.entity_type, ContentVersion.entity_id == version.entity_id)
        current = await session.scalar(stmt)
        next_number = int(current or 0) + 1
        session.add(
          ContentVersion(
            entity_type=version.entity_type,
            entity_id=version.entity_id,
            user_id=version.user_id,
            version_number=next_number,
            snapshot_json=version.snapshot,
            edited_by=version.edited_by,
            change_summary=version.change_summary,
            created_at=_now(),
          )
        )
        await session.commit()
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to save version history.", details={"operation": "add_version"}) from exc
    return VersionRecord(
      entity_type=version.entity_type,
      entity_id=version.entity_id,
      user_id=version.user_id,
      snapshot=version.snapshot,
      edited_by=version.edited_by,
      change_summary=version.change_summary,
      version_number=next_number,
    )

  async def _unique_slug(self, session: AsyncSession, *, user_id: str, slug: str) -> str:
    """Append a numeric suffix when the owner already has an article with this slug."""
    base = slug or "article"
    stmt = select(Article.slug).where(Article.user_id == user_id, Article.slug.like(f"{base}%"))
    taken = set((await session.execute(stmt)).scalars().all())
    if base not in taken:
      return base
    suffix = 2
    while f"{base}-{suffix}" in taken:
      suffix += 1
    return f"{base}-{suffix}"

  def _topic_to_record(self, row: Topic) -> TopicRecord:
    return TopicRecord(
      id=row.id,
      user_id=row.user_id,
      title=row.title,
      summary=row.summary,
      industry=row.industry,
      sources=list(row.sources_json or []),
      relevance_score=float(row.relevance_score or 0.0),
      status=row.status,
      metadata=row.metadata_json,
      discovered_at=_iso(row.discovered_at),
    )

  def _outline_to_record(self, row: Outline) -> OutlineRecord:
    return OutlineRecord(
      id=row.id,
      user_id=row.user_id,
      topic_id=row.topic_id,
      structure=dict(row.structure_json or {}),
      article_type=row.article_type,
      target_length=row.target_length,
      tone=row.tone,
      approved=bool(row.approved),
      created_at=_iso(row.created_at),
    )

  def _article_to_record(self, row: Article) -> ArticleRecord:
    return ArticleRecord(
      id=row.id,
      user_id=row.user_id,
      outline_id=row.outline_id,
      title=row.title,
      slug=row.slug,
      content=row.content,
      content_html=row.content_html,
      excerpt=row.excerpt,
      article_type=row.article_type,
      status=row.status,
      word_count=int(row.word_count or 0),
      reading_time=int(row.reading_time or 0),
      seo_keywords=list(row.seo_keywords_json or []),
      created_at=_iso(row.created_at),
      updated_at=_iso(row.updated_at),
    )
