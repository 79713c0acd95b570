"""Shared fixtures: sqlite-backed job storage, in-memory content store and a scripted model."""

from __future__ import annotations

import os

# Settings refuse to load without CORS origins; set them before the app is imported.
os.environ.setdefault("INKWELL_ALLOWED_ORIGINS", "http://localhost:3000")

from collections.abc import AsyncIterator, Iterable  # noqa: E402
from dataclasses import replace  # noqa: E402
from datetime import UTC, datetime  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

import app.schema.content  # noqa: E402, F401
import app.schema.jobs  # noqa: E402, F401
from app.ai.providers.base import AIModel, SimpleModelResponse  # noqa: E402
from app.core.cancellation import CancellationToken  # noqa: E402
from app.core.database import Base  # noqa: E402
from app.jobs.queue import JobQueue  # noqa: E402
from app.storage.content_repo import ArticleLinkRecord, ArticleRecord, OutlineRecord, TopicRecord, VersionRecord  # noqa: E402
from app.storage.postgres_jobs_repo import PostgresJobsRepository  # noqa: E402

OWNER_ID = "user-1"
OTHER_OWNER_ID = "user-2"

OUTLINE_STRUCTURE: dict[str, Any] = {
  "title": "Scaling Async Python Services",
  "hook": "Async code is everywhere, and most of it waits.",
  "sections": [
    {"heading": "Event loops in practice", "keyPoints": ["scheduling", "fairness"], "wordTarget": 200},
    {"heading": "Backpressure", "keyPoints": ["bounded queues"], "wordTarget": 200},
  ],
  "conclusion": {"summary": "Async pays off when the waiting dominates.", "callToAction": "Profile one endpoint this week."},
  "seoKeywords": ["async", "python"],
}


def _now_iso() -> str:
  return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class FakeModel(AIModel):
  """Scripted generation backend.

  `replies` feed `generate` in order and `streams` feed `stream` in order; an
  exception instance in either list is raised at that point.
  """

  name = "fake-model"

  def __init__(self, *, replies: Iterable[Any] = (), streams: Iterable[list[Any]] = ()) -> None:
    self.replies = list(replies)
    self.streams = list(streams)
    self.prompts: list[tuple[str | None, str]] = []
    self.stream_prompts: list[str] = []
    self.streams_opened = 0
    self.streams_closed = 0

  async def generate(self, prompt: str, *, system: str | None = None, cancel_token: CancellationToken | None = None) -> SimpleModelResponse:
    if cancel_token is not None:
      await cancel_token.check()
    self.prompts.append((system, prompt))
    reply = self.replies.pop(0) if self.replies else "Generated paragraph."
    if isinstance(reply, BaseException):
      raise reply
    return SimpleModelResponse(content=reply)

  async def stream(self, prompt: str, *, system: str | None = None, cancel_token: CancellationToken | None = None) -> AsyncIterator[str]:
    self.stream_prompts.append(prompt)
    chunks = self.streams.pop(0) if self.streams else ["Streamed ", "text."]
    self.streams_opened += 1
    try:
      for chunk in chunks:
        if cancel_token is not None:
          await cancel_token.check()
        if isinstance(chunk, BaseException):
          raise chunk
        yield chunk
    finally:
      self.streams_closed += 1


class InMemoryContentRepository:
  """Dictionary-backed content store mirroring the SQL repository's behavior."""

  def __init__(self) -> None:
    self.topics: dict[str, TopicRecord] = {}
    self.outlines: dict[str, OutlineRecord] = {}
    self.articles: dict[str, ArticleRecord] = {}
    self.links: list[ArticleLinkRecord] = []
    self.versions: list[VersionRecord] = []
    self.fail_article_writes = False

  def add_topic(self, topic: TopicRecord) -> TopicRecord:
    self.topics[topic.id] = topic
    return topic

  def add_outline(self, outline: OutlineRecord) -> OutlineRecord:
    self.outlines[outline.id] = outline
    return outline

  def add_article(self, article: ArticleRecord) -> ArticleRecord:
    self.articles[article.id] = article
    return article

  async def get_topic(self, topic_id: str) -> TopicRecord | None:
    return self.topics.get(topic_id)

  async def create_topics(self, topics: list[TopicRecord]) -> list[TopicRecord]:
    created = [replace(topic, discovered_at=topic.discovered_at or _now_iso()) for topic in topics]
    for topic in created:
      self.topics[topic.id] = topic
    return created

  async def update_topic_status(self, topic_id: str, status: str) -> None:
    topic = self.topics.get(topic_id)
    if topic is not None:
      self.topics[topic_id] = replace(topic, status=status)

  async def get_outline(self, outline_id: str) -> OutlineRecord | None:
    return self.outlines.get(outline_id)

  async def create_outline(self, outline: OutlineRecord) -> OutlineRecord:
    created = replace(outline, created_at=outline.created_at or _now_iso())
    self.outlines[created.id] = created
    return created

  async def get_article(self, article_id: str) -> ArticleRecord | None:
    return self.articles.get(article_id)

  async def list_related_articles(self, *, user_id: str, limit: int = 15) -> list[ArticleRecord]:
    published = [article for article in self.articles.values() if article.user_id == user_id and article.status == "published"]
    return published[:limit]

  async def create_article(self, article: ArticleRecord) -> ArticleRecord:
    from app.jobs.errors import PersistenceError

    if self.fail_article_writes:
      raise PersistenceError("Failed to save article.", details={"operation": "create_article"})
    taken = {existing.slug for existing in self.articles.values() if existing.user_id == article.user_id}
    slug = article.slug or "article"
    suffix = 2
    while slug in taken:
      slug = f"{article.slug}-{suffix}"
      suffix += 1
    now = _now_iso()
    created = replace(article, slug=slug, created_at=now, updated_at=now)
    self.articles[created.id] = created
    return created

  async def update_article(self, article_id: str, **fields: Any) -> ArticleRecord | None:
    article = self.articles.get(article_id)
    if article is None:
      return None
    updated = replace(article, **{key: value for key, value in fields.items() if value is not None}, updated_at=_now_iso())
    self.articles[article_id] = updated
    return updated

  async def save_links(self, links: list[ArticleLinkRecord]) -> None:
    self.links.extend(links)

  async def add_version(self, version: VersionRecord) -> VersionRecord:
    number = 1 + sum(1 for existing in self.versions if existing.entity_type == version.entity_type and existing.entity_id == version.entity_id)
    stored = replace(version, version_number=number)
    self.versions.append(stored)
    return stored


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
async def session_factory(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
  # A file database gives each session its own connection, so concurrent claims race the way they do on Postgres.
  engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'inkwell.db'}", poolclass=NullPool)
  async with engine.begin() as connection:
    await connection.run_sync(Base.metadata.create_all)
  yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
  await engine.dispose()


@pytest.fixture
def jobs_repo(session_factory: async_sessionmaker[AsyncSession]) -> PostgresJobsRepository:
  return PostgresJobsRepository(session_factory)


@pytest.fixture
def queue(jobs_repo: PostgresJobsRepository) -> JobQueue:
  return JobQueue(jobs_repo)


@pytest.fixture
def content_repo() -> InMemoryContentRepository:
  return InMemoryContentRepository()


@pytest.fixture
def fake_model() -> FakeModel:
  return FakeModel()


@pytest.fixture
def topic(content_repo: InMemoryContentRepository) -> TopicRecord:
  return content_repo.add_topic(
    TopicRecord(id="topic-1", user_id=OWNER_ID, title="Scaling Async Python Services", summary="How async services behave under load.", industry="software", sources=[{"url": "https://example.com/async", "title": "Async notes"}], relevance_score=0.9)
  )


@pytest.fixture
def approved_outline(content_repo: InMemoryContentRepository, topic: TopicRecord) -> OutlineRecord:
  return content_repo.add_outline(OutlineRecord(id="outline-1", user_id=OWNER_ID, topic_id=topic.id, structure=dict(OUTLINE_STRUCTURE), article_type="technical", target_length="medium", tone="practical", approved=True))


@pytest.fixture
def auth_state() -> dict[str, Any]:
  """Mutable holder for the caller the API sees; set `user` to None for anonymous requests."""
  from app.core.security import CurrentUser

  return {"user": CurrentUser(uid=OWNER_ID, email="writer@example.com")}


@pytest.fixture
async def api_client(queue: JobQueue, content_repo: InMemoryContentRepository, fake_model: FakeModel, auth_state: dict[str, Any]) -> AsyncIterator[AsyncClient]:
  from app.api.deps import get_ai_model, get_content_repo, get_job_queue
  from app.config import get_settings
  from app.core.security import get_optional_user
  from app.main import app

  settings = replace(get_settings(), task_secret="task-secret", jobs_stale_after_seconds=None)
  app.dependency_overrides[get_settings] = lambda: settings
  app.dependency_overrides[get_job_queue] = lambda: queue
  app.dependency_overrides[get_content_repo] = lambda: content_repo
  app.dependency_overrides[get_ai_model] = lambda: fake_model
  app.dependency_overrides[get_optional_user] = lambda: auth_state["user"]
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
