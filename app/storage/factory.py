"""Repository factories shared by routes, services and workers."""

from __future__ import annotations

from functools import lru_cache

from app.config import Settings
from app.storage.content_repo import ContentRepository
from app.storage.jobs_repo import JobsRepository
from app.storage.postgres_content_repo import PostgresContentRepository
from app.storage.postgres_jobs_repo import PostgresJobsRepository


@lru_cache(maxsize=1)
def _jobs_repo_singleton() -> PostgresJobsRepository:
  return PostgresJobsRepository()


@lru_cache(maxsize=1)
def _content_repo_singleton() -> PostgresContentRepository:
  return PostgresContentRepository()


def _get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the jobs repository for the configured database."""
  if not settings.pg_dsn:
    raise RuntimeError("Jobs storage requires INKWELL_PG_DSN.")
  return _jobs_repo_singleton()


def _get_content_repo(settings: Settings) -> ContentRepository:
  """Return the content repository for the configured database."""
  if not settings.pg_dsn:
    raise RuntimeError("Content storage requires INKWELL_PG_DSN.")
  return _content_repo_singleton()
