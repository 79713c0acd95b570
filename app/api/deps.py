"""Shared FastAPI dependencies for repositories, workers and task authentication."""

from __future__ import annotations

import logging
import secrets
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from app.ai.providers.base import AIModel
from app.ai.router import get_model_for_settings
from app.config import Settings, get_settings
from app.core.security import CurrentUser, get_optional_user
from app.jobs.queue import JobQueue
from app.jobs.worker import JobProcessor, build_default_registry
from app.storage.content_repo import ContentRepository
from app.storage.factory import _get_content_repo, _get_jobs_repo
from app.storage.jobs_repo import JobsRepository
from app.streaming.generator import ArticleStreamGenerator

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _model_for(settings: Settings) -> AIModel:
  # One client per settings snapshot keeps the HTTP connection pool warm across requests.
  return get_model_for_settings(settings)


def get_jobs_repo(settings: Annotated[Settings, Depends(get_settings)]) -> JobsRepository:
  return _get_jobs_repo(settings)


def get_content_repo(settings: Annotated[Settings, Depends(get_settings)]) -> ContentRepository:
  return _get_content_repo(settings)


def get_ai_model(settings: Annotated[Settings, Depends(get_settings)]) -> AIModel:
  return _model_for(settings)


def get_job_queue(jobs_repo: Annotated[JobsRepository, Depends(get_jobs_repo)]) -> JobQueue:
  return JobQueue(jobs_repo)


def get_job_processor(queue: Annotated[JobQueue, Depends(get_job_queue)], content_repo: Annotated[ContentRepository, Depends(get_content_repo)], model: Annotated[AIModel, Depends(get_ai_model)]) -> JobProcessor:
  """Wire the default handler registry to the request's queue and repositories."""
  return JobProcessor(queue=queue, registry=build_default_registry(content_repo=content_repo, model=model))


def get_stream_generator(content_repo: Annotated[ContentRepository, Depends(get_content_repo)], model: Annotated[AIModel, Depends(get_ai_model)]) -> ArticleStreamGenerator:
  return ArticleStreamGenerator(content_repo=content_repo, model=model)


def _task_secret_valid(settings: Settings, *, authorization: str | None, task_secret_header: str | None) -> bool:
  """Compare the presented secret in constant time; an unset secret never matches."""
  if not settings.task_secret:
    return False
  # Schedulers that use Authorization for their own identity send the dedicated header instead.
  shared_secret_valid = secrets.compare_digest((task_secret_header or "").encode(), settings.task_secret.encode())
  bearer_valid = secrets.compare_digest((authorization or "").encode(), f"Bearer {settings.task_secret}".encode())
  return shared_secret_valid or bearer_valid


async def require_task_secret(settings: Annotated[Settings, Depends(get_settings)], authorization: Annotated[str | None, Header()] = None, x_inkwell_task_secret: Annotated[str | None, Header()] = None) -> str:
  """Allow only schedulers holding the shared task secret."""
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  if not _task_secret_valid(settings, authorization=authorization, task_secret_header=x_inkwell_task_secret):
    logger.warning("Unauthorized access attempt to a secret-only task endpoint")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")
  return "scheduler"


async def require_task_caller(
  settings: Annotated[Settings, Depends(get_settings)],
  current_user: Annotated[CurrentUser | None, Depends(get_optional_user)],
  authorization: Annotated[str | None, Header()] = None,
  x_inkwell_task_secret: Annotated[str | None, Header()] = None,
) -> str:
  """Allow the scheduler (shared secret) or any authenticated user to trigger processing."""
  if _task_secret_valid(settings, authorization=authorization, task_secret_header=x_inkwell_task_secret):
    return "scheduler"
  if current_user is not None:
    return f"user:{current_user.uid}"
  logger.warning("Unauthorized access attempt to a task endpoint")
  raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Task secret or user session required.", headers={"WWW-Authenticate": "Bearer"})
