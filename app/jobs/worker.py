"""Background processor for queued content generation jobs."""

from __future__ import annotations

import logging
from typing import Any

from app.ai.providers.base import AIModel
from app.jobs.dispatch import JobHandler, JobProcessorRegistry
from app.jobs.errors import InkwellError, NotFoundError, UnsupportedOperation, error_from_exception
from app.jobs.handlers import EditArticleHandler, GenerateOutlineHandler, ResearchTopicsHandler, WriteArticleHandler
from app.jobs.models import JobRecord
from app.jobs.progress import JobCancelledError, JobProgressTracker, job_cancellation_token
from app.jobs.queue import JobQueue
from app.storage.content_repo import ContentRepository


def build_default_registry(*, content_repo: ContentRepository, model: AIModel) -> JobProcessorRegistry:
  """Build the default job-type handler registry."""
  handlers: dict[str, JobHandler] = {
    "write_article": WriteArticleHandler(content_repo=content_repo, model=model),
    "generate_outline": GenerateOutlineHandler(content_repo=content_repo, model=model),
    "research_topics": ResearchTopicsHandler(content_repo=content_repo, model=model),
    "edit_article": EditArticleHandler(content_repo=content_repo, model=model),
  }
  return JobProcessorRegistry(handlers)


class JobProcessor:
  """Coordinates execution of queued jobs."""

  def __init__(self, *, queue: JobQueue, registry: JobProcessorRegistry) -> None:
    self._queue = queue
    self._registry = registry
    self._logger = logging.getLogger(__name__)

  async def process_job(self, job_id: str) -> JobRecord:
    """Run one job to a terminal state and return the stored record."""
    job = await self._queue.get_job(job_id)
    if job is None:
      raise NotFoundError(f"Job {job_id} not found.", code="JOB_NOT_FOUND")
    if job.is_terminal:
      return job

    try:
      job = await self._queue.update_job_status(job_id, "running")
    except UnsupportedOperation:
      # Cancelled between the read and the transition; nothing left to run.
      return await self._queue.require_job(job_id)

    try:
      handler = self._registry.resolve(job.job_type)
    except UnsupportedOperation as exc:
      self._logger.warning("Job %s has unsupported type %s", job_id, job.job_type)
      return await self._finish_failed(job_id, exc.to_payload())

    token = job_cancellation_token(self._queue, job_id)
    tracker = JobProgressTracker(job_id=job_id, queue=self._queue, token=token)
    try:
      output = await handler.run(job, tracker)
      await token.check()
    except JobCancelledError:
      self._logger.info("Job %s stopped after cancellation at %d%%", job_id, tracker.current)
      return await self._queue.require_job(job_id)
    except InkwellError as exc:
      self._logger.warning("Job %s failed with %s: %s", job_id, exc.code, exc.message)
      return await self._finish_failed(job_id, error_from_exception(exc, code=handler.failure_code))
    except Exception as exc:  # noqa: BLE001
      self._logger.error("Job %s crashed", job_id, exc_info=True)
      return await self._finish_failed(job_id, error_from_exception(exc, code=handler.failure_code))

    return await self._finish_completed(job_id, output)

  async def _finish_completed(self, job_id: str, output: dict[str, Any]) -> JobRecord:
    try:
      return await self._queue.complete_job(job_id, output)
    except UnsupportedOperation:
      # A cancel landed after the last check; the cancellation stands.
      return await self._queue.require_job(job_id)

  async def _finish_failed(self, job_id: str, error: dict[str, Any]) -> JobRecord:
    try:
      return await self._queue.fail_job(job_id, error)
    except UnsupportedOperation:
      return await self._queue.require_job(job_id)
