from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_job_processor, get_job_queue, require_task_caller, require_task_secret
from app.api.models import DispatchResponse, ProcessingStatsResponse, ReconcileResponse
from app.config import Settings, get_settings
from app.jobs.dispatch import dispatch_pending
from app.jobs.errors import ValidationError
from app.jobs.queue import JobQueue
from app.jobs.worker import JobProcessor

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


@router.post("/process-jobs", response_model=DispatchResponse)
async def process_jobs(
  caller: Annotated[str, Depends(require_task_caller)],
  settings: Annotated[Settings, Depends(get_settings)],
  queue: Annotated[JobQueue, Depends(get_job_queue)],
  processor: Annotated[JobProcessor, Depends(get_job_processor)],
  batch_size: Annotated[int | None, Query(alias="batchSize", ge=1, le=50)] = None,
) -> DispatchResponse:
  """
  Handler for the scheduler tick (and manual triggers).
  Claims a batch of pending jobs and runs them to completion before responding.
  """
  reconciled: list[str] = []
  # Sweep first so jobs orphaned by a restart do not sit in running forever.
  if settings.jobs_stale_after_seconds:
    reconciled = await queue.reconcile_stale_jobs(settings.jobs_stale_after_seconds)

  size = batch_size or settings.jobs_batch_size
  logger.info("Dispatch triggered by %s batch_size=%d", caller, size)
  summary = await dispatch_pending(queue, processor, batch_size=size)
  payload = summary.to_api()
  return DispatchResponse(processed=payload["processed"], failed=payload["failed"], total=payload["total"], results=payload["results"], reconciled=reconciled)


@router.get("/process-jobs", response_model=ProcessingStatsResponse)
async def processing_stats(caller: Annotated[str, Depends(require_task_caller)], queue: Annotated[JobQueue, Depends(get_job_queue)]) -> ProcessingStatsResponse:
  """Return queue depth for pending and running jobs."""
  stats = await queue.processing_stats()
  return ProcessingStatsResponse(pending=stats.get("pending", 0), running=stats.get("running", 0))


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_stale_jobs(
  caller: Annotated[str, Depends(require_task_secret)],
  settings: Annotated[Settings, Depends(get_settings)],
  queue: Annotated[JobQueue, Depends(get_job_queue)],
  stale_after_seconds: Annotated[int | None, Query(alias="staleAfterSeconds", ge=1)] = None,
) -> ReconcileResponse:
  """Fail running jobs that stopped reporting progress."""
  threshold = stale_after_seconds or settings.jobs_stale_after_seconds
  if not threshold:
    raise ValidationError("No stale threshold configured; pass staleAfterSeconds or set INKWELL_JOBS_STALE_AFTER_SECONDS.", code="STALE_THRESHOLD_REQUIRED")
  failed = await queue.reconcile_stale_jobs(threshold)
  return ReconcileResponse(failed=failed)
