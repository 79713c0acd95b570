"""Dependency-injected job dispatch helpers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from app.jobs.errors import InkwellError, UnsupportedOperation, error_from_exception
from app.jobs.models import JOB_TYPES, JobRecord

if TYPE_CHECKING:
  from app.jobs.progress import JobProgressTracker
  from app.jobs.queue import JobQueue
  from app.jobs.worker import JobProcessor

logger = logging.getLogger(__name__)

DISPATCH_FAILURE_CODE = "JOB_DISPATCH_FAILED"


class JobHandler(Protocol):
  """Worker contract for one job type."""

  failure_code: str

  async def run(self, job: JobRecord, tracker: JobProgressTracker) -> dict[str, Any]:
    """Execute the job and return its output."""


class JobProcessorRegistry:
  """Registry mapping job types to handlers."""

  def __init__(self, handlers: dict[str, JobHandler]) -> None:
    self._handlers = handlers

  def resolve(self, job_type: str) -> JobHandler:
    """Resolve the handler for a job type."""
    handler = self._handlers.get(job_type)
    if handler is None:
      raise UnsupportedOperation(f"Unsupported job type: {job_type}", code="UNSUPPORTED_JOB_TYPE", details={"supported": list(JOB_TYPES)})
    return handler

  def job_types(self) -> list[str]:
    return list(self._handlers)


@dataclass(frozen=True)
class DispatchResult:
  """Settled outcome for one claimed job."""

  job_id: str
  status: str
  value: dict[str, Any] | None = None
  reason: dict[str, Any] | None = None

  def to_api(self) -> dict[str, Any]:
    payload: dict[str, Any] = {"jobId": self.job_id, "status": self.status}
    if self.value is not None:
      payload["value"] = self.value
    if self.reason is not None:
      payload["reason"] = self.reason
    return payload


@dataclass
class DispatchSummary:
  """Aggregate result of one dispatcher batch."""

  results: list[DispatchResult] = field(default_factory=list)

  @property
  def processed(self) -> int:
    return sum(1 for result in self.results if result.status == "completed")

  @property
  def failed(self) -> int:
    return sum(1 for result in self.results if result.status == "failed")

  @property
  def total(self) -> int:
    return len(self.results)

  def to_api(self) -> dict[str, Any]:
    return {"processed": self.processed, "failed": self.failed, "total": self.total, "results": [result.to_api() for result in self.results]}


def _result_from_record(record: JobRecord) -> DispatchResult:
  if record.status == "completed":
    return DispatchResult(job_id=record.job_id, status=record.status, value=record.output)
  if record.status == "failed":
    return DispatchResult(job_id=record.job_id, status=record.status, reason=record.error)
  return DispatchResult(job_id=record.job_id, status=record.status)


async def _fail_after_crash(queue: JobQueue, job: JobRecord, exc: Exception) -> DispatchResult:
  """Record a worker crash on the job, best effort; never raises so sibling results survive."""
  reason = error_from_exception(exc, code=DISPATCH_FAILURE_CODE)
  fallback = DispatchResult(job_id=job.job_id, status="failed", reason=reason)
  try:
    record = await queue.fail_job(job.job_id, reason)
  except InkwellError as fail_exc:
    logger.warning("Could not record failure for job %s: %s", job.job_id, fail_exc.message)
  except Exception:  # noqa: BLE001
    logger.error("Could not record failure for job %s", job.job_id, exc_info=True)
  else:
    return _result_from_record(record)

  # The job may already be terminal (cancelled mid-flight); report what the store holds.
  try:
    current = await queue.get_job(job.job_id)
  except Exception:  # noqa: BLE001
    logger.error("Could not reload job %s after a failed crash write", job.job_id, exc_info=True)
    return fallback
  if current is not None and current.is_terminal:
    return _result_from_record(current)
  return fallback


async def dispatch_pending(queue: JobQueue, processor: JobProcessor, *, batch_size: int) -> DispatchSummary:
  """Claim a batch of pending jobs and run them concurrently, isolating per-job failures."""
  claimed = await queue.get_pending_jobs(batch_size)
  summary = DispatchSummary()
  if not claimed:
    return summary

  outcomes = await asyncio.gather(*(processor.process_job(job.job_id) for job in claimed), return_exceptions=True)
  for job, outcome in zip(claimed, outcomes, strict=True):
    if isinstance(outcome, Exception):
      logger.error("Job %s crashed during dispatch", job.job_id, exc_info=outcome)
      summary.results.append(await _fail_after_crash(queue, job, outcome))
      continue
    if isinstance(outcome, BaseException):
      raise outcome
    summary.results.append(_result_from_record(outcome))

  logger.info("Dispatched %d job(s): processed=%d failed=%d", summary.total, summary.processed, summary.failed)
  return summary
