"""Job progress tracking utilities."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from app.core.cancellation import CancellationRequested, CancellationToken
from app.jobs.errors import InkwellError

if TYPE_CHECKING:
  from app.jobs.queue import JobQueue

logger = logging.getLogger(__name__)

# Backend streams probe the job row at most this often while consuming deltas.
JOB_PROBE_INTERVAL_SECONDS = 1.0


class JobCancelledError(CancellationRequested):
  """Exception raised when a job is cancelled by the user."""


def job_cancellation_token(queue: JobQueue, job_id: str, *, min_interval: float = JOB_PROBE_INTERVAL_SECONDS) -> CancellationToken:
  """Build a token that re-reads the job status from the store on each probe."""

  async def _probe() -> bool:
    record = await queue.get_job(job_id)
    return record is None or record.status == "cancelled"

  return CancellationToken(_probe, error_type=JobCancelledError, reason=f"Job {job_id} was cancelled.", min_interval=min_interval)


class JobProgressTracker:
  """Report monotonic milestones for one job.

  Progress writes are best effort: a failed write is logged and the job keeps
  going. Every report checks the cancellation token first so a cancelled job
  stops at the next milestone.
  """

  def __init__(self, *, job_id: str, queue: JobQueue, token: CancellationToken | None = None) -> None:
    self._job_id = job_id
    self._queue = queue
    self._token = token or CancellationToken(error_type=JobCancelledError)
    self._current = 0
    self._message = ""

  @property
  def job_id(self) -> str:
    return self._job_id

  @property
  def current(self) -> int:
    return self._current

  @property
  def message(self) -> str:
    return self._message

  @property
  def token(self) -> CancellationToken:
    return self._token

  async def report(self, current: int, message: str, *, metadata: dict[str, Any] | None = None) -> None:
    """Record a milestone; values below the last reported one are clamped."""
    await self._token.check()
    # Keep the stored value monotonic even if a caller reports out of order.
    current = max(min(int(current), 100), self._current)
    self._current = current
    self._message = message
    try:
      record = await self._queue.update_job_progress(self._job_id, current=current, total=100, message=message, metadata=metadata)
    except InkwellError as exc:
      logger.warning("Progress update for job %s failed: %s", self._job_id, exc.message)
      return

    if record.status == "cancelled":
      self._token.raise_cancelled()

  async def report_span(self, completed: int, total: int, message: str, *, start: int, end: int, metadata: dict[str, Any] | None = None) -> None:
    """Report `completed` of `total` units spread linearly between `start` and `end`."""
    fraction = completed / total if total > 0 else 1.0
    await self.report(start + round((end - start) * fraction), message, metadata=metadata)

  async def complete(self, message: str) -> None:
    """Report the final milestone."""
    await self.report(100, message)
