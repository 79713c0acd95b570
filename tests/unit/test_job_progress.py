from __future__ import annotations

import pytest

from app.core.cancellation import CancellationRequested, CancellationToken
from app.jobs.errors import PersistenceError
from app.jobs.progress import JobCancelledError, JobProgressTracker, job_cancellation_token
from app.jobs.queue import JobQueue, merge_progress


class FlakyQueue:
  """Queue stand-in whose progress writes always fail."""

  def __init__(self) -> None:
    self.calls = 0

  async def update_job_progress(self, job_id: str, **kwargs: object) -> None:
    self.calls += 1
    raise PersistenceError("store unavailable")


def test_merge_progress_keeps_unspecified_fields() -> None:
  existing = {"current": 30, "total": 100, "message": "Writing", "metadata": {"sectionsCompleted": 1}}
  merged = merge_progress(existing, current=50, metadata={"currentSection": "Body"})
  assert merged == {"current": 50, "total": 100, "message": "Writing", "metadata": {"sectionsCompleted": 1, "currentSection": "Body"}}
  # The stored dict is not mutated.
  assert existing["current"] == 30


def test_merge_progress_defaults_for_first_write() -> None:
  assert merge_progress(None, message="Starting") == {"current": 0, "total": 100, "message": "Starting"}


@pytest.mark.anyio
async def test_tracker_clamps_out_of_order_reports(queue: JobQueue) -> None:
  job_id = await queue.enqueue("write_article", {"outlineId": "o-1"}, "user-1")
  await queue.update_job_status(job_id, "running")
  tracker = JobProgressTracker(job_id=job_id, queue=queue)

  await tracker.report(40, "Halfway")
  await tracker.report(25, "Late report")
  await tracker.report(140, "Overshoot")

  record = await queue.require_job(job_id)
  assert tracker.current == 100
  assert record.progress is not None
  assert record.progress["current"] == 100
  assert record.progress["message"] == "Overshoot"


@pytest.mark.anyio
async def test_report_span_spreads_units_linearly(queue: JobQueue) -> None:
  job_id = await queue.enqueue("write_article", {"outlineId": "o-1"}, "user-1")
  await queue.update_job_status(job_id, "running")
  tracker = JobProgressTracker(job_id=job_id, queue=queue)

  await tracker.report_span(1, 4, "Section 2", start=30, end=70)
  assert tracker.current == 40
  await tracker.report_span(4, 4, "All sections", start=30, end=70)
  assert tracker.current == 70


@pytest.mark.anyio
async def test_progress_write_failures_do_not_stop_the_job() -> None:
  flaky = FlakyQueue()
  tracker = JobProgressTracker(job_id="job-1", queue=flaky)  # type: ignore[arg-type]

  await tracker.report(10, "Fetching")
  await tracker.report(20, "Writing")

  assert flaky.calls == 2
  assert tracker.current == 20


@pytest.mark.anyio
async def test_tracker_raises_once_job_is_cancelled(queue: JobQueue) -> None:
  job_id = await queue.enqueue("write_article", {"outlineId": "o-1"}, "user-1")
  await queue.update_job_status(job_id, "running")
  tracker = JobProgressTracker(job_id=job_id, queue=queue, token=job_cancellation_token(queue, job_id, min_interval=0.0))

  await tracker.report(10, "Started")
  await queue.cancel_job(job_id)

  with pytest.raises(JobCancelledError):
    await tracker.report(20, "Still going")


@pytest.mark.anyio
async def test_token_probe_is_throttled_and_sticky() -> None:
  answers = [False, True]
  calls = 0

  async def probe() -> bool:
    nonlocal calls
    calls += 1
    return answers[min(calls - 1, len(answers) - 1)]

  token = CancellationToken(probe, min_interval=3600)
  assert await token.is_cancelled() is False
  # Within the interval the probe is not consulted again.
  assert await token.is_cancelled() is False
  assert calls == 1

  eager = CancellationToken(probe, min_interval=0.0)
  assert await eager.is_cancelled() is True
  assert await eager.is_cancelled() is True
  assert calls == 2

  with pytest.raises(CancellationRequested):
    await eager.check()


@pytest.mark.anyio
async def test_forced_check_ignores_throttle_interval() -> None:
  stopped = False
  calls = 0

  async def probe() -> bool:
    nonlocal calls
    calls += 1
    return stopped

  token = CancellationToken(probe, min_interval=3600)
  await token.check()
  stopped = True
  await token.check()
  assert calls == 1

  with pytest.raises(CancellationRequested):
    await token.check(force=True)
  assert calls == 2
  assert token.cancelled is True
