"""Job queue operations enforcing the job state machine over the jobs repository."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from app.jobs.errors import NotFoundError, UnsupportedOperation, ValidationError
from app.jobs.inputs import normalize_job_input
from app.jobs.models import ACTIVE_STATUSES, JOB_STATUSES, JobRecord, can_transition
from app.storage.jobs_repo import JobsRepository
from app.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

STALE_JOB_ERROR_CODE = "STALE_JOB_TIMEOUT"
_PROGRESS_TOTAL = 100


def _now() -> datetime:
  return datetime.now(UTC)


def _now_iso() -> str:
  return _now().strftime("%Y-%m-%dT%H:%M:%SZ")


def _invalid_transition(record: JobRecord, target: str) -> UnsupportedOperation:
  return UnsupportedOperation(f"Cannot move job {record.job_id} from {record.status} to {target}.", code="INVALID_TRANSITION", details={"from": record.status, "to": target})


def merge_progress(existing: dict[str, Any] | None, *, current: int | None = None, total: int | None = None, message: str | None = None, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
  """Merge a partial progress update into the stored progress field by field."""
  merged: dict[str, Any] = {"current": 0, "total": _PROGRESS_TOTAL, "message": ""}
  merged.update(existing or {})
  if current is not None:
    merged["current"] = current
  if total is not None:
    merged["total"] = total
  if message is not None:
    merged["message"] = message
  if metadata:
    # Metadata keys merge individually so one milestone does not erase another's counters.
    merged["metadata"] = {**(merged.get("metadata") or {}), **metadata}
  return merged


class JobQueue:
  """Enqueue, claim, and transition jobs while keeping every write a conditional update."""

  def __init__(self, jobs_repo: JobsRepository) -> None:
    self._jobs_repo = jobs_repo

  async def enqueue(self, job_type: str, payload: Any, owner_id: str) -> str:
    """Validate the input for `job_type` and create a pending job."""
    if not owner_id:
      raise ValidationError("Jobs require an owner.", code="MISSING_OWNER")
    normalized = normalize_job_input(job_type, payload)
    timestamp = _now_iso()
    record = JobRecord(job_id=generate_job_id(), owner_id=owner_id, job_type=job_type, status="pending", input=normalized, created_at=timestamp, updated_at=timestamp)
    await self._jobs_repo.create_job(record)
    logger.info("Enqueued job %s type=%s owner=%s", record.job_id, job_type, owner_id)
    return record.job_id

  async def get_job(self, job_id: str) -> JobRecord | None:
    return await self._jobs_repo.get_job(job_id)

  async def require_job(self, job_id: str) -> JobRecord:
    record = await self._jobs_repo.get_job(job_id)
    if record is None:
      raise NotFoundError(f"Job {job_id} not found.", code="JOB_NOT_FOUND")
    return record

  async def get_user_jobs(self, owner_id: str, *, status: str | None = None, job_type: str | None = None, limit: int = 20, offset: int = 0) -> list[JobRecord]:
    """List an owner's jobs newest first."""
    if status is not None and status not in JOB_STATUSES:
      raise ValidationError(f"Unknown job status: {status}", code="INVALID_STATUS_FILTER")
    if limit <= 0 or offset < 0:
      raise ValidationError("Pagination requires limit > 0 and offset >= 0.", code="INVALID_PAGINATION")
    return await self._jobs_repo.list_jobs(owner_id=owner_id, status=status, job_type=job_type, limit=limit, offset=offset)

  async def get_pending_jobs(self, limit: int = 5) -> list[JobRecord]:
    """Claim up to `limit` of the oldest pending jobs; each claimed job is already running."""
    if limit <= 0:
      return []
    claimed = await self._jobs_repo.claim_pending(limit)
    if claimed:
      logger.info("Claimed %d pending job(s): %s", len(claimed), ", ".join(job.job_id for job in claimed))
    return claimed

  async def update_job_progress(self, job_id: str, *, current: int | None = None, total: int | None = None, message: str | None = None, metadata: dict[str, Any] | None = None) -> JobRecord:
    """Merge a progress update; terminal jobs are left untouched."""
    record = await self.require_job(job_id)
    if record.is_terminal:
      return record

    merged = merge_progress(record.progress, current=current, total=total, message=message, metadata=metadata)
    if int(merged["current"]) < record.progress_current:
      raise ValidationError(f"Progress for job {job_id} cannot move backwards ({record.progress_current} -> {merged['current']}).", code="PROGRESS_REGRESSION")

    updated = await self._jobs_repo.compare_and_update(job_id, expected_statuses=ACTIVE_STATUSES, progress=merged)
    if updated is None:
      # The job finished between the read and the write; the terminal write wins.
      return await self.require_job(job_id)
    return updated

  async def update_job_status(self, job_id: str, status: str) -> JobRecord:
    """Apply a non-terminal status transition (running or cancelled)."""
    if status not in JOB_STATUSES:
      raise ValidationError(f"Unknown job status: {status}", code="INVALID_STATUS")
    if status == "cancelled":
      return await self.cancel_job(job_id)
    if status != "running":
      record = await self.require_job(job_id)
      raise UnsupportedOperation(f"Status {status} must be set through its dedicated operation.", code="INVALID_TRANSITION", details={"from": record.status, "to": status})

    updated = await self._jobs_repo.compare_and_update(job_id, expected_statuses=("pending",), status="running", started_at=_now())
    if updated is not None:
      return updated
    record = await self.require_job(job_id)
    # A claimed job is already running; entering the pipeline again is not a new transition.
    if record.status == "running":
      return record
    raise _invalid_transition(record, "running")

  async def complete_job(self, job_id: str, output: dict[str, Any]) -> JobRecord:
    """Finish a running job with its output; repeating the call is a no-op."""
    updated = await self._jobs_repo.compare_and_update(job_id, expected_statuses=("running",), status="completed", output=dict(output or {}), completed_at=_now())
    if updated is not None:
      logger.info("Job %s completed", job_id)
      return updated
    record = await self.require_job(job_id)
    if record.status == "completed":
      return record
    raise _invalid_transition(record, "completed")

  async def fail_job(self, job_id: str, error: dict[str, Any]) -> JobRecord:
    """Fail a running job with a structured error; repeating the call is a no-op."""
    payload = {"message": str(error.get("message") or "Unknown error"), "code": str(error.get("code") or "JOB_FAILED"), "details": error.get("details") or {}}
    updated = await self._jobs_repo.compare_and_update(job_id, expected_statuses=("running",), status="failed", error=payload, completed_at=_now())
    if updated is not None:
      logger.warning("Job %s failed code=%s message=%s", job_id, payload["code"], payload["message"])
      return updated
    record = await self.require_job(job_id)
    if record.status == "failed":
      return record
    raise _invalid_transition(record, "failed")

  async def cancel_job(self, job_id: str) -> JobRecord:
    """Cancel a pending or running job."""
    record = await self.require_job(job_id)
    if not can_transition(record.status, "cancelled"):
      raise _invalid_transition(record, "cancelled")
    updated = await self._jobs_repo.compare_and_update(job_id, expected_statuses=ACTIVE_STATUSES, status="cancelled")
    if updated is None:
      # Lost a race with a terminal write; report against the winner.
      raise _invalid_transition(await self.require_job(job_id), "cancelled")
    logger.info("Job %s cancelled (was %s)", job_id, record.status)
    return updated

  async def reconcile_stale_jobs(self, stale_after_seconds: int, *, limit: int = 50) -> list[str]:
    """Fail running jobs that stopped reporting progress, usually after a process restart."""
    cutoff = _now() - timedelta(seconds=stale_after_seconds)
    stale = await self._jobs_repo.find_stale_running(updated_before=cutoff, limit=limit)
    failed: list[str] = []
    for record in stale:
      error = {"message": f"Job made no progress for {stale_after_seconds}s and was marked failed.", "code": STALE_JOB_ERROR_CODE, "details": {"kind": "StaleJob", "lastUpdate": record.updated_at}}
      updated = await self._jobs_repo.compare_and_update(record.job_id, expected_statuses=("running",), status="failed", error=error, completed_at=_now())
      if updated is not None:
        failed.append(record.job_id)
    if failed:
      logger.warning("Reconciled %d stale running job(s): %s", len(failed), ", ".join(failed))
    return failed

  async def processing_stats(self) -> dict[str, int]:
    """Return queue depth for pending and running jobs."""
    return await self._jobs_repo.count_by_status(("pending", "running"))
