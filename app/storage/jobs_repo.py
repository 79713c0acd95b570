"""Storage interfaces for background jobs."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from app.jobs.models import JobRecord, JobStatus


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, record: JobRecord) -> None:
    """Persist an initial job record."""

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def list_jobs(self, *, owner_id: str, status: str | None = None, job_type: str | None = None, limit: int = 20, offset: int = 0) -> list[JobRecord]:
    """Return one owner's jobs, newest first."""

  async def claim_pending(self, limit: int = 5) -> list[JobRecord]:
    """Atomically move up to `limit` of the oldest pending jobs to running and return them."""

  async def compare_and_update(
    self,
    job_id: str,
    *,
    expected_statuses: Iterable[str],
    status: JobStatus | None = None,
    output: dict[str, Any] | None = None,
    error: dict[str, Any] | None = None,
    progress: dict[str, Any] | None = None,
    started_at: datetime | None = None,
    completed_at: datetime | None = None,
  ) -> JobRecord | None:
    """Apply updates only while the stored status is one of `expected_statuses`; return None otherwise."""

  async def count_by_status(self, statuses: Iterable[str]) -> dict[str, int]:
    """Count jobs per status."""

  async def find_stale_running(self, *, updated_before: datetime, limit: int = 50) -> list[JobRecord]:
    """Return running jobs that have not been touched since `updated_before`."""
