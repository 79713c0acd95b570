"""Postgres-backed repository for background jobs using SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_session_factory
from app.jobs.errors import PersistenceError
from app.jobs.models import JobRecord, JobStatus
from app.schema.jobs import Job
from app.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


def _now() -> datetime:
  return datetime.now(UTC)


def _iso(value: datetime | None) -> str | None:
  if value is None:
    return None
  # sqlite drops tzinfo on the way back; every stored timestamp is UTC.
  if value.tzinfo is None:
    value = value.replace(tzinfo=UTC)
  return value.isoformat().replace("+00:00", "Z")


class PostgresJobsRepository(JobsRepository):
  """Persist jobs to Postgres using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: JobRecord) -> None:
    now = _now()
    try:
      async with self._session_factory() as session:
        job = Job(
          job_id=record.job_id,
          user_id=record.owner_id,
          job_type=record.job_type,
          status=record.status,
          input_json=record.input,
          output_json=record.output,
          progress_json=record.progress,
          error_json=record.error,
          created_at=now,
          updated_at=now,
        )
        session.add(job)
        await session.commit()
    except SQLAlchemyError as exc:
      raise PersistenceError(f"Failed to create job {record.job_id}.", details={"operation": "create_job"}) from exc
    record.created_at = _iso(now) or record.created_at
    record.updated_at = record.created_at

  async def get_job(self, job_id: str) -> JobRecord | None:
    try:
      async with self._session_factory() as session:
        row = await session.get(Job, job_id)
        if row is None:
          return None
        return self._model_to_record(row)
    except SQLAlchemyError as exc:
      raise PersistenceError(f"Failed to load job {job_id}.", details={"operation": "get_job"}) from exc

  async def list_jobs(self, *, owner_id: str, status: str | None = None, job_type: str | None = None, limit: int = 20, offset: int = 0) -> list[JobRecord]:
    try:
      async with self._session_factory() as session:
        stmt = select(Job).where(Job.user_id == owner_id)
        if status:
          stmt = stmt.where(Job.status == status)
        if job_type:
          stmt = stmt.where(Job.job_type == job_type)
        stmt = stmt.order_by(Job.created_at.desc(), Job.job_id.desc()).limit(limit).offset(offset)
        rows = (await session.execute(stmt)).scalars().all()
        return [self._model_to_record(row) for row in rows]
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to list jobs.", details={"operation": "list_jobs"}) from exc

  async def claim_pending(self, limit: int = 5) -> list[JobRecord]:
    claimed: list[JobRecord] = []
    try:
      async with self._session_factory() as session:
        # Skip rows another dispatcher already locked; sqlite ignores the locking clause.
        candidates_stmt = select(Job.job_id).where(Job.status == "pending").order_by(Job.created_at.asc(), Job.job_id.asc()).limit(limit).with_for_update(skip_locked=True)
        candidate_ids = list((await session.execute(candidates_stmt)).scalars().all())
        now = _now()
        for job_id in candidate_ids:
          # The status predicate makes each claim a compare-and-swap; a lost race updates zero rows.
          claim_stmt = update(Job).where(Job.job_id == job_id, Job.status == "pending").values(status="running", started_at=now, updated_at=now)
          result = await session.execute(claim_stmt)
          if result.rowcount != 1:
            logger.info("Job %s was claimed by another dispatcher", job_id)
            continue
          claimed.append(job_id)
        await session.commit()

        records: list[JobRecord] = []
        for job_id in claimed:
          row = await session.get(Job, job_id)
          if row is not None:
            records.append(self._model_to_record(row))
        return records
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to claim pending jobs.", details={"operation": "claim_pending"}) from exc

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
    values: dict[str, Any] = {"updated_at": _now()}
    if status is not None:
      values["status"] = status
    if output is not None:
      values["output_json"] = output
    if error is not None:
      values["error_json"] = error
    if progress is not None:
      values["progress_json"] = progress
      values["last_message"] = progress.get("message")
    if started_at is not None:
      values["started_at"] = started_at
    if completed_at is not None:
      values["completed_at"] = completed_at

    try:
      async with self._session_factory() as session:
        stmt = update(Job).where(Job.job_id == job_id, Job.status.in_(tuple(expected_statuses))).values(**values).execution_options(synchronize_session=False)
        result = await session.execute(stmt)
        await session.commit()
        if result.rowcount != 1:
          return None
        row = await session.get(Job, job_id, populate_existing=True)
        if row is None:
          return None
        return self._model_to_record(row)
    except SQLAlchemyError as exc:
      raise PersistenceError(f"Failed to update job {job_id}.", details={"operation": "compare_and_update"}) from exc

  async def count_by_status(self, statuses: Iterable[str]) -> dict[str, int]:
    wanted = tuple(statuses)
    counts = {status: 0 for status in wanted}
    try:
      async with self._session_factory() as session:
        stmt = select(Job.status, func.count()).where(Job.status.in_(wanted)).group_by(Job.status)
        for status, total in (await session.execute(stmt)).all():
          counts[str(status)] = int(total)
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to count jobs.", details={"operation": "count_by_status"}) from exc
    return counts

  async def find_stale_running(self, *, updated_before: datetime, limit: int = 50) -> list[JobRecord]:
    try:
      async with self._session_factory() as session:
        stmt = select(Job).where(Job.status == "running", Job.updated_at < updated_before).order_by(Job.updated_at.asc()).limit(limit)
        rows = (await session.execute(stmt)).scalars().all()
        return [self._model_to_record(row) for row in rows]
    except SQLAlchemyError as exc:
      raise PersistenceError("Failed to find stale jobs.", details={"operation": "find_stale_running"}) from exc

  def _model_to_record(self, row: Job) -> JobRecord:
    return JobRecord(
      job_id=row.job_id,
      owner_id=row.user_id,
      job_type=row.job_type,
      status=row.status,  # type: ignore[arg-type]
      input=row.input_json,
      output=row.output_json,
      progress=row.progress_json,
      error=row.error_json,
      created_at=_iso(row.created_at) or "",
      updated_at=_iso(row.updated_at) or "",
      started_at=_iso(row.started_at),
      completed_at=_iso(row.completed_at),
    )
