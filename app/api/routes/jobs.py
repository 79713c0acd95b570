import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_job_queue
from app.api.models import JobActionRequest, JobActionResponse, JobCreateRequest, JobCreateResponse, JobListResponse, Pagination
from app.core.security import CurrentUser, get_current_user
from app.jobs.errors import NotFoundError, ValidationError
from app.jobs.models import JobRecord
from app.jobs.queue import JobQueue

router = APIRouter()
logger = logging.getLogger("app.api.routes.jobs")

MAX_PAGE_SIZE = 100


async def _owned_job(queue: JobQueue, job_id: str, current_user: CurrentUser) -> JobRecord:
  """Load a job the caller owns; someone else's job looks exactly like a missing one."""
  job = await queue.get_job(job_id)
  if job is None or job.owner_id != current_user.uid:
    raise NotFoundError("Job not found.", code="JOB_NOT_FOUND")
  return job


@router.post("", response_model=JobCreateResponse)
async def create_job(request: JobCreateRequest, queue: Annotated[JobQueue, Depends(get_job_queue)], current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> JobCreateResponse:
  """Create a background content generation job."""
  job_id = await queue.enqueue(request.type, request.input, current_user.uid)
  return JobCreateResponse(job_id=job_id)


@router.get("", response_model=JobListResponse)
async def list_jobs(
  queue: Annotated[JobQueue, Depends(get_job_queue)],
  current_user: Annotated[CurrentUser, Depends(get_current_user)],
  job_status: Annotated[str | None, Query(alias="status")] = None,
  job_type: Annotated[str | None, Query(alias="type")] = None,
  limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
  offset: Annotated[int, Query(ge=0)] = 0,
) -> JobListResponse:
  """List the caller's jobs, newest first."""
  jobs = await queue.get_user_jobs(current_user.uid, status=job_status, job_type=job_type, limit=limit, offset=offset)
  # A full page means there may be more; the next page can come back empty.
  return JobListResponse(jobs=[job.to_api() for job in jobs], pagination=Pagination(limit=limit, offset=offset, has_more=len(jobs) == limit))


@router.get("/{job_id}")
async def get_job_status(job_id: str, queue: Annotated[JobQueue, Depends(get_job_queue)], current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> dict[str, Any]:
  """Fetch the status, progress and result of a background job."""
  job = await _owned_job(queue, job_id, current_user)
  return job.to_api()


@router.patch("/{job_id}", response_model=JobActionResponse)
async def apply_job_action(job_id: str, payload: JobActionRequest, queue: Annotated[JobQueue, Depends(get_job_queue)], current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> JobActionResponse:
  """Apply an action to a job; only cancellation is supported."""
  if payload.action != "cancel":
    raise ValidationError(f"Unknown job action: {payload.action}", code="UNKNOWN_JOB_ACTION", details={"supported": ["cancel"]})
  return await _cancel(queue, job_id, current_user)


@router.post("/{job_id}/cancel", response_model=JobActionResponse)
async def cancel_job(job_id: str, queue: Annotated[JobQueue, Depends(get_job_queue)], current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> JobActionResponse:
  """Request cancellation of a pending or running job."""
  return await _cancel(queue, job_id, current_user)


async def _cancel(queue: JobQueue, job_id: str, current_user: CurrentUser) -> JobActionResponse:
  await _owned_job(queue, job_id, current_user)
  job = await queue.cancel_job(job_id)
  logger.info("Job %s cancelled by %s", job_id, current_user.uid)
  return JobActionResponse(success=True, job=job.to_api())
