"""Scheduler endpoints: authentication, batch dispatch and the stale-job sweep."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import update

from app.jobs.queue import STALE_JOB_ERROR_CODE, JobQueue
from app.schema.jobs import Job
from tests.conftest import OWNER_ID, FakeModel

SECRET_HEADERS = {"X-Inkwell-Task-Secret": "task-secret"}


@pytest.mark.anyio
async def test_process_jobs_with_secret_header_runs_batch(api_client, queue: JobQueue, fake_model: FakeModel, content_repo) -> None:
  fake_model.replies = [json.dumps([{"title": "Ledger reconciliation at scale", "summary": "Why it breaks.", "relevanceScore": 0.9}])]
  job_id = await queue.enqueue("research_topics", {"industry": "fintech"}, OWNER_ID)

  response = await api_client.post("/internal/tasks/process-jobs", headers=SECRET_HEADERS)

  assert response.status_code == 200
  body = response.json()
  assert body["processed"] == 1
  assert body["failed"] == 0
  assert body["total"] == 1
  assert body["reconciled"] == []
  assert body["results"][0]["jobId"] == job_id
  assert body["results"][0]["status"] == "completed"
  assert (await queue.require_job(job_id)).status == "completed"
  assert [topic.title for topic in content_repo.topics.values()] == ["Ledger reconciliation at scale"]


@pytest.mark.anyio
async def test_process_jobs_isolates_failures_in_batch(api_client, queue: JobQueue) -> None:
  # The outline does not exist, so this job fails while the batch call itself succeeds.
  failing = await queue.enqueue("write_article", {"outlineId": "missing-outline"}, OWNER_ID)

  response = await api_client.post("/internal/tasks/process-jobs", headers={"Authorization": "Bearer task-secret"}, params={"batchSize": 3})

  assert response.status_code == 200
  body = response.json()
  assert body["failed"] == 1
  assert body["results"][0]["reason"]["code"] == "ARTICLE_WRITING_FAILED"
  assert (await queue.require_job(failing)).status == "failed"


@pytest.mark.anyio
async def test_process_jobs_accepts_signed_in_user(api_client) -> None:
  response = await api_client.post("/internal/tasks/process-jobs")
  assert response.status_code == 200
  assert response.json()["total"] == 0


@pytest.mark.anyio
async def test_process_jobs_rejects_anonymous_and_wrong_secret(api_client, auth_state) -> None:
  auth_state["user"] = None

  anonymous = await api_client.post("/internal/tasks/process-jobs")
  assert anonymous.status_code == 401

  wrong = await api_client.post("/internal/tasks/process-jobs", headers={"X-Inkwell-Task-Secret": "guess"})
  assert wrong.status_code == 401

  out_of_range = await api_client.post("/internal/tasks/process-jobs", headers=SECRET_HEADERS, params={"batchSize": 51})
  assert out_of_range.status_code == 422


@pytest.mark.anyio
async def test_processing_stats(api_client, queue: JobQueue) -> None:
  await queue.enqueue("research_topics", {"industry": "fintech"}, OWNER_ID)
  await queue.enqueue("research_topics", {"industry": "retail"}, OWNER_ID)
  await queue.get_pending_jobs(1)

  response = await api_client.get("/internal/tasks/process-jobs", headers=SECRET_HEADERS)
  assert response.status_code == 200
  assert response.json() == {"pending": 1, "running": 1}


@pytest.mark.anyio
async def test_reconcile_requires_the_secret(api_client) -> None:
  # A signed-in user can trigger processing but not the sweep.
  response = await api_client.post("/internal/tasks/reconcile", params={"staleAfterSeconds": 60})
  assert response.status_code == 403


@pytest.mark.anyio
async def test_reconcile_fails_stale_running_jobs(api_client, queue: JobQueue, session_factory) -> None:
  job_id = await queue.enqueue("write_article", {"outlineId": "o-1"}, OWNER_ID)
  await queue.update_job_status(job_id, "running")
  async with session_factory() as session:
    await session.execute(update(Job).where(Job.job_id == job_id).values(updated_at=datetime.now(UTC) - timedelta(hours=1)))
    await session.commit()

  missing_threshold = await api_client.post("/internal/tasks/reconcile", headers=SECRET_HEADERS)
  assert missing_threshold.status_code == 400
  assert missing_threshold.json()["code"] == "STALE_THRESHOLD_REQUIRED"

  response = await api_client.post("/internal/tasks/reconcile", headers=SECRET_HEADERS, params={"staleAfterSeconds": 600})
  assert response.status_code == 200
  assert response.json() == {"failed": [job_id]}
  job = await queue.require_job(job_id)
  assert job.status == "failed"
  assert job.error is not None and job.error["code"] == STALE_JOB_ERROR_CODE
