"""HTTP surface for creating, polling, listing and cancelling jobs."""

from __future__ import annotations

import pytest

from app.jobs.queue import JobQueue
from tests.conftest import OTHER_OWNER_ID, OWNER_ID


@pytest.mark.anyio
async def test_create_job_returns_job_id_and_persists_pending_job(api_client, queue: JobQueue) -> None:
  response = await api_client.post("/v1/jobs", json={"type": "write_article", "input": {"outlineId": "outline-1"}})

  assert response.status_code == 200
  job_id = response.json()["jobId"]
  job = await queue.require_job(job_id)
  assert job.status == "pending"
  assert job.owner_id == OWNER_ID
  assert job.input == {"outlineId": "outline-1"}


@pytest.mark.anyio
async def test_create_job_requires_a_session(api_client, auth_state) -> None:
  auth_state["user"] = None
  response = await api_client.post("/v1/jobs", json={"type": "write_article", "input": {"outlineId": "outline-1"}})
  assert response.status_code == 401
  assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.anyio
async def test_create_job_rejects_unknown_type_and_invalid_input(api_client) -> None:
  unknown = await api_client.post("/v1/jobs", json={"type": "publish_article", "input": {}})
  assert unknown.status_code == 400
  assert unknown.json()["code"] == "UNSUPPORTED_JOB_TYPE"
  assert unknown.headers["x-request-id"] == unknown.json()["requestId"]

  invalid = await api_client.post("/v1/jobs", json={"type": "generate_outline", "input": {"topicId": "t-1"}})
  assert invalid.status_code == 400
  assert invalid.json()["code"] == "INVALID_JOB_INPUT"

  malformed = await api_client.post("/v1/jobs", json={"input": {}})
  assert malformed.status_code == 422
  assert malformed.json()["code"] == "REQUEST_VALIDATION_FAILED"


@pytest.mark.anyio
async def test_get_job_hides_other_owners_jobs(api_client, queue: JobQueue) -> None:
  mine = await queue.enqueue("research_topics", {"industry": "fintech"}, OWNER_ID)
  theirs = await queue.enqueue("research_topics", {"industry": "fintech"}, OTHER_OWNER_ID)

  response = await api_client.get(f"/v1/jobs/{mine}")
  assert response.status_code == 200
  body = response.json()
  assert body["id"] == mine
  assert body["type"] == "research_topics"
  assert body["status"] == "pending"
  assert body["user_id"] == OWNER_ID

  hidden = await api_client.get(f"/v1/jobs/{theirs}")
  assert hidden.status_code == 404
  assert hidden.json()["code"] == "JOB_NOT_FOUND"
  assert (await api_client.get("/v1/jobs/does-not-exist")).status_code == 404


@pytest.mark.anyio
async def test_patch_cancel_and_cancel_alias(api_client, queue: JobQueue) -> None:
  first = await queue.enqueue("write_article", {"outlineId": "o-1"}, OWNER_ID)
  second = await queue.enqueue("write_article", {"outlineId": "o-2"}, OWNER_ID)

  patched = await api_client.patch(f"/v1/jobs/{first}", json={"action": "cancel"})
  assert patched.status_code == 200
  assert patched.json()["success"] is True
  assert patched.json()["job"]["status"] == "cancelled"

  aliased = await api_client.post(f"/v1/jobs/{second}/cancel")
  assert aliased.status_code == 200
  assert (await queue.require_job(second)).status == "cancelled"


@pytest.mark.anyio
async def test_cancel_rejects_terminal_jobs_and_unknown_actions(api_client, queue: JobQueue) -> None:
  job_id = await queue.enqueue("write_article", {"outlineId": "o-1"}, OWNER_ID)
  await queue.update_job_status(job_id, "running")
  await queue.complete_job(job_id, {"articleId": "a-1"})

  response = await api_client.patch(f"/v1/jobs/{job_id}", json={"action": "cancel"})
  assert response.status_code == 400
  assert response.json()["code"] == "INVALID_TRANSITION"
  assert (await queue.require_job(job_id)).status == "completed"

  unknown = await api_client.patch(f"/v1/jobs/{job_id}", json={"action": "retry"})
  assert unknown.status_code == 400
  assert unknown.json()["code"] == "UNKNOWN_JOB_ACTION"


@pytest.mark.anyio
async def test_cannot_cancel_another_owners_job(api_client, queue: JobQueue) -> None:
  job_id = await queue.enqueue("write_article", {"outlineId": "o-1"}, OTHER_OWNER_ID)
  response = await api_client.post(f"/v1/jobs/{job_id}/cancel")
  assert response.status_code == 404
  assert (await queue.require_job(job_id)).status == "pending"


@pytest.mark.anyio
async def test_list_jobs_paginates_and_filters(api_client, queue: JobQueue) -> None:
  ids = [await queue.enqueue("research_topics", {"industry": f"industry-{index}"}, OWNER_ID) for index in range(3)]
  await queue.enqueue("research_topics", {"industry": "elsewhere"}, OTHER_OWNER_ID)
  await queue.cancel_job(ids[0])

  first_page = await api_client.get("/v1/jobs", params={"limit": 2})
  assert first_page.status_code == 200
  body = first_page.json()
  assert [job["id"] for job in body["jobs"]] == [ids[2], ids[1]]
  assert body["pagination"] == {"limit": 2, "offset": 0, "hasMore": True}

  last_page = (await api_client.get("/v1/jobs", params={"limit": 2, "offset": 2})).json()
  assert [job["id"] for job in last_page["jobs"]] == [ids[0]]
  assert last_page["pagination"]["hasMore"] is False

  cancelled = (await api_client.get("/v1/jobs", params={"status": "cancelled"})).json()
  assert [job["id"] for job in cancelled["jobs"]] == [ids[0]]

  too_large = await api_client.get("/v1/jobs", params={"limit": 500})
  assert too_large.status_code == 422
