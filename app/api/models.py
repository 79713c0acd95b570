"""Request and response models for the HTTP surface."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class JobCreateRequest(BaseModel):
  """Request payload for creating a background content job."""

  type: StrictStr = Field(min_length=1, description="Job type (write_article, generate_outline, research_topics, edit_article).", examples=["write_article"])
  input: dict[str, Any] = Field(default_factory=dict, description="Type-specific input payload.", examples=[{"outlineId": "7d1c0b7e-4b4b-4a53-9b2e-1f6a0e0f8a11"}])
  model_config = ConfigDict(extra="forbid")


class JobCreateResponse(BaseModel):
  """Response returned after enqueueing a job."""

  job_id: StrictStr = Field(alias="jobId")
  model_config = ConfigDict(populate_by_name=True)


class JobActionRequest(BaseModel):
  """Action applied to an existing job; only `cancel` is supported."""

  action: StrictStr = Field(min_length=1, examples=["cancel"])
  model_config = ConfigDict(extra="forbid")


class JobActionResponse(BaseModel):
  success: bool
  job: dict[str, Any]


class Pagination(BaseModel):
  limit: int
  offset: int
  has_more: bool = Field(alias="hasMore")
  model_config = ConfigDict(populate_by_name=True)


class JobListResponse(BaseModel):
  """Page of the caller's jobs, newest first."""

  jobs: list[dict[str, Any]]
  pagination: Pagination


class DispatchResponse(BaseModel):
  """Outcome of one dispatcher batch."""

  processed: int
  failed: int
  total: int
  results: list[dict[str, Any]] = Field(default_factory=list)
  reconciled: list[StrictStr] = Field(default_factory=list, description="Stale running jobs failed before the batch was claimed.")


class ProcessingStatsResponse(BaseModel):
  pending: int
  running: int


class ReconcileResponse(BaseModel):
  failed: list[StrictStr]


class WriterStreamRequest(BaseModel):
  """Request payload for streaming an article from an approved outline."""

  outline_id: StrictStr = Field(alias="outlineId", min_length=1)
  custom_instructions: StrictStr | None = Field(default=None, alias="customInstructions", max_length=2000)
  model_config = ConfigDict(extra="forbid", populate_by_name=True)
