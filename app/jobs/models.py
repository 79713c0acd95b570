"""Domain models for asynchronous content generation jobs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, get_args

JobStatus = Literal["pending", "running", "completed", "failed", "cancelled"]
JobType = Literal["write_article", "generate_outline", "research_topics", "edit_article"]

JOB_TYPES: tuple[str, ...] = get_args(JobType)
JOB_STATUSES: tuple[str, ...] = get_args(JobStatus)
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed", "cancelled"})
ACTIVE_STATUSES: frozenset[str] = frozenset({"pending", "running"})

# Every legal edge of the job state machine; anything else is rejected.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
  "pending": frozenset({"running", "cancelled"}),
  "running": frozenset({"completed", "failed", "cancelled"}),
  "completed": frozenset(),
  "failed": frozenset(),
  "cancelled": frozenset(),
}


def is_terminal(status: str) -> bool:
  return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
  return target in ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass
class JobRecord:
  """Represents a background content generation job."""

  job_id: str
  owner_id: str
  job_type: str
  status: JobStatus
  input: dict[str, Any]
  created_at: str
  updated_at: str
  output: dict[str, Any] | None = None
  progress: dict[str, Any] | None = None
  error: dict[str, Any] | None = None
  started_at: str | None = None
  completed_at: str | None = None

  @property
  def is_terminal(self) -> bool:
    return is_terminal(self.status)

  @property
  def progress_current(self) -> int:
    """Return the last reported progress value, treating missing progress as zero."""
    if not self.progress:
      return 0
    return int(self.progress.get("current") or 0)

  def to_api(self) -> dict[str, Any]:
    """Serialize the record with the external field names."""
    return {
      "id": self.job_id,
      "type": self.job_type,
      "status": self.status,
      "input": self.input,
      "output": self.output,
      "error": self.error,
      "progress": self.progress,
      "user_id": self.owner_id,
      "started_at": self.started_at,
      "completed_at": self.completed_at,
      "created_at": self.created_at,
      "updated_at": self.updated_at,
    }
