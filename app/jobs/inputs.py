"""Per-type input schemas validated before a job is enqueued."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, model_validator
from pydantic import ValidationError as PydanticValidationError

from app.jobs.errors import UnsupportedOperation, ValidationError
from app.jobs.models import JOB_TYPES

ArticleType = Literal["blog", "technical", "news", "opinion", "tutorial", "listicle", "affiliate", "personal"]
TargetLength = Literal["short", "medium", "long"]


class JobInput(BaseModel):
  """Shared configuration for job inputs; stored payloads keep the camelCase wire names."""

  model_config = ConfigDict(extra="forbid", populate_by_name=True)


class WriteArticleInput(JobInput):
  """Input for writing a full article from an approved outline."""

  outline_id: StrictStr = Field(alias="outlineId", min_length=1)
  custom_instructions: StrictStr | None = Field(default=None, alias="customInstructions", max_length=2000)


class GenerateOutlineInput(JobInput):
  """Input for drafting an outline from a discovered topic."""

  topic_id: StrictStr = Field(alias="topicId", min_length=1)
  article_type: ArticleType = Field(alias="articleType")
  target_length: TargetLength = Field(alias="targetLength")
  tone: StrictStr | None = Field(default=None, max_length=200)
  custom_instructions: StrictStr | None = Field(default=None, alias="customInstructions", max_length=2000)


class ResearchTopicsInput(JobInput):
  """Input for discovering new article topics."""

  industry: StrictStr | None = Field(default=None, min_length=1, max_length=200)
  keywords: list[StrictStr] = Field(default_factory=list, max_length=20)
  article_type: ArticleType | None = Field(default=None, alias="articleType")
  max_topics: int = Field(default=5, alias="maxTopics", ge=1, le=20)

  @model_validator(mode="after")
  def require_industry_or_keywords(self) -> ResearchTopicsInput:
    # Research needs at least one anchor to search around.
    if not self.industry and not [keyword for keyword in self.keywords if keyword.strip()]:
      raise ValueError("Provide an industry or at least one keyword.")
    return self


class EditArticleInput(JobInput):
  """Input for an editing pass over an existing article."""

  article_id: StrictStr = Field(alias="articleId", min_length=1)
  content: StrictStr | None = Field(default=None, min_length=1)


INPUT_MODELS: dict[str, type[JobInput]] = {
  "write_article": WriteArticleInput,
  "generate_outline": GenerateOutlineInput,
  "research_topics": ResearchTopicsInput,
  "edit_article": EditArticleInput,
}


def _summarize_errors(exc: PydanticValidationError) -> list[dict[str, Any]]:
  """Drop raw input values so stored or returned errors never echo payloads."""
  return [{"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", ""), "type": error.get("type", "")} for error in exc.errors()]


def parse_job_input(job_type: str, payload: Any) -> JobInput:
  """Validate a raw payload against the schema registered for a job type."""
  model = INPUT_MODELS.get(job_type)
  if model is None:
    raise UnsupportedOperation(f"Unsupported job type: {job_type}", code="UNSUPPORTED_JOB_TYPE", details={"supported": list(JOB_TYPES)})
  if not isinstance(payload, dict):
    raise ValidationError("Job input must be a JSON object.", code="INVALID_JOB_INPUT")
  try:
    return model.model_validate(payload)
  except PydanticValidationError as exc:
    raise ValidationError(f"Invalid input for {job_type} job.", code="INVALID_JOB_INPUT", details={"errors": _summarize_errors(exc)}) from exc


def normalize_job_input(job_type: str, payload: Any) -> dict[str, Any]:
  """Validate and return the canonical camelCase payload persisted on the job."""
  parsed = parse_job_input(job_type, payload)
  return parsed.model_dump(mode="json", by_alias=True, exclude_none=True)
