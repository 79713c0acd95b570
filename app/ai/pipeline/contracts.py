"""Shared data contracts for the AI pipeline."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContractModel(BaseModel):
  """Model responses use camelCase keys; python code uses snake_case."""

  model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SuggestedLink(ContractModel):
  """An internal link the outliner proposes for a section."""

  article_id: str = Field(alias="articleId")
  anchor_text: str = Field(alias="anchorText")


class OutlineSection(ContractModel):
  """Plan for a single article section."""

  heading: str = Field(min_length=1)
  key_points: list[str] = Field(default_factory=list, alias="keyPoints")
  word_target: int = Field(default=200, alias="wordTarget", ge=50, le=2000)
  suggested_links: list[SuggestedLink] = Field(default_factory=list, alias="suggestedLinks")


class OutlineConclusion(ContractModel):
  """Closing summary and call to action."""

  summary: str = ""
  call_to_action: str = Field(default="", alias="callToAction")


class OutlineStructure(ContractModel):
  """Structured plan the writer follows."""

  title: str = Field(min_length=1)
  hook: str = ""
  sections: list[OutlineSection] = Field(min_length=1)
  conclusion: OutlineConclusion = Field(default_factory=OutlineConclusion)
  seo_keywords: list[str] = Field(default_factory=list, alias="seoKeywords")

  def to_storage(self) -> dict[str, Any]:
    """Return the camelCase shape persisted on the outline."""
    return self.model_dump(mode="json", by_alias=True)


class TopicSource(ContractModel):
  """A reference backing a discovered topic."""

  url: str
  title: str | None = None
  snippet: str | None = None
  domain: str | None = None


class TopicCandidate(ContractModel):
  """A topic proposed by the research agent."""

  title: str = Field(min_length=1)
  summary: str = ""
  angle: str | None = None
  hook: str | None = None
  relevance_score: float = Field(default=0.5, alias="relevanceScore", ge=0.0, le=1.0)
  sources: list[TopicSource] = Field(default_factory=list)

  @field_validator("relevance_score", mode="before")
  @classmethod
  def normalize_percent_scores(cls, value: Any) -> Any:
    # Some models answer 0-100 instead of 0-1.
    if isinstance(value, int | float) and 1.0 < value <= 100.0:
      return value / 100.0
    return value


class RelatedArticle(ContractModel):
  """A published article new content may link to."""

  article_id: str
  title: str
  slug: str
