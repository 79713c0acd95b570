"""Research agent: discovers candidate article topics."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from pydantic import ValidationError as PydanticValidationError

from app.ai.agents.prompts import RESEARCH_SYSTEM_PROMPT, render_research_prompt
from app.ai.json_parser import parse_json_with_fallback
from app.ai.pipeline.contracts import TopicCandidate
from app.ai.providers.base import AIModel
from app.core.cancellation import CancellationToken
from app.jobs.errors import UpstreamError

logger = logging.getLogger(__name__)


def parse_topics(raw: str) -> list[TopicCandidate]:
  """Parse a model answer into topic candidates, skipping malformed entries."""
  try:
    payload = parse_json_with_fallback(AIModel.strip_json_fences(raw))
  except json.JSONDecodeError as exc:
    raise UpstreamError("Research response was not valid JSON.", details={"stage": "research"}) from exc
  if isinstance(payload, dict):
    payload = payload.get("topics", [])
  if not isinstance(payload, list):
    raise UpstreamError("Research response must be a JSON array.", details={"stage": "research"})

  topics: list[TopicCandidate] = []
  for item in payload:
    try:
      topics.append(TopicCandidate.model_validate(item))
    except PydanticValidationError:
      logger.warning("Skipping malformed topic candidate from research response")
  return topics


class ResearchAgent:
  """Proposes topics for an industry or keyword set."""

  name = "researcher"

  def __init__(self, model: AIModel) -> None:
    self._model = model

  async def discover_topics(self, *, industry: str | None, keywords: Sequence[str], article_type: str | None, max_topics: int, existing_titles: Sequence[str] = (), cancel_token: CancellationToken | None = None) -> list[TopicCandidate]:
    prompt = render_research_prompt(industry=industry, keywords=keywords, article_type=article_type, max_topics=max_topics, existing_titles=existing_titles)
    response = await self._model.generate(prompt, system=RESEARCH_SYSTEM_PROMPT, cancel_token=cancel_token)
    topics = parse_topics(response.content)

    # Dedupe by title and keep the most relevant first.
    seen: set[str] = set()
    existing = {title.strip().lower() for title in existing_titles}
    unique: list[TopicCandidate] = []
    for topic in sorted(topics, key=lambda candidate: candidate.relevance_score, reverse=True):
      key = topic.title.strip().lower()
      if key in seen or key in existing:
        continue
      seen.add(key)
      unique.append(topic)
    if not unique:
      raise UpstreamError("Research produced no usable topics.", details={"stage": "research"})
    return unique[:max_topics]
