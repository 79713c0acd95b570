"""Outline agent: drafts a structured article plan from a topic."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from app.ai.agents.prompts import outline_system_prompt, render_outline_prompt
from app.ai.json_parser import parse_json_with_fallback
from app.ai.pipeline.contracts import OutlineStructure, RelatedArticle
from app.ai.providers.base import AIModel
from app.core.cancellation import CancellationToken
from app.jobs.errors import UpstreamError

logger = logging.getLogger(__name__)


def parse_outline(raw: str) -> OutlineStructure:
  """Parse a model answer into an outline, raising UpstreamError when it is unusable."""
  try:
    payload = parse_json_with_fallback(AIModel.strip_json_fences(raw))
  except json.JSONDecodeError as exc:
    raise UpstreamError("Outline response was not valid JSON.", details={"stage": "outline"}) from exc
  if not isinstance(payload, dict):
    raise UpstreamError("Outline response must be a JSON object.", details={"stage": "outline"})
  try:
    return OutlineStructure.model_validate(payload)
  except PydanticValidationError as exc:
    raise UpstreamError("Outline response did not match the outline structure.", details={"stage": "outline", "errors": exc.error_count()}) from exc


class OutlineAgent:
  """Creates article outlines."""

  name = "outliner"

  def __init__(self, model: AIModel) -> None:
    self._model = model

  async def create_outline(
    self,
    *,
    title: str,
    summary: str | None,
    sources: Sequence[dict[str, Any]],
    article_type: str,
    target_length: str,
    tone: str | None,
    related: Sequence[RelatedArticle],
    custom_instructions: str | None = None,
    cancel_token: CancellationToken | None = None,
  ) -> OutlineStructure:
    system = outline_system_prompt(article_type=article_type, target_length=target_length, tone=tone, related=related)
    prompt = render_outline_prompt(title=title, summary=summary, sources=sources, custom_instructions=custom_instructions)
    response = await self._model.generate(prompt, system=system, cancel_token=cancel_token)
    outline = parse_outline(response.content)

    # Drop link suggestions pointing at articles we did not offer.
    known_ids = {article.article_id for article in related}
    for section in outline.sections:
      section.suggested_links = [link for link in section.suggested_links if link.article_id in known_ids]

    logger.info("Outline drafted: %d sections for %r", len(outline.sections), outline.title)
    return outline
